"""Central error mapping for lifecycle failures.

Single source of truth for turning a PortalError subclass into a
problem+json title, HTTP status and user-safe detail. Handlers look errors
up here instead of hardcoding strings or numbers; exception text is never
copied into a response.
"""

from __future__ import annotations

from h1b_portal.logic.errors import (
    AccessDenied,
    AlreadyCompleted,
    ConfigurationError,
    InvitationExpired,
    InvitationNotFound,
    NotificationError,
    PersistenceError,
    PortalError,
    SubjectNotFound,
    ValidationFailed,
)

INVALID_OR_EXPIRED = "Invalid or expired invitation"
RETRY_LATER = "Something went wrong on our side. Please try again later."

# Ordered most specific first; lookup walks the MRO so subclasses win
ERROR_MAP: dict[type[PortalError], dict[str, object]] = {
    InvitationExpired: {"title": "Not Found", "status": 404, "detail": INVALID_OR_EXPIRED},
    SubjectNotFound: {"title": "Not Found", "status": 404, "detail": "Case or petition not found"},
    InvitationNotFound: {"title": "Not Found", "status": 404, "detail": INVALID_OR_EXPIRED},
    ValidationFailed: {"title": "Invalid Request", "status": 400, "detail": "One or more fields are invalid"},
    AlreadyCompleted: {"title": "Conflict", "status": 409, "detail": "This questionnaire has already been submitted"},
    AccessDenied: {"title": "Forbidden", "status": 403, "detail": "You do not have access to this resource"},
    NotificationError: {"title": "Bad Gateway", "status": 502, "detail": "Email could not be sent. Please try again later."},
    PersistenceError: {"title": "Internal Server Error", "status": 500, "detail": RETRY_LATER},
    ConfigurationError: {"title": "Internal Server Error", "status": 500, "detail": RETRY_LATER},
    PortalError: {"title": "Internal Server Error", "status": 500, "detail": RETRY_LATER},
}


def lookup(exc: PortalError) -> dict[str, object]:
    for cls in type(exc).__mro__:
        entry = ERROR_MAP.get(cls)  # type: ignore[arg-type]
        if entry is not None:
            return entry
    return ERROR_MAP[PortalError]


def problem_for(exc: PortalError) -> dict[str, object]:
    """Return the problem+json body for a lifecycle error."""
    entry = lookup(exc)
    problem: dict[str, object] = {
        "title": entry["title"],
        "status": entry["status"],
        "detail": entry["detail"],
        "code": exc.code,
    }
    if isinstance(exc, ValidationFailed):
        problem["errors"] = list(exc.errors)
    return problem


__all__ = ["ERROR_MAP", "INVALID_OR_EXPIRED", "lookup", "problem_for"]
