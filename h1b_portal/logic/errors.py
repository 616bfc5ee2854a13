"""Closed error taxonomy for the invitation and questionnaire lifecycle.

Every failure the lifecycle can surface is one of these classes. Each carries
a stable `code`; the HTTP layer maps classes to statuses in
`h1b_portal/http/error_mapping.py` and never echoes exception text.
"""

from __future__ import annotations

from typing import Any


class PortalError(Exception):
    """Base class for all lifecycle errors."""

    code = "PORTAL_ERROR"

    def __init__(self, message: str = "", **context: Any) -> None:
        super().__init__(message or self.code)
        self.context = context


class InvitationNotFound(PortalError):
    """Unknown token or id, or an invitation the caller may not see."""

    code = "INVITATION_NOT_FOUND"


class InvitationExpired(InvitationNotFound):
    """Valid token whose invitation is past `expires_at`."""

    code = "INVITATION_EXPIRED"


class SubjectNotFound(InvitationNotFound):
    """The case or petition an invitation refers to does not exist."""

    code = "SUBJECT_NOT_FOUND"


class ValidationFailed(PortalError):
    """Missing or malformed invitee/case fields; carries field-level errors."""

    code = "VALIDATION_FAILED"

    def __init__(self, errors: list[dict[str, str]], message: str = "") -> None:
        super().__init__(message or "validation failed")
        self.errors = list(errors)


class AlreadyCompleted(PortalError):
    """Write attempted against a questionnaire that was already submitted."""

    code = "ALREADY_COMPLETED"


class AccessDenied(PortalError):
    """Caller is identified but not allowed to act on employee assignments."""

    code = "ACCESS_DENIED"


class PersistenceError(PortalError):
    """Store unavailable or a constraint was violated."""

    code = "PERSISTENCE_ERROR"


class NotificationError(PortalError):
    """Email dispatch failed. Never fatal to invitation operations."""

    code = "NOTIFICATION_ERROR"


class ConfigurationError(PortalError):
    """Misconfiguration detected at runtime, e.g. zero questionnaire fields."""

    code = "CONFIGURATION_ERROR"


def field_error(field: str, message: str) -> dict[str, str]:
    return {"field": field, "message": message}


__all__ = [
    "PortalError",
    "InvitationNotFound",
    "InvitationExpired",
    "SubjectNotFound",
    "ValidationFailed",
    "AlreadyCompleted",
    "AccessDenied",
    "PersistenceError",
    "NotificationError",
    "ConfigurationError",
    "field_error",
]
