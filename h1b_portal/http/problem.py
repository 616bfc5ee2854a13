"""Problem+JSON utilities and global exception handlers.

Defines the RFC 7807 media type and handler callables that turn lifecycle
errors, HTTP exceptions and request validation failures into
application/problem+json responses.
"""

from __future__ import annotations

import logging
from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from h1b_portal.http.error_mapping import problem_for
from h1b_portal.logic.errors import PortalError

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)


def _where(request: Request) -> str:
    """Route template and request id for log lines; raw paths may hold a token."""
    route = request.scope.get("route")
    template = getattr(route, "path", None)
    if template is None:
        template = "<unmatched>"
    else:
        # Some releases keep the router prefix in root_path rather than on the route
        mount = request.scope.get("root_path") or ""
        if mount and not template.startswith(mount):
            template = mount.rstrip("/") + template
    request_id = getattr(request.state, "request_id", None) or "-"
    return f"route={template} request_id={request_id}"


async def handle_portal_error(request: Request, exc: PortalError) -> JSONResponse:  # noqa: D401
    problem = problem_for(exc)
    status = int(problem["status"])  # type: ignore[arg-type]
    if status >= 500:
        logger.error("request_failed code=%s %s", exc.code, _where(request), exc_info=exc)
    else:
        logger.info("request_rejected code=%s status=%s %s", exc.code, status, _where(request))
    return JSONResponse(problem, status_code=status, media_type=PROBLEM_MEDIA_TYPE)


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    status = int(getattr(exc, "status_code", 500) or 500)
    if isinstance(exc.detail, dict):
        detail = exc.detail
    else:
        detail = {"title": "Error", "status": status, "detail": str(exc.detail or "")}
    headers = {str(k): str(v) for k, v in (exc.headers or {}).items()}
    return JSONResponse(detail, status_code=status, media_type=PROBLEM_MEDIA_TYPE, headers=headers or None)


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    problem = {
        "title": "Invalid Request",
        "status": 422,
        "detail": "Request validation failed",
        "errors": jsonable_encoder(exc.errors()),
    }
    return JSONResponse(problem, status_code=422, media_type=PROBLEM_MEDIA_TYPE)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error %s", _where(request), exc_info=exc)
    return JSONResponse(
        {"title": "Internal Server Error", "status": 500, "detail": "Something went wrong on our side. Please try again later."},
        status_code=500,
        media_type=PROBLEM_MEDIA_TYPE,
    )


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "handle_portal_error",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_unexpected_error",
]
