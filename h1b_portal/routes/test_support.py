"""Test support routes.

Test-only endpoints used by integration tests to reset buffered domain
events and to observe them.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse, Response

from h1b_portal.logic import events

router = APIRouter()


@router.post("/__test__/reset-state", summary="Test-only reset state")
def reset_state() -> Response:
    """Clear the domain event buffer. Returns 204 with no body."""
    events.EVENT_BUFFER.clear()
    return Response(status_code=204)


@router.get("/__test__/events", summary="Test-only events feed")
def get_test_events():
    """Expose buffered domain events without clearing the buffer."""
    return JSONResponse(events.get_buffered_events(clear=False), status_code=200)


__all__ = ["router", "reset_state", "get_test_events"]
