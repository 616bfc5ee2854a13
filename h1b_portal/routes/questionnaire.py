"""Token-addressed questionnaire routes used from the emailed link."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.encoders import jsonable_encoder

from h1b_portal.logic.lifecycle import InvitationLifecycle
from h1b_portal.models.payloads import SaveProgressPayload
from h1b_portal.routes.dependencies import get_lifecycle

router = APIRouter()


@router.get("/questionnaire/{token}", summary="Open a questionnaire by invitation token")
def get_questionnaire(token: str, lifecycle: InvitationLifecycle = Depends(get_lifecycle)):
    """Return `{invitation, subject, response}`; the first read marks the invitation opened."""
    return jsonable_encoder(lifecycle.fetch_by_token(token))


@router.post("/questionnaire/{token}", summary="Save questionnaire progress by token")
def save_questionnaire(
    token: str,
    body: Optional[dict[str, Any]] = Body(default=None),
    lifecycle: InvitationLifecycle = Depends(get_lifecycle),
):
    payload = SaveProgressPayload.from_body(body)
    response = lifecycle.save_progress_by_token(
        token,
        payload.current_section,
        payload.answers,
        payload.is_complete,
    )
    return jsonable_encoder(response)


__all__ = ["router"]
