"""Authenticated employee routes: assignment list and questionnaire by id."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.encoders import jsonable_encoder

from h1b_portal.http.identity import Caller, require_employee
from h1b_portal.logic.lifecycle import InvitationLifecycle
from h1b_portal.models.payloads import SaveProgressPayload
from h1b_portal.routes.dependencies import get_lifecycle

router = APIRouter(prefix="/employee")


@router.get("/assignments", summary="List the caller's questionnaire assignments")
def list_assignments(
    caller: Caller = Depends(require_employee),
    lifecycle: InvitationLifecycle = Depends(get_lifecycle),
):
    return {"assignments": jsonable_encoder(lifecycle.list_assignments(caller.email))}


@router.get("/questionnaire/{invitation_id}", summary="Open one of the caller's questionnaires")
def get_assignment(
    invitation_id: str,
    caller: Caller = Depends(require_employee),
    lifecycle: InvitationLifecycle = Depends(get_lifecycle),
):
    return jsonable_encoder(lifecycle.fetch_assignment(invitation_id, caller.email))


@router.post("/questionnaire/{invitation_id}", summary="Save progress on one of the caller's questionnaires")
def save_assignment(
    invitation_id: str,
    body: Optional[dict[str, Any]] = Body(default=None),
    caller: Caller = Depends(require_employee),
    lifecycle: InvitationLifecycle = Depends(get_lifecycle),
):
    payload = SaveProgressPayload.from_body(body)
    response = lifecycle.save_assignment_progress(
        invitation_id,
        caller.email,
        payload.current_section,
        payload.answers,
        payload.is_complete,
    )
    return jsonable_encoder(response)


__all__ = ["router"]
