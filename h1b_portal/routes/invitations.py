"""Employer-facing invitation routes: create, list and resend."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from h1b_portal.logic.errors import ValidationFailed, field_error
from h1b_portal.logic.lifecycle import InvitationLifecycle
from h1b_portal.models.invitation import SubjectRef
from h1b_portal.models.payloads import CreateInvitationRequest, ResendResult
from h1b_portal.routes.dependencies import get_lifecycle

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/invitations", summary="Create an invitation and email the invitee")
def create_invitation(
    payload: CreateInvitationRequest,
    lifecycle: InvitationLifecycle = Depends(get_lifecycle),
):
    invitation = lifecycle.create_invitation_and_notify(
        payload.subject_ref(),
        payload.invitee(),
        expiry_days=payload.expiry_days,
    )
    return JSONResponse(jsonable_encoder(invitation), status_code=201)


@router.get("/invitations", summary="List invitations for a case or petition")
def list_invitations(
    case_id: Optional[str] = Query(default=None),
    petition_id: Optional[str] = Query(default=None),
    lifecycle: InvitationLifecycle = Depends(get_lifecycle),
):
    if bool(case_id) == bool(petition_id):
        raise ValidationFailed([field_error("case_id", "Exactly one of case_id or petition_id is required")])
    invitations = lifecycle.list_invitations(SubjectRef.from_columns(case_id, petition_id))
    return {"invitations": jsonable_encoder(invitations)}


@router.post("/invitations/{invitation_id}/resend", summary="Re-send the invitation as a reminder")
def resend_invitation(
    invitation_id: str,
    lifecycle: InvitationLifecycle = Depends(get_lifecycle),
):
    invitation = lifecycle.resend(invitation_id)
    return jsonable_encoder(ResendResult(invitation=invitation))


__all__ = ["router"]
