"""Case and petition intake routes.

Opening a case or petition invites its employee straight away. When that
invitation cannot be created the subject is still returned with
`invitation: null`.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from h1b_portal.logic.lifecycle import InvitationLifecycle
from h1b_portal.models.payloads import CreateCaseRequest, CreatePetitionRequest, SubjectCreated
from h1b_portal.routes.dependencies import get_lifecycle

router = APIRouter()


@router.post("/cases", summary="Open a case and invite its employee")
def create_case(payload: CreateCaseRequest, lifecycle: InvitationLifecycle = Depends(get_lifecycle)):
    subject, invitation = lifecycle.open_case(
        payload.employer_id,
        payload.invitee(),
        job_title=payload.job_title,
        case_type=payload.case_type,
    )
    body = SubjectCreated(subject=subject, invitation=invitation)
    return JSONResponse(jsonable_encoder(body), status_code=201)


@router.post("/petitions", summary="Open a petition and invite its employee")
def create_petition(payload: CreatePetitionRequest, lifecycle: InvitationLifecycle = Depends(get_lifecycle)):
    subject, invitation = lifecycle.open_petition(
        payload.employer_id,
        payload.invitee(),
        job_title=payload.job_title,
        petition_type=payload.petition_type,
    )
    body = SubjectCreated(subject=subject, invitation=invitation)
    return JSONResponse(jsonable_encoder(body), status_code=201)


__all__ = ["router"]
