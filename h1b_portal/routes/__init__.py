"""APIRouter registration for the H1-B Portal API."""

from __future__ import annotations

from fastapi import APIRouter

from h1b_portal.routes.employee import router as employee_router
from h1b_portal.routes.invitations import router as invitations_router
from h1b_portal.routes.notifications import router as notifications_router
from h1b_portal.routes.questionnaire import router as questionnaire_router
from h1b_portal.routes.subjects import router as subjects_router

api_router = APIRouter()
api_router.include_router(invitations_router, tags=["Invitations"])
api_router.include_router(questionnaire_router, tags=["Questionnaire"])
api_router.include_router(employee_router, tags=["Employee"])
api_router.include_router(subjects_router, tags=["Cases", "Petitions"])
api_router.include_router(notifications_router, tags=["Notifications"])

__all__ = ["api_router"]
