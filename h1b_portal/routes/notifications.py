"""Development-only route for previewing outbound email.

Disabled (404) when APP_ENV is production. Unlike invitation operations, a
delivery failure here is reported to the caller.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException

from h1b_portal.config import AppConfig
from h1b_portal.logic.email_templates import InvitationEmailContext
from h1b_portal.logic.notifier import Notifier
from h1b_portal.logic.timestamps import utcnow
from h1b_portal.models.payloads import TestEmailRequest
from h1b_portal.routes.dependencies import get_notifier, get_settings

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/notifications/test", summary="Send a sample email (non-production only)")
def send_test_email(
    payload: TestEmailRequest,
    settings: AppConfig = Depends(get_settings),
    notifier: Notifier = Depends(get_notifier),
):
    if settings.is_production:
        raise HTTPException(
            status_code=404,
            detail={"title": "Not Found", "status": 404, "detail": "Not available", "code": "NOT_AVAILABLE"},
        )
    app_url = settings.invitations.app_url
    if payload.template == "welcome":
        notifier.send_welcome(payload.to, payload.first_name, f"{app_url}/dashboard")
    else:
        ctx = InvitationEmailContext(
            first_name=payload.first_name,
            last_name=payload.last_name,
            employer_name="Test Company Inc.",
            case_type="h1b_initial",
            job_title="Software Engineer",
            login_url=f"{app_url}/signin?redirect=dashboard",
            expires_at=utcnow() + timedelta(days=settings.invitations.expiry_days),
            is_reminder=payload.template == "reminder",
        )
        notifier.send_invitation(payload.to, ctx)
    logger.info("test_email_sent template=%s", payload.template)
    return {"sent": True, "template": payload.template}


__all__ = ["router"]
