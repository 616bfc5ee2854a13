"""Caller identity for the authenticated employee routes.

The upstream auth gateway terminates the session and forwards the signed-in
user as `X-User-Email` and `X-User-Role`. These routes only trust those
headers; they never see credentials.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Header, HTTPException
from pydantic import BaseModel

from h1b_portal.logic.errors import AccessDenied

logger = logging.getLogger(__name__)

EMPLOYEE_ROLE = "employee"


class Caller(BaseModel):
    email: str
    role: str


def require_employee(
    x_user_email: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> Caller:
    email = (x_user_email or "").strip()
    if not email:
        raise HTTPException(
            status_code=401,
            detail={
                "title": "Unauthorized",
                "status": 401,
                "detail": "Sign in to continue",
                "code": "UNAUTHENTICATED",
            },
        )
    role = (x_user_role or "").strip().lower()
    if role != EMPLOYEE_ROLE:
        logger.info("employee_route_denied role=%s", role or "-")
        raise AccessDenied("employee role required", role=role)
    return Caller(email=email, role=role)


__all__ = ["Caller", "EMPLOYEE_ROLE", "require_employee"]
