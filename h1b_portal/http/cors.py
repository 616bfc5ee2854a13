"""CORS for the employer dashboard and the employee questionnaire front end."""

from __future__ import annotations

from typing import Iterable
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware


# Headers the browser may read from cross-origin responses
EXPOSE_HEADERS: list[str] = ["X-Request-Id"]
# Caller identity travels in headers set by the front end
ALLOW_HEADERS: list[str] = ["Content-Type", "X-Request-Id", "X-User-Email", "X-User-Role"]


def apply_cors(app: FastAPI, *, origins: Iterable[str] | None = None) -> None:
    allowed = list(origins or ["*"])
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed,
        # Wildcard origins cannot be combined with credentials
        allow_credentials="*" not in allowed,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=ALLOW_HEADERS,
        expose_headers=EXPOSE_HEADERS,
    )


__all__ = ["apply_cors", "EXPOSE_HEADERS", "ALLOW_HEADERS"]
