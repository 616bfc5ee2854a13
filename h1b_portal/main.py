from __future__ import annotations

import logging
import os
from typing import Callable

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError

from h1b_portal.config import load_config
from h1b_portal.db.base import get_engine
from h1b_portal.db.migrations_runner import apply_migrations
from h1b_portal.http.cors import apply_cors
from h1b_portal.http.problem import (
    handle_http_exception,
    handle_portal_error,
    handle_request_validation_error,
    handle_unexpected_error,
)
from h1b_portal.http.request_id import RequestIdMiddleware
from h1b_portal.logging_setup import configure_logging
from h1b_portal.logic.errors import PortalError
from h1b_portal.routes import api_router
from h1b_portal.routes.dependencies import get_settings

logger = logging.getLogger(__name__)


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


def _health_check() -> Callable[[], dict]:
    def check() -> dict:
        settings = get_settings()
        try:
            engine = get_engine(settings.database.url, timeout_seconds=settings.database.timeout_seconds)
            with engine.connect() as conn:
                conn.execute(sql_text("SELECT 1"))
            return {"status": "ok", "db": True}
        except SQLAlchemyError:
            logger.error("Health DB check failed", exc_info=True)
            return {"status": "degraded", "db": False}

    return check


def create_app() -> FastAPI:
    settings = load_config()
    # Configure global logging before app instantiation so all modules emit
    configure_logging(settings.log_level)
    app = FastAPI(title="H1-B Portal")

    app.add_exception_handler(PortalError, handle_portal_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
    app.add_middleware(RequestIdMiddleware)
    apply_cors(app, origins=settings.cors_origins)

    # Apply migrations on startup (guarded) to avoid import-time side effects
    @app.on_event("startup")
    def _apply_migrations() -> None:  # pragma: no cover - exercised via integration
        if not _truthy(os.getenv("AUTO_APPLY_MIGRATIONS")):
            logger.info("AUTO_APPLY_MIGRATIONS disabled; skipping migrations at startup")
            return
        db_url = settings.database.url
        if db_url.startswith("postgresql"):
            try:  # Attempt to import the driver only when needed
                import psycopg2  # type: ignore  # noqa: F401
            except ImportError:
                logger.warning("startup_migrations_skipped_no_db_driver")
                return
        engine = get_engine(db_url, timeout_seconds=settings.database.timeout_seconds)
        try:
            applied = apply_migrations(engine)
        except SQLAlchemyError:
            logger.error("Failed to apply migrations at startup", exc_info=True)
            raise
        logger.info("startup_migrations_applied count=%d", len(applied))

    # Routers
    app.include_router(api_router, prefix="/api/v1")
    # Test-support router (no prefix) exposes '/__test__/events'; never mounted in production
    if not settings.is_production:
        from h1b_portal.routes.test_support import router as test_support_router
        app.include_router(test_support_router)

    # Health endpoint (out of prefix for simplicity in local runs)
    health_check = _health_check()

    @app.get("/health")
    def health():  # pragma: no cover - trivial
        return health_check()

    return app


# Intentionally do not instantiate the app at import time to prevent side effects.
