"""Configuration utilities for the H1-B Portal service.

This module loads application configuration with the following rules:
- Primary source: `portal_config.json` at the project root.
- Overrides: environment variables, then optional text files under `config/`.
- Validation: Pydantic models enforce required fields and value constraints.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_PORTAL_CONFIG = Path("portal_config.json")
logger = logging.getLogger(__name__)

EMAIL_PROVIDERS = {"console", "smtp", "resend", "sendgrid"}


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        # Recoverable: log and ignore unreadable override
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


def _truthy(value: Optional[str]) -> bool:
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


class DatabaseConfig(BaseModel):
    url: str
    timeout_seconds: float = Field(default=10.0, gt=0)

    @field_validator("url")
    @classmethod
    def url_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.url must be a non-empty string")
        return v


class InvitationConfig(BaseModel):
    expiry_days: int = Field(default=30, gt=0)
    app_url: str = "http://localhost:3000"

    @field_validator("app_url")
    @classmethod
    def app_url_without_trailing_slash(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("invitations.app_url must be an http(s) URL")
        return v.rstrip("/")


class EmailConfig(BaseModel):
    provider: str = "console"
    from_address: str = "H1-B Portal <noreply@h1bportal.com>"
    resend_api_key: Optional[str] = None
    sendgrid_api_key: Optional[str] = None
    smtp_host: Optional[str] = None
    smtp_port: int = Field(default=587, gt=0)
    smtp_secure: bool = False
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    timeout_seconds: float = Field(default=10.0, gt=0)

    @field_validator("provider")
    @classmethod
    def provider_must_be_known(cls, v: str) -> str:
        v = v.strip().lower()
        # "nodemailer" is accepted as an alias for plain SMTP
        if v == "nodemailer":
            v = "smtp"
        if v not in EMAIL_PROVIDERS:
            raise ValueError(f"email.provider must be one of {sorted(EMAIL_PROVIDERS)}")
        return v


class AppConfig(BaseModel):
    environment: str = "development"
    log_level: str = "INFO"
    cors_origins: list[str] = ["*"]
    database: DatabaseConfig
    invitations: InvitationConfig
    email: EmailConfig

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:  # pragma: no cover - defensive
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) portal_config.json at project root (primary base)
    4) Safe defaults for development
    """

    base = _read_json_file(ROOT_PORTAL_CONFIG)

    # Helpers to fetch from base JSON
    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        return str(cur) if cur is not None else default

    def _pick(env_key: str, file_key: str, base_key: str, default: Optional[str] = None) -> Optional[str]:
        return _env(env_key) or _read_config_file(file_key) or _base(base_key, default)

    environment = _pick("APP_ENV", "app.env", "environment", "development")
    log_level = _pick("LOG_LEVEL", "log.level", "log_level", "INFO")
    cors_raw = _pick("CORS_ALLOWED_ORIGINS", "cors.origins", "cors_origins", "*")
    cors_origins = [o.strip().rstrip("/") for o in str(cors_raw).split(",") if o.strip()]

    # Database
    db_url = (
        _env("TEST_DATABASE_URL")
        or _pick("DATABASE_URL", "database.url", "database.url", "sqlite+pysqlite:///:memory:")
    )
    db_timeout = _pick("DATABASE_TIMEOUT_SECONDS", "database.timeout_seconds", "database.timeout_seconds", "10")

    # Invitations
    expiry_days = _pick("INVITATION_EXPIRY_DAYS", "invitations.expiry_days", "invitations.expiry_days", "30")
    app_url = _pick("APP_URL", "app.url", "invitations.app_url", "http://localhost:3000")

    # Email
    provider = _pick("EMAIL_PROVIDER", "email.provider", "email.provider", "console")
    from_address = _pick("EMAIL_FROM", "email.from", "email.from_address", "H1-B Portal <noreply@h1bportal.com>")

    try:
        email_cfg = EmailConfig(
            provider=str(provider),
            from_address=str(from_address),
            resend_api_key=_pick("RESEND_API_KEY", "email.resend_api_key", "email.resend_api_key"),
            sendgrid_api_key=_pick("SENDGRID_API_KEY", "email.sendgrid_api_key", "email.sendgrid_api_key"),
            smtp_host=_pick("SMTP_HOST", "smtp.host", "email.smtp_host"),
            smtp_port=int(str(_pick("SMTP_PORT", "smtp.port", "email.smtp_port", "587")).strip()),
            smtp_secure=_truthy(_pick("SMTP_SECURE", "smtp.secure", "email.smtp_secure", "false")),
            smtp_user=_pick("SMTP_USER", "smtp.user", "email.smtp_user"),
            smtp_password=_pick("SMTP_PASS", "smtp.password", "email.smtp_password"),
            timeout_seconds=float(str(_pick("EMAIL_TIMEOUT_SECONDS", "email.timeout_seconds", "email.timeout_seconds", "10")).strip()),
        )
        cfg = AppConfig(
            environment=str(environment),
            log_level=str(log_level),
            cors_origins=cors_origins or ["*"],
            database=DatabaseConfig(url=str(db_url), timeout_seconds=float(str(db_timeout).strip())),
            invitations=InvitationConfig(expiry_days=int(str(expiry_days).strip()), app_url=str(app_url)),
            email=email_cfg,
        )
        return cfg
    except PydanticValidationError as e:
        # Surface actionable message
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "InvitationConfig",
    "EmailConfig",
    "EMAIL_PROVIDERS",
    "load_config",
]
