"""Functional tests for configuration loading and precedence."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from h1b_portal import config as config_module
from h1b_portal.config import load_config

_KEYS = (
    "APP_ENV",
    "LOG_LEVEL",
    "INVITATION_EXPIRY_DAYS",
    "APP_URL",
    "EMAIL_PROVIDER",
    "EMAIL_FROM",
    "RESEND_API_KEY",
    "SMTP_HOST",
    "SMTP_PORT",
    "SMTP_SECURE",
    "CORS_ALLOWED_ORIGINS",
)


@pytest.fixture
def isolated(monkeypatch, tmp_path):
    """Run load_config from an empty directory with a clean environment."""
    for key in _KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(config_module, "CONFIG_DIR", tmp_path / "config")
    monkeypatch.setattr(config_module, "ROOT_PORTAL_CONFIG", tmp_path / "portal_config.json")
    return tmp_path


def test_defaults(isolated):
    cfg = load_config()
    assert cfg.environment == "development"
    assert cfg.invitations.expiry_days == 30
    assert cfg.invitations.app_url == "http://localhost:3000"
    assert cfg.email.provider == "console"
    assert cfg.email.from_address == "H1-B Portal <noreply@h1bportal.com>"
    assert cfg.email.smtp_port == 587
    assert cfg.email.timeout_seconds == 10
    assert not cfg.is_production


def test_test_database_url_wins(isolated, monkeypatch):
    monkeypatch.setenv("TEST_DATABASE_URL", "sqlite:///a.db")
    monkeypatch.setenv("DATABASE_URL", "sqlite:///b.db")
    assert load_config().database.url == "sqlite:///a.db"


def test_precedence_env_over_file_over_json(isolated, monkeypatch):
    (isolated / "portal_config.json").write_text(
        json.dumps({"invitations": {"expiry_days": 14, "app_url": "https://json.example.com/"}}),
        encoding="utf-8",
    )
    cfg = load_config()
    assert cfg.invitations.expiry_days == 14
    assert cfg.invitations.app_url == "https://json.example.com"

    (isolated / "config").mkdir()
    (isolated / "config" / "invitations.expiry_days").write_text("21\n", encoding="utf-8")
    assert load_config().invitations.expiry_days == 21

    monkeypatch.setenv("INVITATION_EXPIRY_DAYS", "7")
    assert load_config().invitations.expiry_days == 7


def test_email_settings_from_env(isolated, monkeypatch):
    monkeypatch.setenv("EMAIL_PROVIDER", "SMTP")
    monkeypatch.setenv("SMTP_HOST", "mail.example.com")
    monkeypatch.setenv("SMTP_PORT", "465")
    monkeypatch.setenv("SMTP_SECURE", "true")
    cfg = load_config()
    assert cfg.email.provider == "smtp"
    assert cfg.email.smtp_host == "mail.example.com"
    assert cfg.email.smtp_port == 465
    assert cfg.email.smtp_secure is True


def test_production_flag(isolated, monkeypatch):
    monkeypatch.setenv("APP_ENV", "Production")
    assert load_config().is_production


@pytest.mark.parametrize(
    "key,value",
    [
        ("INVITATION_EXPIRY_DAYS", "0"),
        ("EMAIL_PROVIDER", "carrier-pigeon"),
        ("APP_URL", "portal.example.com"),
    ],
)
def test_invalid_values_are_rejected(isolated, monkeypatch, key, value):
    monkeypatch.setenv(key, value)
    with pytest.raises(ValidationError):
        load_config()


def test_cors_origins_are_split_and_normalised(isolated, monkeypatch):
    assert load_config().cors_origins == ["*"]
    monkeypatch.setenv("CORS_ALLOWED_ORIGINS", "https://portal.example.com/, https://admin.example.com")
    assert load_config().cors_origins == ["https://portal.example.com", "https://admin.example.com"]
