"""Central logging configuration for the portal.

One stdout handler on the root logger, shared with uvicorn. A handler-level
filter masks anything shaped like an invitation token, including the
questionnaire paths that appear in uvicorn access lines.
"""
from __future__ import annotations
import logging
import re
from logging.config import dictConfig

# 64 hex characters, the shape produced by logic.tokens.generate_token
_TOKEN_RE = re.compile(r"\b[0-9a-f]{64}\b", re.IGNORECASE)
REDACTED = "[redacted-token]"


class RedactTokensFilter(logging.Filter):
    """Rewrite the rendered message with token-shaped substrings masked."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # Leave mismatched format args to Handler.handleError
            return True
        masked = _TOKEN_RE.sub(REDACTED, message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def _dict_config(level: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"redact_tokens": {"()": RedactTokensFilter}},
        "formatters": {
            "default": {"format": "%(asctime)s %(levelname)s:%(name)s:%(message)s"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": "DEBUG",
                "formatter": "default",
                "filters": ["redact_tokens"],
                "stream": "ext://sys.stdout",
            }
        },
        "root": {"level": level, "handlers": ["console"]},
        "loggers": {
            "h1b_portal": {"level": level},
            "uvicorn": {"level": "INFO", "handlers": ["console"], "propagate": False},
            "uvicorn.error": {"level": "INFO", "handlers": ["console"], "propagate": False},
            "uvicorn.access": {"level": "INFO", "handlers": ["console"], "propagate": False},
            "sqlalchemy.engine": {"level": "WARNING"},
            "httpx": {"level": "WARNING"},
        },
    }


def configure_logging(level: str | None = None) -> None:
    """Configure portal logging once.

    Returns early when the root logger already has handlers, so reloaders and
    test runners that install their own do not get duplicate output. `level`
    comes from LOG_LEVEL and defaults to INFO.
    """
    root = logging.getLogger()
    if root.handlers:
        return
    dictConfig(_dict_config((level or "INFO").upper()))


__all__ = ["configure_logging", "RedactTokensFilter", "REDACTED"]
