"""Invitation token generation."""

from __future__ import annotations

import secrets

# 32 random bytes, hex-encoded to 64 characters
TOKEN_BYTES = 32


def generate_token() -> str:
    """Return an unguessable invitation token from the OS CSPRNG."""
    return secrets.token_hex(TOKEN_BYTES)


__all__ = ["generate_token", "TOKEN_BYTES"]
