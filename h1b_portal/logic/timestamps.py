"""UTC timestamp helpers shared by the store adapters.

Timestamps are persisted as RFC3339 UTC text with microseconds and a trailing
'Z'. The fixed width keeps lexical order equal to chronological order, which
`ORDER BY created_at` relies on in both SQLite and PostgreSQL.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Return `dt` as an aware UTC datetime (naive values are taken as UTC)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_db(dt: datetime | None) -> str | None:
    """Format an RFC3339 UTC timestamp with trailing 'Z'."""
    if dt is None:
        return None
    base = ensure_utc(dt).isoformat(timespec="microseconds")
    return base.replace("+00:00", "Z")


def from_db(value: object) -> datetime | None:
    """Parse a stored timestamp back into an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))


def format_long_date(dt: datetime) -> str:
    """Render a date the way invitation emails show it: 'Monday, January 5, 2026'."""
    d = ensure_utc(dt)
    return f"{d:%A}, {d:%B} {d.day}, {d.year}"


__all__ = ["utcnow", "ensure_utc", "to_db", "from_db", "format_long_date"]
