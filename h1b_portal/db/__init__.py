"""Database bootstrap utilities for the H1-B Portal service.

This module exposes convenience imports for engine construction and the
migrations runner that applies SQL files from the local migrations/
directory. The DB layer is intentionally minimal: store adapters in
`h1b_portal/logic/` issue SQL through the shared Engine and map rows to
pydantic models, so no ORM objects leak into route handlers.
"""

from h1b_portal.db.base import get_engine, reset_engine
from h1b_portal.db.migrations_runner import apply_migrations

__all__ = [
    "get_engine",
    "reset_engine",
    "apply_migrations",
]
