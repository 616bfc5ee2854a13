"""Shared plumbing for the SQL store adapters.

Adapters issue SQL text through a shared Engine. Every public method accepts
an optional `conn` so the lifecycle can run several writes in one
transaction; without it the method opens and commits its own. Driver errors
are translated into PersistenceError here so callers only ever see the
closed error taxonomy.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from h1b_portal.logic.errors import PersistenceError

logger = logging.getLogger(__name__)


class SqlStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Open a transaction that commits on success and rolls back on error."""
        try:
            with self.engine.begin() as conn:
                yield conn
        except SQLAlchemyError as exc:
            logger.error("store_transaction_failed", exc_info=True)
            raise PersistenceError("store transaction failed") from exc

    @contextmanager
    def _connection(self, conn: Connection | None, operation: str) -> Iterator[Connection]:
        try:
            if conn is not None:
                yield conn
            else:
                with self.engine.begin() as fresh:
                    yield fresh
        except IntegrityError as exc:
            logger.error("store_constraint_violation op=%s", operation, exc_info=True)
            raise PersistenceError(f"constraint violated during {operation}") from exc
        except SQLAlchemyError as exc:
            logger.error("store_operation_failed op=%s", operation, exc_info=True)
            raise PersistenceError(f"store unavailable during {operation}") from exc


__all__ = ["SqlStore"]
