"""Lightweight SQL migrations runner.

Applies .sql files in lexical order from the local `migrations/` directory.
Skips rollback files and records applied filenames in a `schema_migrations`
table so the same migration is never reapplied to a database. Intended for
local development and CI; production environments may run the same files
through the platform's migration mechanism.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection, Engine

from h1b_portal.logic.timestamps import to_db, utcnow

logger = logging.getLogger(__name__)

DEFAULT_MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "migrations"

_JOURNAL_DDL = (
    "CREATE TABLE IF NOT EXISTS schema_migrations ("
    " filename TEXT PRIMARY KEY,"
    " applied_at TEXT NOT NULL"
    ")"
)


def _iter_sql_files(root: Path) -> Iterable[Path]:
    for p in sorted(root.glob("*.sql")):
        # Skip rollback scripts in forward runs
        if "rollback" in p.name.lower():
            continue
        yield p


def _exec_sql_compat(conn: Connection, sql: str) -> None:
    """Execute SQL text, tolerating multi-statement files on SQLite.

    SQLite's DB-API (pysqlite) does not allow multiple statements in a single
    execute() call, so statements are split on ';' for SQLite, ignoring empty
    segments and comment-only chunks. Other dialects receive the full script.
    """
    name = (conn.dialect.name or "").lower()
    if "sqlite" in name:
        for stmt in sql.split(";"):
            lines = [ln for ln in stmt.splitlines() if not ln.strip().startswith("--")]
            s = "\n".join(lines).strip()
            if not s:
                continue
            if s.upper() in {"BEGIN", "COMMIT", "END"}:
                continue
            conn.exec_driver_sql(s)
        return
    conn.exec_driver_sql(sql)


def applied_migrations(engine: Engine) -> set[str]:
    """Return the filenames already recorded in the journal table."""
    with engine.begin() as conn:
        conn.execute(sql_text(_JOURNAL_DDL))
        rows = conn.execute(sql_text("SELECT filename FROM schema_migrations")).fetchall()
    return {str(r[0]) for r in rows}


def apply_migrations(engine: Engine, migrations_dir: str | os.PathLike[str] | None = None) -> list[str]:
    """Apply pending migrations and return the filenames applied by this call.

    Each file runs in its own transaction together with its journal row, so a
    failing file leaves earlier files applied and itself unrecorded.
    """
    root = Path(migrations_dir) if migrations_dir is not None else DEFAULT_MIGRATIONS_DIR
    if not root.exists():  # pragma: no cover - optional
        logger.warning("migrations_dir_missing path=%s", root)
        return []

    done = applied_migrations(engine)
    newly_applied: list[str] = []
    for sql_path in _iter_sql_files(root):
        fname = sql_path.name
        if fname in done:
            continue
        sql = sql_path.read_text(encoding="utf-8")
        if not sql.strip():
            continue
        with engine.begin() as conn:
            _exec_sql_compat(conn, sql)
            conn.execute(
                sql_text("INSERT INTO schema_migrations (filename, applied_at) VALUES (:f, :at)"),
                {"f": fname, "at": to_db(utcnow())},
            )
        logger.info("migration_applied file=%s", fname)
        newly_applied.append(fname)
    return newly_applied


__all__ = ["apply_migrations", "applied_migrations", "DEFAULT_MIGRATIONS_DIR"]
