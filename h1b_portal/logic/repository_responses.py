"""Questionnaire response data access.

One row per invitation in `questionnaire_responses`. Answers are stored as a
JSON object in a text column and merged shallowly on every upsert.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime
from typing import Any, Mapping

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from h1b_portal.logic.progress import merge_answers
from h1b_portal.logic.repository_base import SqlStore
from h1b_portal.logic.timestamps import from_db, to_db
from h1b_portal.models.invitation import QuestionnaireResponse, SubjectRef

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, invitation_id, case_id, petition_id, answers, current_section, "
    "completion_percentage, is_complete, created_at, updated_at"
)


def _load_answers(raw: Any) -> dict[str, Any]:
    if raw is None or raw == "":
        return {}
    if isinstance(raw, dict):
        return dict(raw)
    parsed = json.loads(raw)
    return parsed if isinstance(parsed, dict) else {}


def _row_to_response(row: Mapping[str, Any]) -> QuestionnaireResponse:
    return QuestionnaireResponse(
        id=str(row["id"]),
        invitation_id=str(row["invitation_id"]),
        subject=SubjectRef.from_columns(row["case_id"], row["petition_id"]),
        answers=_load_answers(row["answers"]),
        current_section=row["current_section"],
        completion_percentage=int(row["completion_percentage"] or 0),
        is_complete=bool(row["is_complete"]),
        created_at=from_db(row["created_at"]),
        updated_at=from_db(row["updated_at"]),
    )


class ResponseStore(SqlStore):
    def get_by_invitation(self, invitation_id: str, *, conn: Connection | None = None) -> QuestionnaireResponse | None:
        with self._connection(conn, "response.get_by_invitation") as c:
            row = c.execute(
                sql_text(f"SELECT {_COLUMNS} FROM questionnaire_responses WHERE invitation_id = :iid"),
                {"iid": invitation_id},
            ).mappings().first()
        return _row_to_response(row) if row is not None else None

    def upsert(
        self,
        invitation_id: str,
        subject: SubjectRef,
        answers: Mapping[str, Any],
        *,
        current_section: str | None,
        completion_percentage: int,
        is_complete: bool,
        now: datetime,
        conn: Connection | None = None,
    ) -> QuestionnaireResponse:
        """Create the response if absent, else merge `answers` over the stored bag.

        `current_section` of None keeps the stored section. Returns the
        post-merge record.
        """
        with self._connection(conn, "response.upsert") as c:
            existing = c.execute(
                sql_text(f"SELECT {_COLUMNS} FROM questionnaire_responses WHERE invitation_id = :iid"),
                {"iid": invitation_id},
            ).mappings().first()
            if existing is None:
                c.execute(
                    sql_text(
                        """
                        INSERT INTO questionnaire_responses
                            (id, invitation_id, case_id, petition_id, answers, current_section,
                             completion_percentage, is_complete, created_at, updated_at)
                        VALUES
                            (:id, :iid, :case_id, :petition_id, :answers, :section,
                             :pct, :complete, :now, :now)
                        """
                    ),
                    {
                        "id": str(uuid.uuid4()),
                        "iid": invitation_id,
                        **subject.as_columns(),
                        "answers": json.dumps(dict(answers), sort_keys=True),
                        "section": current_section,
                        "pct": int(completion_percentage),
                        "complete": bool(is_complete),
                        "now": to_db(now),
                    },
                )
                logger.info("response_row_inserted invitation_id=%s", invitation_id)
            else:
                merged = merge_answers(_load_answers(existing["answers"]), answers)
                c.execute(
                    sql_text(
                        """
                        UPDATE questionnaire_responses
                        SET answers = :answers,
                            current_section = :section,
                            completion_percentage = :pct,
                            is_complete = :complete,
                            updated_at = :now
                        WHERE invitation_id = :iid
                        """
                    ),
                    {
                        "answers": json.dumps(merged, sort_keys=True),
                        "section": current_section if current_section is not None else existing["current_section"],
                        "pct": int(completion_percentage),
                        "complete": bool(is_complete),
                        "now": to_db(now),
                        "iid": invitation_id,
                    },
                )
                logger.info("response_row_merged invitation_id=%s keys=%d", invitation_id, len(answers))
            row = c.execute(
                sql_text(f"SELECT {_COLUMNS} FROM questionnaire_responses WHERE invitation_id = :iid"),
                {"iid": invitation_id},
            ).mappings().one()
        return _row_to_response(row)


__all__ = ["ResponseStore"]
