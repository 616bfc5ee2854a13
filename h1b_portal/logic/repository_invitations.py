"""Invitation data access.

Encapsulates queries and writes against `employee_invitations` so the
lifecycle and route handlers stay free of inline SQL.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Mapping

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from h1b_portal.logic.repository_base import SqlStore
from h1b_portal.logic.timestamps import from_db, to_db
from h1b_portal.models.invitation import Invitation, InvitationStatus, SubjectKind, SubjectRef

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, case_id, petition_id, employee_email, invitation_token, status, created_at, "
    "sent_at, opened_at, completed_at, expires_at, reminder_count, last_reminder_sent_at"
)

# Status -> timestamp column stamped alongside it
STATUS_TIMESTAMP_COLUMN: dict[InvitationStatus, str] = {
    InvitationStatus.SENT: "sent_at",
    InvitationStatus.OPENED: "opened_at",
    InvitationStatus.COMPLETED: "completed_at",
}


def _row_to_invitation(row: Mapping[str, Any]) -> Invitation:
    return Invitation(
        id=str(row["id"]),
        subject=SubjectRef.from_columns(row["case_id"], row["petition_id"]),
        employee_email=str(row["employee_email"]),
        token=str(row["invitation_token"]),
        status=InvitationStatus(row["status"]),
        created_at=from_db(row["created_at"]),
        sent_at=from_db(row["sent_at"]),
        opened_at=from_db(row["opened_at"]),
        completed_at=from_db(row["completed_at"]),
        expires_at=from_db(row["expires_at"]),
        reminder_count=int(row["reminder_count"] or 0),
        last_reminder_sent_at=from_db(row["last_reminder_sent_at"]),
    )


class InvitationStore(SqlStore):
    def create(
        self,
        subject: SubjectRef,
        email: str,
        token: str,
        expires_at: datetime,
        *,
        now: datetime,
        conn: Connection | None = None,
    ) -> Invitation:
        """Insert a pending invitation with zero reminders and return it."""
        invitation_id = str(uuid.uuid4())
        params = {
            "id": invitation_id,
            **subject.as_columns(),
            "email": email,
            "token": token,
            "status": InvitationStatus.PENDING.value,
            "created_at": to_db(now),
            "expires_at": to_db(expires_at),
        }
        with self._connection(conn, "invitation.create") as c:
            c.execute(
                sql_text(
                    """
                    INSERT INTO employee_invitations
                        (id, case_id, petition_id, employee_email, invitation_token,
                         status, created_at, expires_at, reminder_count)
                    VALUES
                        (:id, :case_id, :petition_id, :email, :token,
                         :status, :created_at, :expires_at, 0)
                    """
                ),
                params,
            )
            row = c.execute(
                sql_text(f"SELECT {_COLUMNS} FROM employee_invitations WHERE id = :id"),
                {"id": invitation_id},
            ).mappings().one()
        logger.info("invitation_row_inserted id=%s subject=%s:%s", invitation_id, subject.kind.value, subject.id)
        return _row_to_invitation(row)

    def get_by_token(self, token: str, *, conn: Connection | None = None) -> Invitation | None:
        with self._connection(conn, "invitation.get_by_token") as c:
            row = c.execute(
                sql_text(f"SELECT {_COLUMNS} FROM employee_invitations WHERE invitation_token = :token"),
                {"token": token},
            ).mappings().first()
        return _row_to_invitation(row) if row is not None else None

    def get_by_id(self, invitation_id: str, *, conn: Connection | None = None) -> Invitation | None:
        with self._connection(conn, "invitation.get_by_id") as c:
            row = c.execute(
                sql_text(f"SELECT {_COLUMNS} FROM employee_invitations WHERE id = :id"),
                {"id": invitation_id},
            ).mappings().first()
        return _row_to_invitation(row) if row is not None else None

    def list_by_subject(self, subject: SubjectRef, *, conn: Connection | None = None) -> list[Invitation]:
        """Return the subject's invitations, newest `created_at` first."""
        column = "case_id" if subject.kind is SubjectKind.CASE else "petition_id"
        with self._connection(conn, "invitation.list_by_subject") as c:
            rows = c.execute(
                sql_text(
                    f"SELECT {_COLUMNS} FROM employee_invitations "
                    f"WHERE {column} = :sid ORDER BY created_at DESC"
                ),
                {"sid": subject.id},
            ).mappings().all()
        return [_row_to_invitation(r) for r in rows]

    def list_by_email(self, email: str, *, conn: Connection | None = None) -> list[Invitation]:
        """Return invitations addressed to `email` (case-insensitive), newest first."""
        with self._connection(conn, "invitation.list_by_email") as c:
            rows = c.execute(
                sql_text(
                    f"SELECT {_COLUMNS} FROM employee_invitations "
                    "WHERE LOWER(employee_email) = LOWER(:email) ORDER BY created_at DESC"
                ),
                {"email": email},
            ).mappings().all()
        return [_row_to_invitation(r) for r in rows]

    def update_status(
        self,
        invitation_id: str,
        status: InvitationStatus,
        *,
        at: datetime,
        conn: Connection | None = None,
    ) -> None:
        """Set `status` and stamp its correlated timestamp column, if any.

        Re-applying the same status simply rewrites the same values.
        """
        column = STATUS_TIMESTAMP_COLUMN.get(status)
        params = {"status": status.value, "id": invitation_id}
        assignments = "status = :status"
        if column:
            assignments += f", {column} = :at"
            params["at"] = to_db(at)
        with self._connection(conn, "invitation.update_status") as c:
            c.execute(
                sql_text(f"UPDATE employee_invitations SET {assignments} WHERE id = :id"),
                params,
            )
        logger.info("invitation_status_updated id=%s status=%s", invitation_id, status.value)

    def increment_reminder(
        self,
        invitation_id: str,
        *,
        at: datetime,
        conn: Connection | None = None,
    ) -> None:
        """Count a resend: reminder_count + 1, reminder timestamp, status back to sent."""
        with self._connection(conn, "invitation.increment_reminder") as c:
            c.execute(
                sql_text(
                    """
                    UPDATE employee_invitations
                    SET reminder_count = reminder_count + 1,
                        last_reminder_sent_at = :at,
                        status = :status
                    WHERE id = :id
                    """
                ),
                {"at": to_db(at), "status": InvitationStatus.SENT.value, "id": invitation_id},
            )
        logger.info("invitation_reminder_recorded id=%s", invitation_id)


__all__ = ["InvitationStore", "STATUS_TIMESTAMP_COLUMN"]
