"""Case and petition data access.

Backs the read side the lifecycle needs for templating and questionnaire
headers (job title, type, employer and employee display names) plus the
inserts performed when an employer opens a case or petition.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Mapping

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from h1b_portal.logic.errors import PersistenceError
from h1b_portal.logic.repository_base import SqlStore
from h1b_portal.logic.timestamps import from_db, to_db
from h1b_portal.models.invitation import Invitee, Subject, SubjectKind, SubjectRef

logger = logging.getLogger(__name__)

DEFAULT_PETITION_TYPE = "h1b_initial"


def _row_to_subject(ref: SubjectRef, row: Mapping[str, Any]) -> Subject:
    return Subject(
        ref=ref,
        employer_id=str(row["employer_id"]),
        employer_name=str(row["employer_name"] or ""),
        employee_email=str(row["employee_email"]),
        employee_first_name=str(row["employee_first_name"]),
        employee_last_name=str(row["employee_last_name"]),
        job_title=str(row["job_title"]),
        subject_type=str(row["subject_type"]),
        created_at=from_db(row["created_at"]),
    )


class SubjectDirectory(SqlStore):
    def create_employer(self, legal_business_name: str, *, now: datetime, conn: Connection | None = None) -> str:
        employer_id = str(uuid.uuid4())
        with self._connection(conn, "employer.create") as c:
            c.execute(
                sql_text("INSERT INTO employers (id, legal_business_name, created_at) VALUES (:id, :name, :at)"),
                {"id": employer_id, "name": legal_business_name, "at": to_db(now)},
            )
        return employer_id

    def employer_exists(self, employer_id: str, *, conn: Connection | None = None) -> bool:
        with self._connection(conn, "employer.exists") as c:
            row = c.execute(
                sql_text("SELECT 1 FROM employers WHERE id = :id"),
                {"id": employer_id},
            ).first()
        return row is not None

    def create_case(
        self,
        employer_id: str,
        invitee: Invitee,
        *,
        job_title: str,
        case_type: str,
        now: datetime,
        conn: Connection | None = None,
    ) -> Subject:
        case_id = str(uuid.uuid4())
        with self._connection(conn, "case.create") as c:
            c.execute(
                sql_text(
                    """
                    INSERT INTO cases
                        (id, employer_id, employee_email, employee_first_name, employee_last_name,
                         job_title, case_type, created_at)
                    VALUES (:id, :employer_id, :email, :first, :last, :job_title, :case_type, :at)
                    """
                ),
                {
                    "id": case_id,
                    "employer_id": employer_id,
                    "email": invitee.email,
                    "first": invitee.first_name,
                    "last": invitee.last_name,
                    "job_title": job_title,
                    "case_type": case_type,
                    "at": to_db(now),
                },
            )
            subject = self.get(SubjectRef.case(case_id), conn=c)
        if subject is None:
            raise PersistenceError("case row missing after insert")
        logger.info("case_created id=%s employer_id=%s", case_id, employer_id)
        return subject

    def create_petition(
        self,
        employer_id: str,
        invitee: Invitee,
        *,
        job_title: str,
        petition_type: str = DEFAULT_PETITION_TYPE,
        now: datetime,
        conn: Connection | None = None,
    ) -> Subject:
        petition_id = str(uuid.uuid4())
        with self._connection(conn, "petition.create") as c:
            c.execute(
                sql_text(
                    """
                    INSERT INTO petitions
                        (id, employer_id, employee_email, employee_first_name, employee_last_name,
                         job_title, petition_type, petition_status, created_at)
                    VALUES (:id, :employer_id, :email, :first, :last, :job_title, :ptype, 'draft', :at)
                    """
                ),
                {
                    "id": petition_id,
                    "employer_id": employer_id,
                    "email": invitee.email,
                    "first": invitee.first_name,
                    "last": invitee.last_name,
                    "job_title": job_title,
                    "ptype": petition_type or DEFAULT_PETITION_TYPE,
                    "at": to_db(now),
                },
            )
            subject = self.get(SubjectRef.petition(petition_id), conn=c)
        if subject is None:
            raise PersistenceError("petition row missing after insert")
        logger.info("petition_created id=%s employer_id=%s", petition_id, employer_id)
        return subject

    def get(self, ref: SubjectRef, *, conn: Connection | None = None) -> Subject | None:
        """Return display fields for a case or petition, or None when absent."""
        if ref.kind is SubjectKind.CASE:
            table, type_column = "cases", "case_type"
        else:
            table, type_column = "petitions", "petition_type"
        with self._connection(conn, f"{table}.get") as c:
            row = c.execute(
                sql_text(
                    f"""
                    SELECT s.employer_id, e.legal_business_name AS employer_name,
                           s.employee_email, s.employee_first_name, s.employee_last_name,
                           s.job_title, s.{type_column} AS subject_type, s.created_at
                    FROM {table} s
                    LEFT JOIN employers e ON e.id = s.employer_id
                    WHERE s.id = :id
                    """
                ),
                {"id": ref.id},
            ).mappings().first()
        return _row_to_subject(ref, row) if row is not None else None


__all__ = ["SubjectDirectory", "DEFAULT_PETITION_TYPE"]
