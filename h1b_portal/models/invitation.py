"""Pydantic models for invitations, questionnaire responses and subjects."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class InvitationStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    OPENED = "opened"
    COMPLETED = "completed"
    EXPIRED = "expired"


class SubjectKind(str, Enum):
    CASE = "case"
    PETITION = "petition"


class SubjectRef(BaseModel):
    """Tagged reference to the case or petition an invitation is about.

    One kind and one id, so an invitation can never point at both a case and
    a petition (or neither). `as_columns()` spreads it back into the
    `case_id` / `petition_id` column pair used by the tables.
    """

    model_config = ConfigDict(frozen=True)

    kind: SubjectKind
    id: str

    @classmethod
    def case(cls, case_id: str) -> "SubjectRef":
        return cls(kind=SubjectKind.CASE, id=case_id)

    @classmethod
    def petition(cls, petition_id: str) -> "SubjectRef":
        return cls(kind=SubjectKind.PETITION, id=petition_id)

    @classmethod
    def from_columns(cls, case_id: str | None, petition_id: str | None) -> "SubjectRef":
        if bool(case_id) == bool(petition_id):
            raise ValueError("exactly one of case_id or petition_id must be set")
        if case_id:
            return cls.case(str(case_id))
        return cls.petition(str(petition_id))

    def as_columns(self) -> dict[str, str | None]:
        return {
            "case_id": self.id if self.kind is SubjectKind.CASE else None,
            "petition_id": self.id if self.kind is SubjectKind.PETITION else None,
        }


class Invitee(BaseModel):
    email: str
    first_name: str
    last_name: str


class Invitation(BaseModel):
    id: str
    subject: SubjectRef
    employee_email: str
    # Secret; excluded from every serialised form
    token: str = Field(exclude=True, repr=False)
    status: InvitationStatus
    created_at: datetime
    sent_at: datetime | None = None
    opened_at: datetime | None = None
    completed_at: datetime | None = None
    expires_at: datetime
    reminder_count: int = Field(default=0, ge=0)
    last_reminder_sent_at: datetime | None = None

    def is_past_expiry(self, now: datetime) -> bool:
        return now > self.expires_at

    def as_of(self, now: datetime) -> "Invitation":
        """Copy with status `expired` when the deadline has passed; completed stays completed."""
        if self.status in (InvitationStatus.COMPLETED, InvitationStatus.EXPIRED) or not self.is_past_expiry(now):
            return self
        return self.model_copy(update={"status": InvitationStatus.EXPIRED})


class QuestionnaireResponse(BaseModel):
    id: str
    invitation_id: str
    subject: SubjectRef
    answers: dict[str, Any] = Field(default_factory=dict)
    current_section: str | None = None
    completion_percentage: int = Field(default=0, ge=0, le=100)
    is_complete: bool = False
    created_at: datetime
    updated_at: datetime


class Subject(BaseModel):
    """Display fields of a case or petition, used for emails and page headers."""

    ref: SubjectRef
    employer_id: str
    employer_name: str = ""
    employee_email: str
    employee_first_name: str
    employee_last_name: str
    job_title: str
    subject_type: str
    created_at: datetime

    @property
    def employee_name(self) -> str:
        return f"{self.employee_first_name} {self.employee_last_name}".strip()


class QuestionnaireView(BaseModel):
    """What an invitee sees when opening a questionnaire."""

    invitation: Invitation
    subject: Subject
    response: QuestionnaireResponse | None = None


__all__ = [
    "InvitationStatus",
    "SubjectKind",
    "SubjectRef",
    "Invitee",
    "Invitation",
    "QuestionnaireResponse",
    "Subject",
    "QuestionnaireView",
]
