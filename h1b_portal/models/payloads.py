"""Request and response body models for the HTTP API."""

from __future__ import annotations

from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from h1b_portal.logic.errors import ValidationFailed, field_error
from h1b_portal.models.invitation import Invitation, Invitee, Subject, SubjectRef


class CreateInvitationRequest(BaseModel):
    """Invite an employee to the questionnaire for a case or petition.

    Invitee fields are optional here so that missing values surface as
    field-level VALIDATION_FAILED problems from the lifecycle.
    """

    case_id: Optional[str] = None
    petition_id: Optional[str] = None
    employee_email: Optional[str] = None
    employee_first_name: Optional[str] = None
    employee_last_name: Optional[str] = None
    expiry_days: Optional[int] = None

    def subject_ref(self) -> SubjectRef:
        if bool(self.case_id) == bool(self.petition_id):
            raise ValidationFailed([field_error("case_id", "Exactly one of case_id or petition_id is required")])
        return SubjectRef.from_columns(self.case_id, self.petition_id)

    def invitee(self) -> Invitee:
        return Invitee(
            email=self.employee_email or "",
            first_name=self.employee_first_name or "",
            last_name=self.employee_last_name or "",
        )


class _SubjectRequest(BaseModel):
    employer_id: str
    employee_email: Optional[str] = None
    employee_first_name: Optional[str] = None
    employee_last_name: Optional[str] = None
    job_title: str = Field(min_length=1)

    def invitee(self) -> Invitee:
        return Invitee(
            email=self.employee_email or "",
            first_name=self.employee_first_name or "",
            last_name=self.employee_last_name or "",
        )


class CreateCaseRequest(_SubjectRequest):
    case_type: str = Field(min_length=1)


class CreatePetitionRequest(_SubjectRequest):
    petition_type: str = "h1b_initial"


class SubjectCreated(BaseModel):
    subject: Subject
    # None when the invitation could not be created; the subject still stands
    invitation: Optional[Invitation] = None


class TestEmailRequest(BaseModel):
    to: str
    template: Literal["welcome", "invitation", "reminder"] = "invitation"
    first_name: str = "Test"
    last_name: str = "User"


class ResendResult(BaseModel):
    resent: bool = True
    invitation: Invitation


# Keys of the save body that are not answers
_CONTROL_KEYS = {"current_section", "completion_percentage", "is_complete"}
# Record fields a client may echo back from a previous GET; never answers
_RECORD_KEYS = {"id", "invitation_id", "case_id", "petition_id", "subject", "created_at", "updated_at"}


class SaveProgressPayload(BaseModel):
    """Parsed `{...answers, current_section, completion_percentage, is_complete}` body.

    `completion_percentage` is accepted and discarded; the server recomputes it.
    """

    model_config = ConfigDict(frozen=True)

    current_section: Optional[str] = None
    is_complete: bool = False
    answers: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_body(cls, body: Mapping[str, Any] | None) -> "SaveProgressPayload":
        body = dict(body or {})
        answers: dict[str, Any] = {}
        nested = body.pop("answers", None)
        if isinstance(nested, dict):
            answers.update(nested)
        for key, value in body.items():
            if key in _CONTROL_KEYS or key in _RECORD_KEYS:
                continue
            answers[key] = value
        section = body.get("current_section")
        return cls(
            current_section=str(section) if section not in (None, "") else None,
            is_complete=body.get("is_complete") is True,
            answers=answers,
        )


__all__ = [
    "CreateInvitationRequest",
    "CreateCaseRequest",
    "CreatePetitionRequest",
    "SubjectCreated",
    "TestEmailRequest",
    "ResendResult",
    "SaveProgressPayload",
]
