"""Invitation lifecycle engine.

State machine over invitation status:

    pending -> sent -> opened -> completed
    any non-terminal state -> expired when read after `expires_at`
    sent | opened | expired -> sent on resend (reminder_count + 1)

The engine is stateless: stores, the subject directory and the notifier are
passed in, and a clock is injectable so expiry can be exercised in tests.
Notification failures are downgraded to warnings here and never undo or
block an invitation operation.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping
from urllib.parse import quote, urlencode

from h1b_portal.logic import events
from h1b_portal.logic.email_templates import InvitationEmailContext
from h1b_portal.logic.errors import (
    AlreadyCompleted,
    InvitationExpired,
    InvitationNotFound,
    NotificationError,
    PortalError,
    SubjectNotFound,
    ValidationFailed,
    field_error,
)
from h1b_portal.logic.notifier import Notifier
from h1b_portal.logic.progress import answered_fields, compute_completion, is_known_section, merge_answers
from h1b_portal.logic.repository_invitations import InvitationStore
from h1b_portal.logic.repository_responses import ResponseStore
from h1b_portal.logic.repository_subjects import DEFAULT_PETITION_TYPE, SubjectDirectory
from h1b_portal.logic.timestamps import utcnow
from h1b_portal.logic.tokens import generate_token
from h1b_portal.models.invitation import (
    Invitation,
    InvitationStatus,
    Invitee,
    QuestionnaireResponse,
    QuestionnaireView,
    Subject,
    SubjectRef,
)

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_DAYS = 30


def validate_invitee(invitee: Invitee) -> None:
    errors = []
    email = (invitee.email or "").strip()
    if not email:
        errors.append(field_error("employee_email", "Employee email is required"))
    elif "@" not in email or email.startswith("@") or email.endswith("@"):
        errors.append(field_error("employee_email", "Employee email is not a valid address"))
    if not (invitee.first_name or "").strip():
        errors.append(field_error("employee_first_name", "Employee first name is required"))
    if not (invitee.last_name or "").strip():
        errors.append(field_error("employee_last_name", "Employee last name is required"))
    if errors:
        raise ValidationFailed(errors)


class InvitationLifecycle:
    def __init__(
        self,
        invitations: InvitationStore,
        responses: ResponseStore,
        subjects: SubjectDirectory,
        notifier: Notifier,
        *,
        expiry_days: int = DEFAULT_EXPIRY_DAYS,
        app_url: str = "http://localhost:3000",
        clock: Callable[[], datetime] = utcnow,
        token_factory: Callable[[], str] = generate_token,
    ) -> None:
        self.invitations = invitations
        self.responses = responses
        self.subjects = subjects
        self.notifier = notifier
        self.expiry_days = expiry_days
        self.app_url = app_url.rstrip("/")
        self.clock = clock
        self.token_factory = token_factory

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def login_url(self, invitation: Invitation) -> str:
        """Sign-in link that returns the invitee to their questionnaire."""
        query = urlencode(
            {
                "email": invitation.employee_email,
                "redirect": "dashboard",
                "next": f"/questionnaire/{invitation.token}",
            },
            quote_via=quote,
        )
        return f"{self.app_url}/signin?{query}"

    def _require(self, invitation_id: str) -> Invitation:
        invitation = self.invitations.get_by_id(invitation_id)
        if invitation is None:
            raise InvitationNotFound("invitation not found", invitation_id=invitation_id)
        return invitation

    def _require_subject(self, ref: SubjectRef) -> Subject:
        subject = self.subjects.get(ref)
        if subject is None:
            raise SubjectNotFound(f"{ref.kind.value} not found", subject_id=ref.id)
        return subject

    def _check_expiry(self, invitation: Invitation, now: datetime) -> None:
        """Raise InvitationExpired, recording the transition on first detection.

        Completed invitations are terminal and never flip to expired.
        """
        if invitation.status is InvitationStatus.COMPLETED:
            return
        if invitation.status is InvitationStatus.EXPIRED:
            raise InvitationExpired("invitation expired", invitation_id=invitation.id)
        if invitation.is_past_expiry(now):
            self.invitations.update_status(invitation.id, InvitationStatus.EXPIRED, at=now)
            events.publish(events.INVITATION_EXPIRED, {"invitation_id": invitation.id})
            logger.info("invitation_expired id=%s", invitation.id)
            raise InvitationExpired("invitation expired", invitation_id=invitation.id)

    def _dispatch(self, invitation: Invitation, subject: Subject, *, is_reminder: bool) -> bool:
        ctx = InvitationEmailContext(
            first_name=subject.employee_first_name,
            last_name=subject.employee_last_name,
            employer_name=subject.employer_name,
            case_type=subject.subject_type,
            job_title=subject.job_title,
            login_url=self.login_url(invitation),
            expires_at=invitation.expires_at,
            is_reminder=is_reminder,
        )
        try:
            self.notifier.send_invitation(invitation.employee_email, ctx)
        except NotificationError as exc:
            logger.warning(
                "invitation_email_not_sent id=%s reminder=%s reason=%s",
                invitation.id,
                is_reminder,
                exc.code,
            )
            return False
        return True

    def _open(self, invitation: Invitation) -> QuestionnaireView:
        now = self.clock()
        self._check_expiry(invitation, now)
        if invitation.status is InvitationStatus.SENT and invitation.opened_at is None:
            self.invitations.update_status(invitation.id, InvitationStatus.OPENED, at=now)
            events.publish(events.INVITATION_OPENED, {"invitation_id": invitation.id})
            invitation = self._require(invitation.id)
        subject = self._require_subject(invitation.subject)
        response = self.responses.get_by_invitation(invitation.id)
        return QuestionnaireView(invitation=invitation, subject=subject, response=response)

    # ------------------------------------------------------------------
    # operations
    # ------------------------------------------------------------------
    def create_invitation_and_notify(
        self,
        subject_ref: SubjectRef,
        invitee: Invitee,
        expiry_days: int | None = None,
    ) -> Invitation:
        """Persist a pending invitation, then try to email it.

        A failed dispatch leaves the invitation `pending` and still returns it;
        the link remains usable.
        """
        validate_invitee(invitee)
        days = self.expiry_days if expiry_days is None else expiry_days
        if days <= 0:
            raise ValidationFailed([field_error("expiry_days", "Expiry must be at least one day")])
        subject = self._require_subject(subject_ref)

        now = self.clock()
        invitation = self.invitations.create(
            subject_ref,
            invitee.email.strip(),
            self.token_factory(),
            now + timedelta(days=days),
            now=now,
        )
        events.publish(
            events.INVITATION_CREATED,
            {"invitation_id": invitation.id, "subject": subject_ref.kind.value, "subject_id": subject_ref.id},
        )
        logger.info("invitation_created id=%s subject=%s:%s", invitation.id, subject_ref.kind.value, subject_ref.id)

        if not self._dispatch(invitation, subject, is_reminder=False):
            return invitation
        self.invitations.update_status(invitation.id, InvitationStatus.SENT, at=self.clock())
        events.publish(events.INVITATION_SENT, {"invitation_id": invitation.id})
        return self._require(invitation.id)

    def list_invitations(self, subject_ref: SubjectRef) -> list[Invitation]:
        now = self.clock()
        return [inv.as_of(now) for inv in self.invitations.list_by_subject(subject_ref)]

    def fetch_by_token(self, token: str) -> QuestionnaireView:
        invitation = self.invitations.get_by_token(token) if token else None
        if invitation is None:
            raise InvitationNotFound("invalid invitation token")
        return self._open(invitation)

    def save_progress(
        self,
        invitation_id: str,
        section_id: str | None,
        fields: Mapping[str, Any],
        is_complete: bool = False,
    ) -> QuestionnaireResponse:
        """Merge `fields` into the response and recompute completion.

        The upsert and, when `is_complete`, the `completed` transition commit
        in one transaction. Re-sending the same payload is safe: a repeated
        final submit that changes no answer returns the stored response.
        """
        invitation = self._require(invitation_id)
        if invitation.status is InvitationStatus.COMPLETED:
            stored = self.responses.get_by_invitation(invitation_id)
            if is_complete and stored is not None and merge_answers(stored.answers, fields) == stored.answers:
                # Retried final submit; nothing to change
                logger.info("questionnaire_submit_replayed id=%s", invitation_id)
                return stored
            raise AlreadyCompleted("questionnaire already submitted", invitation_id=invitation_id)
        now = self.clock()
        self._check_expiry(invitation, now)
        if section_id is not None and not is_known_section(section_id):
            raise ValidationFailed([field_error("current_section", f"Unknown section '{section_id}'")])

        with self.invitations.transaction() as conn:
            existing = self.responses.get_by_invitation(invitation_id, conn=conn)
            merged = merge_answers(existing.answers if existing else {}, fields)
            percent = compute_completion(answered_fields(merged))
            response = self.responses.upsert(
                invitation_id,
                invitation.subject,
                fields,
                current_section=section_id,
                completion_percentage=percent,
                is_complete=bool(is_complete),
                now=now,
                conn=conn,
            )
            if is_complete:
                self.invitations.update_status(invitation_id, InvitationStatus.COMPLETED, at=now, conn=conn)

        events.publish(
            events.QUESTIONNAIRE_SAVED,
            {"invitation_id": invitation_id, "section": section_id, "completion_percentage": percent},
        )
        if is_complete:
            events.publish(events.INVITATION_COMPLETED, {"invitation_id": invitation_id})
            logger.info("invitation_completed id=%s", invitation_id)
        return response

    def save_progress_by_token(
        self,
        token: str,
        section_id: str | None,
        fields: Mapping[str, Any],
        is_complete: bool = False,
    ) -> QuestionnaireResponse:
        invitation = self.invitations.get_by_token(token) if token else None
        if invitation is None:
            raise InvitationNotFound("invalid invitation token")
        return self.save_progress(invitation.id, section_id, fields, is_complete)

    def resend(self, invitation_id: str) -> Invitation:
        """Re-dispatch the invitation as a reminder without touching `expires_at`.

        Works from sent, opened and expired. When the email cannot be sent no
        transition is applied and the unchanged invitation is returned.
        """
        invitation = self._require(invitation_id)
        if invitation.status is InvitationStatus.COMPLETED:
            raise AlreadyCompleted("questionnaire already submitted", invitation_id=invitation_id)
        subject = self._require_subject(invitation.subject)

        if not self._dispatch(invitation, subject, is_reminder=True):
            return invitation
        self.invitations.increment_reminder(invitation_id, at=self.clock())
        events.publish(
            events.INVITATION_REMINDED,
            {"invitation_id": invitation_id, "reminder_count": invitation.reminder_count + 1},
        )
        logger.info("invitation_resent id=%s", invitation_id)
        return self._require(invitation_id)

    # ------------------------------------------------------------------
    # case / petition intake
    # ------------------------------------------------------------------
    def _invite_for_new_subject(self, subject: Subject, invitee: Invitee) -> Invitation | None:
        try:
            return self.create_invitation_and_notify(subject.ref, invitee)
        except PortalError as exc:
            # The subject stands on its own; the employer can invite again later
            logger.warning(
                "subject_invitation_failed subject=%s:%s code=%s",
                subject.ref.kind.value,
                subject.ref.id,
                exc.code,
                exc_info=True,
            )
            return None

    def _require_employer(self, employer_id: str, invitee: Invitee) -> None:
        validate_invitee(invitee)
        if not self.subjects.employer_exists(employer_id):
            raise ValidationFailed([field_error("employer_id", "Employer not found")])

    def open_case(
        self,
        employer_id: str,
        invitee: Invitee,
        *,
        job_title: str,
        case_type: str,
    ) -> tuple[Subject, Invitation | None]:
        """Create a case and invite its employee. Returns the case and the invitation, if any."""
        self._require_employer(employer_id, invitee)
        subject = self.subjects.create_case(
            employer_id, invitee, job_title=job_title, case_type=case_type, now=self.clock()
        )
        return subject, self._invite_for_new_subject(subject, invitee)

    def open_petition(
        self,
        employer_id: str,
        invitee: Invitee,
        *,
        job_title: str,
        petition_type: str = DEFAULT_PETITION_TYPE,
    ) -> tuple[Subject, Invitation | None]:
        self._require_employer(employer_id, invitee)
        subject = self.subjects.create_petition(
            employer_id, invitee, job_title=job_title, petition_type=petition_type, now=self.clock()
        )
        return subject, self._invite_for_new_subject(subject, invitee)

    # ------------------------------------------------------------------
    # employee-facing (authenticated) access
    # ------------------------------------------------------------------
    def _require_owned(self, invitation_id: str, email: str) -> Invitation:
        invitation = self.invitations.get_by_id(invitation_id)
        if invitation is None or invitation.employee_email.strip().lower() != email.strip().lower():
            raise InvitationNotFound("invitation not found", invitation_id=invitation_id)
        return invitation

    def list_assignments(self, email: str) -> list[QuestionnaireView]:
        """Every invitation addressed to `email`, newest first, with its subject and response."""
        now = self.clock()
        views = []
        for invitation in self.invitations.list_by_email(email):
            subject = self.subjects.get(invitation.subject)
            if subject is None:
                logger.warning("assignment_subject_missing invitation_id=%s", invitation.id)
                continue
            views.append(
                QuestionnaireView(
                    invitation=invitation.as_of(now),
                    subject=subject,
                    response=self.responses.get_by_invitation(invitation.id),
                )
            )
        return views

    def fetch_assignment(self, invitation_id: str, email: str) -> QuestionnaireView:
        return self._open(self._require_owned(invitation_id, email))

    def save_assignment_progress(
        self,
        invitation_id: str,
        email: str,
        section_id: str | None,
        fields: Mapping[str, Any],
        is_complete: bool = False,
    ) -> QuestionnaireResponse:
        self._require_owned(invitation_id, email)
        return self.save_progress(invitation_id, section_id, fields, is_complete)


__all__ = ["InvitationLifecycle", "DEFAULT_EXPIRY_DAYS", "validate_invitee"]
