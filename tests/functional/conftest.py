from __future__ import annotations

"""Functional test bootstrap.

Points the service at a file-backed SQLite database, applies the SQL
migrations once at session start and empties every table before each test.
Lifecycle fixtures use a controllable clock and a recording email provider
so expiry and notification behaviour can be asserted without real I/O.
"""

import os
import pathlib
from datetime import datetime, timedelta, timezone

import pytest

_ROOT = pathlib.Path(__file__).resolve().parents[2]
_DB_FILE = _ROOT / "tmp" / "functional_tests.db"
_DB_FILE.parent.mkdir(parents=True, exist_ok=True)
if _DB_FILE.exists():
    _DB_FILE.unlink()

# Use a file-backed SQLite DB to ensure persistence across connections
os.environ["TEST_DATABASE_URL"] = f"sqlite:///{_DB_FILE}"
os.environ["DATABASE_URL"] = os.environ["TEST_DATABASE_URL"]
# Disable app startup auto-migrations; migrations are applied explicitly below
os.environ["AUTO_APPLY_MIGRATIONS"] = "0"
os.environ.setdefault("EMAIL_PROVIDER", "console")
os.environ.setdefault("APP_ENV", "test")

START = datetime(2026, 1, 5, 9, 0, 0, tzinfo=timezone.utc)

_TABLES = ("questionnaire_responses", "employee_invitations", "cases", "petitions", "employers")


class FakeClock:
    """Callable clock whose time only moves when a test advances it."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


class RecordingEmailProvider:
    """Captures outbound messages; set `fail = True` to simulate an outage."""

    name = "recording"

    def __init__(self) -> None:
        self.sent: list = []
        self.fail = False

    def send(self, message) -> None:
        from h1b_portal.logic.errors import NotificationError

        if self.fail:
            raise NotificationError("simulated outage", provider=self.name)
        self.sent.append(message)


@pytest.fixture(scope="session", autouse=True)
def functional_sqlite_bootstrap():
    """Session-level bootstrap: apply migrations once for the shared DB."""
    from h1b_portal.db.base import get_engine
    from h1b_portal.db.migrations_runner import apply_migrations

    apply_migrations(get_engine(os.environ["TEST_DATABASE_URL"]))
    yield


@pytest.fixture
def engine():
    from sqlalchemy import text

    from h1b_portal.db.base import get_engine

    eng = get_engine(os.environ["TEST_DATABASE_URL"])
    with eng.begin() as conn:
        for table in _TABLES:
            conn.execute(text(f"DELETE FROM {table}"))
    from h1b_portal.logic import events

    events.EVENT_BUFFER.clear()
    return eng


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def provider() -> RecordingEmailProvider:
    return RecordingEmailProvider()


@pytest.fixture
def notifier(provider):
    from h1b_portal.logic.notifier import Notifier

    return Notifier(provider, "H1-B Portal <noreply@h1bportal.com>")


@pytest.fixture
def invitations(engine):
    from h1b_portal.logic.repository_invitations import InvitationStore

    return InvitationStore(engine)


@pytest.fixture
def responses(engine):
    from h1b_portal.logic.repository_responses import ResponseStore

    return ResponseStore(engine)


@pytest.fixture
def subjects(engine):
    from h1b_portal.logic.repository_subjects import SubjectDirectory

    return SubjectDirectory(engine)


@pytest.fixture
def lifecycle(invitations, responses, subjects, notifier, clock):
    from h1b_portal.logic.lifecycle import InvitationLifecycle

    return InvitationLifecycle(
        invitations,
        responses,
        subjects,
        notifier,
        expiry_days=30,
        app_url="https://portal.example.com",
        clock=clock,
    )


@pytest.fixture
def invitee():
    from h1b_portal.models.invitation import Invitee

    return Invitee(email="jane.doe@example.com", first_name="Jane", last_name="Doe")


@pytest.fixture
def employer_id(subjects, clock) -> str:
    return subjects.create_employer("Acme Robotics LLC", now=clock())


@pytest.fixture
def case(subjects, employer_id, invitee, clock):
    return subjects.create_case(
        employer_id,
        invitee,
        job_title="Software Engineer",
        case_type="h1b_initial",
        now=clock(),
    )


@pytest.fixture
def petition(subjects, employer_id, invitee, clock):
    return subjects.create_petition(employer_id, invitee, job_title="Data Scientist", now=clock())


@pytest.fixture
def client(lifecycle, notifier):
    """TestClient whose services share the test clock and recording provider."""
    from fastapi.testclient import TestClient

    from h1b_portal.main import create_app
    from h1b_portal.routes.dependencies import get_lifecycle, get_notifier, reset_dependency_caches

    reset_dependency_caches()
    app = create_app()
    app.dependency_overrides[get_lifecycle] = lambda: lifecycle
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as tc:
        yield tc
    app.dependency_overrides.clear()
    reset_dependency_caches()
