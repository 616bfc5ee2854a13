"""Step definitions for the invitation lifecycle feature.

HTTP calls go through httpx against TEST_BASE_URL. Fixture rows that have no
public endpoint (employers, cases) and values the API never exposes (the
invitation token) are read and written directly through SQLAlchemy.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx
from behave import given, then, when
from sqlalchemy import text


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _http(context, method: str, path: str, *, json: Any = None, headers: Optional[dict] = None) -> httpx.Response:
    url = context.test_base_url + context.api_prefix + path
    with httpx.Client(timeout=10.0) as client:
        context.response = client.request(method, url, json=json, headers=headers)
    return context.response


def _jsonpath(data: Any, path: str) -> Any:
    """Resolve a dotted path such as `invitation.status` against JSON data."""
    cur = data
    for part in path.split("."):
        if isinstance(cur, list):
            cur = cur[int(part)]
        else:
            assert isinstance(cur, dict) and part in cur, f"path {path!r} not found in {data!r}"
            cur = cur[part]
    return cur


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _token(context) -> str:
    with context.db_engine.connect() as conn:
        row = conn.execute(
            text("SELECT invitation_token FROM employee_invitations WHERE id = :id"),
            {"id": context.vars["invitation_id"]},
        ).first()
    assert row is not None, "invitation row not found"
    return str(row[0])


def _invite(context, email: str, first: str, last: str) -> httpx.Response:
    resp = _http(
        context,
        "POST",
        "/invitations",
        json={
            "case_id": context.vars["case_id"],
            "employee_email": email,
            "employee_first_name": first,
            "employee_last_name": last,
        },
    )
    if resp.status_code == 201:
        body = resp.json()
        context.vars["invitation_id"] = body["id"]
        context.vars["expires_at"] = body["expires_at"]
    return resp


def _save(context, section: str, table, *, complete: bool) -> httpx.Response:
    body: dict[str, Any] = {row["field"]: row["value"] for row in table}
    body["current_section"] = section
    body["is_complete"] = complete
    return _http(context, "POST", f"/questionnaire/{_token(context)}", json=body)


# -----
# Given
# -----

@given('an employer "{name}" exists')
def step_employer_exists(context, name: str):
    employer_id = str(uuid.uuid4())
    with context.db_engine.begin() as conn:
        conn.execute(
            text("INSERT INTO employers (id, legal_business_name, created_at) VALUES (:id, :name, :at)"),
            {"id": employer_id, "name": name, "at": _now()},
        )
    context.vars["employer_id"] = employer_id


@given('a case exists for employee "{email}" as "{job_title}"')
def step_case_exists(context, email: str, job_title: str):
    case_id = str(uuid.uuid4())
    with context.db_engine.begin() as conn:
        conn.execute(
            text(
                "INSERT INTO cases (id, employer_id, employee_email, employee_first_name, employee_last_name, "
                "job_title, case_type, created_at) "
                "VALUES (:id, :employer_id, :email, 'Jane', 'Doe', :job_title, 'h1b_initial', :at)"
            ),
            {
                "id": case_id,
                "employer_id": context.vars["employer_id"],
                "email": email,
                "job_title": job_title,
                "at": _now(),
            },
        )
    context.vars["case_id"] = case_id


@given("the employee has been invited")
def step_employee_invited(context):
    resp = _invite(context, "jane.doe@example.com", "Jane", "Doe")
    assert resp.status_code == 201, resp.text


@given("the employee has submitted the questionnaire")
def step_employee_submitted(context):
    resp = _http(
        context,
        "POST",
        f"/questionnaire/{_token(context)}",
        json={"additional_notes": "none", "current_section": "additional_info", "is_complete": True},
    )
    assert resp.status_code == 200, resp.text


@given("the invitation deadline has passed")
def step_deadline_passed(context):
    past = (datetime.now(timezone.utc) - timedelta(minutes=1)).isoformat()
    with context.db_engine.begin() as conn:
        conn.execute(
            text("UPDATE employee_invitations SET expires_at = :at WHERE id = :id"),
            {"at": past, "id": context.vars["invitation_id"]},
        )


# ----
# When
# ----

@when('I invite "{email}" named "{first}" "{last}" to the case')
def step_invite(context, email: str, first: str, last: str):
    _invite(context, email, first, last)


@when("the employee opens the questionnaire link")
def step_open_link(context):
    _http(context, "GET", f"/questionnaire/{_token(context)}")


@when('the employee saves section "{section}" with:')
def step_save_section(context, section: str):
    _save(context, section, context.table, complete=False)


@when('the employee submits section "{section}" with:')
def step_submit_section(context, section: str):
    _save(context, section, context.table, complete=True)


@when('I GET "{path}"')
def step_get(context, path: str):
    _http(context, "GET", path)


@when("I resend the invitation")
def step_resend(context):
    _http(context, "POST", f"/invitations/{context.vars['invitation_id']}/resend")


@when('"{email}" lists their assignments')
def step_list_assignments(context, email: str):
    _http(context, "GET", "/employee/assignments", headers={"X-User-Email": email, "X-User-Role": "employee"})


# ----
# Then
# ----

@then("the response status is {code:d}")
def step_status(context, code: int):
    assert context.response is not None, "no request was made"
    assert context.response.status_code == code, f"expected {code}, got {context.response.status_code}: {context.response.text}"


@then('the response field "{path}" equals "{expected}"')
def step_field_equals(context, path: str, expected: str):
    actual = _jsonpath(context.response.json(), path)
    assert _as_text(actual) == expected, f"{path}: expected {expected!r}, got {actual!r}"


@then("the response does not contain the invitation token")
def step_no_token(context):
    assert _token(context) not in context.response.text
    assert "invitation_token" not in context.response.json()


@then("the invitation deadline is unchanged")
def step_deadline_unchanged(context):
    assert _jsonpath(context.response.json(), "invitation.expires_at") == context.vars["expires_at"]


@then('the event "{event_type}" was published')
def step_event_published(context, event_type: str):
    with httpx.Client(timeout=5.0) as client:
        resp = client.get(context.test_base_url + "/__test__/events")
    resp.raise_for_status()
    types = [e.get("type") for e in resp.json()]
    assert event_type in types, f"{event_type} not in {types}"


@then("the response lists {count:d} assignment")
@then("the response lists {count:d} assignments")
def step_assignment_count(context, count: int):
    assert len(context.response.json()["assignments"]) == count
