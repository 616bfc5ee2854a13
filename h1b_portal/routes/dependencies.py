"""FastAPI dependency providers.

Services are stateless and cheap to build, so each request gets its own
lifecycle over the process-wide engine. Tests swap any of these through
`app.dependency_overrides`.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from h1b_portal.config import AppConfig, load_config
from h1b_portal.db.base import get_engine
from h1b_portal.logic.lifecycle import InvitationLifecycle
from h1b_portal.logic.notifier import Notifier, build_email_provider
from h1b_portal.logic.repository_invitations import InvitationStore
from h1b_portal.logic.repository_responses import ResponseStore
from h1b_portal.logic.repository_subjects import SubjectDirectory


@lru_cache(maxsize=1)
def get_settings() -> AppConfig:
    return load_config()


@lru_cache(maxsize=1)
def _cached_notifier() -> Notifier:
    settings = get_settings()
    return Notifier(build_email_provider(settings.email), settings.email.from_address)


def get_notifier() -> Notifier:
    return _cached_notifier()


def get_subjects(settings: AppConfig = Depends(get_settings)) -> SubjectDirectory:
    engine = get_engine(settings.database.url, timeout_seconds=settings.database.timeout_seconds)
    return SubjectDirectory(engine)


def get_lifecycle(
    settings: AppConfig = Depends(get_settings),
    subjects: SubjectDirectory = Depends(get_subjects),
    notifier: Notifier = Depends(get_notifier),
) -> InvitationLifecycle:
    engine = subjects.engine
    return InvitationLifecycle(
        InvitationStore(engine),
        ResponseStore(engine),
        subjects,
        notifier,
        expiry_days=settings.invitations.expiry_days,
        app_url=settings.invitations.app_url,
    )


def reset_dependency_caches() -> None:
    get_settings.cache_clear()
    _cached_notifier.cache_clear()


__all__ = [
    "get_settings",
    "get_notifier",
    "get_subjects",
    "get_lifecycle",
    "reset_dependency_caches",
]
