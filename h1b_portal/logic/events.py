"""Domain event constants and publisher.

Defines event type constants and a simple publish() callable used by the
invitation lifecycle. Payloads carry identifiers only; tokens and answers
never appear in events.
"""

from __future__ import annotations

from collections import deque
from typing import Any, Deque, Dict, List
import logging

logger = logging.getLogger(__name__)

INVITATION_CREATED = "invitation.created"
INVITATION_SENT = "invitation.sent"
INVITATION_OPENED = "invitation.opened"
INVITATION_EXPIRED = "invitation.expired"
INVITATION_COMPLETED = "invitation.completed"
INVITATION_REMINDED = "invitation.reminded"
QUESTIONNAIRE_SAVED = "questionnaire.saved"


def publish(event_type: str, payload: Dict[str, Any]) -> None:
    """Publish a domain event.

    In this minimal implementation, we log the event for observability.
    """
    logger.info("event_publish type=%s payload=%s", event_type, payload)
    # Buffer events in-memory for test observation
    EVENT_BUFFER.append({"type": event_type, "payload": payload})


# Bounded in-memory buffer for domain events (test-only visibility)
EVENT_BUFFER: Deque[Dict[str, Any]] = deque(maxlen=1000)


def get_buffered_events(clear: bool = True) -> List[Dict[str, Any]]:
    """Return buffered domain events; optionally clear the buffer."""
    events = list(EVENT_BUFFER)
    if clear:
        EVENT_BUFFER.clear()
    return events

__all__ = [
    "INVITATION_CREATED",
    "INVITATION_SENT",
    "INVITATION_OPENED",
    "INVITATION_EXPIRED",
    "INVITATION_COMPLETED",
    "INVITATION_REMINDED",
    "QUESTIONNAIRE_SAVED",
    "publish",
    "get_buffered_events",
    "EVENT_BUFFER",
]
