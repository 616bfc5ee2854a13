"""Questionnaire section schema and completion percentage.

The questionnaire has eight fixed sections with 44 fields in total. The
completion percentage is derived from the answer bag on every save and is
never taken from the client.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

from h1b_portal.logic.errors import ConfigurationError


@dataclass(frozen=True)
class Section:
    id: str
    title: str
    fields: int


SECTIONS: tuple[Section, ...] = (
    Section("personal_info", "Personal Information", 8),
    Section("contact_info", "Contact Information", 3),
    Section("immigration_status", "Immigration Status", 9),
    Section("previous_history", "Previous US History", 4),
    Section("education", "Education", 6),
    Section("work_experience", "Work Experience", 6),
    Section("family_info", "Family Information", 5),
    Section("additional_info", "Additional Information", 3),
)

SECTION_IDS: tuple[str, ...] = tuple(s.id for s in SECTIONS)
SECTION_FIELD_COUNTS: tuple[tuple[str, int], ...] = tuple((s.id, s.fields) for s in SECTIONS)
TOTAL_FIELDS = sum(s.fields for s in SECTIONS)


def is_answered(value: Any) -> bool:
    """None and the empty string are unanswered; 0 and False count."""
    if value is None:
        return False
    if isinstance(value, str) and value == "":
        return False
    return True


def answered_fields(answers: Mapping[str, Any]) -> set[str]:
    return {key for key, value in answers.items() if is_answered(value)}


def compute_completion(
    answered: Iterable[str],
    sections: Sequence[tuple[str, int]] = SECTION_FIELD_COUNTS,
) -> int:
    """Return round-half-up(100 * answered / total) as an integer in 0..100.

    Raises ConfigurationError when the section table sums to zero fields or
    holds a negative count.
    """
    counts = [int(n) for _, n in sections]
    if any(n < 0 for n in counts):
        raise ConfigurationError("negative field count in questionnaire sections")
    total = sum(counts)
    if total <= 0:
        raise ConfigurationError("questionnaire sections define no fields")
    n = len(set(answered))
    # Integer half-up rounding; round() would round half to even
    percent = (200 * n + total) // (2 * total)
    return min(100, percent)


def merge_answers(existing: Mapping[str, Any] | None, supplied: Mapping[str, Any]) -> dict[str, Any]:
    """Shallow merge: supplied keys overwrite, omitted keys keep prior values."""
    merged = dict(existing or {})
    merged.update(supplied)
    return merged


def is_known_section(section_id: str) -> bool:
    return section_id in SECTION_IDS


__all__ = [
    "Section",
    "SECTIONS",
    "SECTION_IDS",
    "SECTION_FIELD_COUNTS",
    "TOTAL_FIELDS",
    "is_answered",
    "answered_fields",
    "compute_completion",
    "merge_answers",
    "is_known_section",
]
