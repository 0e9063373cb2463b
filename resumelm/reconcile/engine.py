"""Reconciliation of extracted data into existing profiles and resumes.

Import is additive: new records go in front of the user's existing ones and
nothing the user already has is removed or overwritten. Identity fields are
only filled in when the incoming value is non-empty. Destructive replacement
exists only as the explicit reset operation below.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel

from resumelm.documents.models import (
    IDENTITY_FIELDS,
    Education,
    Profile,
    Project,
    Resume,
    SkillCategory,
    WorkExperience,
)
from resumelm.utils.text import is_blank, sanitize_unknown_strings

logger = logging.getLogger(__name__)

EntityT = TypeVar("EntityT", Profile, Resume)

_RECORD_TYPES: dict[str, type[BaseModel]] = {
    "work_experience": WorkExperience,
    "education": Education,
    "projects": Project,
}


class SkillMergePolicy(str, Enum):
    """How imported skill categories combine with existing ones."""

    # Same-named categories (case-insensitive) are unioned; others are prepended.
    MERGE_BY_NAME = "merge_by_name"
    # Every imported category is prepended as a new entry.
    APPEND = "append"


def _to_payload(incoming: BaseModel | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(incoming, BaseModel):
        return incoming.model_dump(mode="json")
    return dict(incoming)


def _as_records(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def merge_skills(
    existing: list[SkillCategory],
    incoming: list[SkillCategory],
    policy: SkillMergePolicy = SkillMergePolicy.MERGE_BY_NAME,
) -> list[SkillCategory]:
    """Combine skill categories without removing anything the user has."""
    if policy is SkillMergePolicy.APPEND:
        return [c.model_copy(deep=True) for c in incoming] + [
            c.model_copy(deep=True) for c in existing
        ]

    merged = [c.model_copy(deep=True) for c in existing]
    by_name: dict[str, SkillCategory] = {}
    for category in merged:
        key = category.category.strip().lower()
        if key and key not in by_name:
            by_name[key] = category

    added: list[SkillCategory] = []
    for category in incoming:
        key = category.category.strip().lower()
        target = by_name.get(key) if key else None
        if target is None:
            target = SkillCategory(category=category.category, items=[])
            added.append(target)
            if key:
                by_name[key] = target
        for item in category.items:
            if item not in target.items:
                target.items.append(item)

    return added + merged


def reconcile(
    existing: EntityT,
    incoming: BaseModel | Mapping[str, Any],
    skill_policy: SkillMergePolicy = SkillMergePolicy.MERGE_BY_NAME,
) -> EntityT:
    """Merge extracted data into an existing profile or resume.

    Pure and deterministic. The incoming payload is sanitized (every
    ``<UNKNOWN>`` becomes "") before any rule is applied.

    Args:
        existing: The user's current profile or resume. Not modified.
        incoming: Extraction output (model or JSON-like mapping).
        skill_policy: How same-named skill categories combine.

    Returns:
        A new entity of the same type as ``existing``.
    """
    payload = sanitize_unknown_strings(_to_payload(incoming))
    data = existing.model_dump()

    for name in IDENTITY_FIELDS:
        value = payload.get(name)
        if isinstance(value, str) and not is_blank(value):
            data[name] = value

    for name, record_type in _RECORD_TYPES.items():
        new_records = [
            record_type.model_validate(item) for item in _as_records(payload.get(name))
        ]
        data[name] = new_records + list(getattr(existing, name))

    incoming_skills = [
        SkillCategory.model_validate(item) for item in _as_records(payload.get("skills"))
    ]
    data["skills"] = merge_skills(existing.skills, incoming_skills, skill_policy)

    merged = type(existing).model_validate(data)
    logger.debug(
        f"Reconciled {type(existing).__name__}: "
        f"+{len(merged.work_experience) - len(existing.work_experience)} work, "
        f"+{len(merged.education) - len(existing.education)} education, "
        f"+{len(merged.projects) - len(existing.projects)} projects, "
        f"{len(merged.skills)} skill categories"
    )
    return merged


def reset_profile(profile: Profile) -> Profile:
    """Return the empty skeleton of a profile (user-confirmed reset only).

    Identity fields are cleared and all lists emptied; ownership and
    timestamps are kept.
    """
    return Profile(
        id=profile.id,
        user_id=profile.user_id,
        created_at=profile.created_at,
        updated_at=profile.updated_at,
        **{name: "" for name in IDENTITY_FIELDS},
    )


def empty_resume(target_role: str, *, user_id: str = "") -> Resume:
    """An empty base resume skeleton used as the target of text conversion."""
    return Resume(
        user_id=user_id,
        name=target_role,
        target_role=target_role,
        is_base_resume=True,
        **{name: "" for name in IDENTITY_FIELDS},
    )
