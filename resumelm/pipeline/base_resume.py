"""Base resume creation and profile maintenance."""

from __future__ import annotations

import logging
from collections.abc import Collection

from resumelm.ai.credentials import AIConfig
from resumelm.ai.errors import InputValidationError
from resumelm.documents.models import (
    IDENTITY_FIELDS,
    SECTION_FIELDS,
    Education,
    Profile,
    Project,
    Resume,
    ResumeDraft,
    SkillCategory,
    WorkExperience,
)
from resumelm.extraction.service import ExtractionService
from resumelm.reconcile.engine import empty_resume, reset_profile
from resumelm.store.protocol import BaseResumeMode, DocumentStore
from resumelm.utils.text import is_blank

logger = logging.getLogger(__name__)

BASE_RESUME_MODES: tuple[BaseResumeMode, ...] = ("fresh", "import-profile", "import-resume")


def work_experience_key(item: WorkExperience, index: int) -> str:
    return f"{item.company}-{item.position}-{item.date}-{index}"


def education_key(item: Education, index: int) -> str:
    return f"{item.school}-{item.degree}-{item.field}-{index}"


def skill_key(item: SkillCategory, index: int) -> str:
    return f"{item.category}-{index}"


def project_key(item: Project, index: int) -> str:
    return f"{item.name}-{index}"


_ITEM_KEYS = {
    "work_experience": work_experience_key,
    "education": education_key,
    "skills": skill_key,
    "projects": project_key,
}


def profile_item_keys(profile: Profile) -> dict[str, list[str]]:
    """Selection keys of every profile item, per section."""
    return {
        section: [key(item, i) for i, item in enumerate(getattr(profile, section))]
        for section, key in _ITEM_KEYS.items()
    }


def select_profile_items(
    profile: Profile, selected: Collection[str] | None = None
) -> ResumeDraft:
    """Copy the profile's identity and the selected items into a draft.

    Items are selected by their stable keys (see :func:`profile_item_keys`);
    ``None`` selects everything.
    """
    data = {name: getattr(profile, name) for name in IDENTITY_FIELDS}
    for section, key in _ITEM_KEYS.items():
        items = getattr(profile, section)
        data[section] = [
            item.model_copy(deep=True)
            for i, item in enumerate(items)
            if selected is None or key(item, i) in selected
        ]
    return ResumeDraft.model_validate(data)


class BaseResumeBuilder:
    """Create base resumes in one of three modes.

    - ``fresh``: identity from the profile, no list content.
    - ``import-profile``: identity plus the selected profile items.
    - ``import-resume``: content converted by AI from pasted resume text.
    """

    def __init__(self, store: DocumentStore, extraction: ExtractionService | None = None):
        self.store = store
        self.extraction = extraction or ExtractionService()

    async def create(
        self,
        target_role: str,
        mode: BaseResumeMode,
        *,
        selected_items: Collection[str] | None = None,
        resume_text: str | None = None,
        config: AIConfig | dict | None = None,
    ) -> Resume:
        """Create and persist a base resume.

        Raises:
            InputValidationError: Missing target role, unknown mode, or blank
                resume text in ``import-resume`` mode.
        """
        if is_blank(target_role):
            raise InputValidationError("Target role is required")
        if mode not in BASE_RESUME_MODES:
            raise InputValidationError(f"Unknown base resume mode: {mode}")
        if mode == "import-resume" and is_blank(resume_text):
            raise InputValidationError("Please enter your resume text")

        target_role = target_role.strip()
        profile = await self.store.get_profile()

        if mode == "import-resume":
            skeleton = empty_resume(target_role, user_id=profile.user_id).model_copy(
                update={name: getattr(profile, name) for name in IDENTITY_FIELDS}
            )
            converted = await self.extraction.convert_text_to_resume(
                resume_text, skeleton, target_role, config
            )
            content = ResumeDraft.model_validate(
                converted.model_dump(include={*IDENTITY_FIELDS, *SECTION_FIELDS})
            )
        elif mode == "import-profile":
            content = select_profile_items(profile, selected_items)
        else:
            content = select_profile_items(profile, selected=())

        logger.info(f"Creating base resume for '{target_role}' ({mode})")
        return await self.store.create_base_resume(target_role, mode, content)


class ProfileService:
    """Explicit, user-confirmed profile operations."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def reset(self) -> Profile:
        """Clear the stored profile to its empty skeleton and save it."""
        profile = reset_profile(await self.store.get_profile())
        await self.store.update_profile(profile)
        logger.info(f"Reset profile {profile.id}")
        return profile
