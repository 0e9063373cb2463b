"""AI edit suggestions for resume sections.

Two kinds of edit come out of the resume assistant:

- a suggestion for one entry of a section (work experience, project, skill
  category or education), applied by replacing the entry at its index;
- a whole-resume edit that replaces the contact fields and sections it
  carries and leaves the rest alone. It can be reverted to the resume it
  was applied to.

Nothing is applied until the caller asks for it, so a request that is
cancelled or fails leaves the resume as it was.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field

from resumelm.ai.credentials import AIConfig
from resumelm.ai.errors import InputValidationError
from resumelm.ai.llm import CompletionClient
from resumelm.documents.models import (
    IDENTITY_FIELDS,
    SECTION_FIELDS,
    ContactInfo,
    Education,
    JobListing,
    Project,
    Resume,
    SkillCategory,
    WorkExperience,
)
from resumelm.extraction.prompts import (
    SUGGESTION_SYSTEM_PROMPT,
    WHOLE_RESUME_SYSTEM_PROMPT,
    suggestion_prompt,
    whole_resume_prompt,
)
from resumelm.utils.text import is_blank, sanitize_unknown_strings

logger = logging.getLogger(__name__)


class WorkExperienceSuggestion(BaseModel):
    improved: WorkExperience
    rationale: str = ""


class ProjectSuggestion(BaseModel):
    improved: Project
    rationale: str = ""


class SkillSuggestion(BaseModel):
    improved: SkillCategory
    rationale: str = ""


class EducationSuggestion(BaseModel):
    improved: Education
    rationale: str = ""


SUGGESTION_MODELS: dict[str, type[BaseModel]] = {
    "work_experience": WorkExperienceSuggestion,
    "projects": ProjectSuggestion,
    "skills": SkillSuggestion,
    "education": EducationSuggestion,
}


@dataclass(frozen=True)
class SectionSuggestion:
    """A proposed replacement for one entry of a resume section."""

    section: str
    index: int
    current: BaseModel
    improved: BaseModel
    rationale: str = ""


class WholeResumeEdit(BaseModel):
    """Sections left as None and blank contact fields are not part of the edit."""

    basic_info: ContactInfo = Field(default_factory=ContactInfo)
    work_experience: list[WorkExperience] | None = None
    education: list[Education] | None = None
    skills: list[SkillCategory] | None = None
    projects: list[Project] | None = None

    def changes(self) -> dict[str, Any]:
        """Top-level resume fields this edit replaces, with their new values."""
        changed: dict[str, Any] = {
            name: value
            for name, value in self.basic_info.model_dump().items()
            if not is_blank(value)
        }
        for name in SECTION_FIELDS:
            value = getattr(self, name)
            if value is not None:
                changed[name] = value
        return changed


def apply_suggestion(resume: Resume, suggestion: SectionSuggestion) -> Resume:
    """Return ``resume`` with the suggested entry in place of the current one.

    Raises:
        InputValidationError: If the entry at the suggestion's index is no
            longer the one the suggestion was made for.
    """
    items = list(getattr(resume, suggestion.section))
    if suggestion.index >= len(items) or items[suggestion.index] != suggestion.current:
        raise InputValidationError("The resume changed since this suggestion was made")
    items[suggestion.index] = suggestion.improved
    return resume.update_field(suggestion.section, items)


def apply_whole_resume_edit(resume: Resume, edit: WholeResumeEdit) -> Resume:
    """Return ``resume`` with every field carried by ``edit`` replaced."""
    for name, value in edit.changes().items():
        resume = resume.update_field(name, value)
    return resume


def revert_whole_resume_edit(current: Resume, original: Resume) -> Resume:
    """Restore the contact fields and sections of ``original`` onto ``current``."""
    reverted = current
    for name in (*IDENTITY_FIELDS, *SECTION_FIELDS):
        reverted = reverted.update_field(name, getattr(original, name))
    return reverted


class SuggestionWriter:
    """Asks the model for edits to a resume.

    Args:
        llm: Completion client. A default client is created if not provided.
    """

    def __init__(self, llm: CompletionClient | None = None):
        self.llm = llm or CompletionClient()

    async def suggest(
        self,
        resume: Resume,
        section: str,
        index: int,
        instructions: str | None = None,
        job: JobListing | None = None,
        config: AIConfig | dict | None = None,
    ) -> SectionSuggestion:
        """Suggest an improved version of one section entry.

        Raises:
            InputValidationError: Unknown section or no entry at ``index``.
        """
        output_model = SUGGESTION_MODELS.get(section)
        if output_model is None:
            raise InputValidationError(f"Suggestions are not available for '{section}'")
        items = getattr(resume, section)
        if not 0 <= index < len(items):
            raise InputValidationError(f"There is no {section} entry at position {index}")

        current = items[index]
        logger.info(f"Requesting {section}[{index}] suggestion for resume {resume.id}")
        result = await self.llm.generate_structured(
            prompt=suggestion_prompt(section, current, resume.target_role, job, instructions),
            output_model=output_model,
            config=config,
            system_prompt=SUGGESTION_SYSTEM_PROMPT,
        )
        result = output_model.model_validate(sanitize_unknown_strings(result.model_dump()))
        return SectionSuggestion(
            section=section,
            index=index,
            current=current,
            improved=result.improved,
            rationale=result.rationale,
        )

    async def modify_whole_resume(
        self,
        resume: Resume,
        instructions: str,
        job: JobListing | None = None,
        config: AIConfig | dict | None = None,
    ) -> WholeResumeEdit:
        """Ask for an edit across the whole resume; the resume is not changed."""
        if is_blank(instructions):
            raise InputValidationError("Please describe the changes you want")

        logger.info(f"Requesting whole-resume edit for resume {resume.id}")
        edit = await self.llm.generate_structured(
            prompt=whole_resume_prompt(resume, instructions, job),
            output_model=WholeResumeEdit,
            config=config,
            system_prompt=WHOLE_RESUME_SYSTEM_PROMPT,
        )
        return WholeResumeEdit.model_validate(sanitize_unknown_strings(edit.model_dump()))
