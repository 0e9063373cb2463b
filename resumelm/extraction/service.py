"""Structured extraction service.

Wraps the single AI call that turns unstructured text into one of the fixed
schemas, plus the operations built directly on it (job formatting, profile
formatting, text-to-resume conversion and resume tailoring).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel

from resumelm.ai.credentials import AIConfig
from resumelm.ai.errors import InputValidationError
from resumelm.ai.llm import CompletionClient
from resumelm.documents.models import JobListing, ProfileData, Resume, ResumeDraft
from resumelm.extraction import prompts
from resumelm.reconcile.engine import reconcile
from resumelm.utils.text import is_blank, sanitize_unknown_strings

logger = logging.getLogger(__name__)


class ExtractionKind(str, Enum):
    """Target schema of an extraction call."""

    PROFILE = "profile"
    JOB_LISTING = "job_listing"
    RESUME_SECTION = "resume_section"
    FULL_RESUME = "full_resume"


SCHEMAS: dict[ExtractionKind, type[BaseModel]] = {
    ExtractionKind.PROFILE: ProfileData,
    ExtractionKind.JOB_LISTING: JobListing,
    ExtractionKind.RESUME_SECTION: ResumeDraft,
    ExtractionKind.FULL_RESUME: ResumeDraft,
}


@dataclass(frozen=True)
class ExtractionContext:
    """What the model should know besides the raw text.

    Attributes:
        existing: The entity being imported into or tailored.
        target_role: Role hint for resume extraction.
        job: Structured job; its presence turns a FULL_RESUME call into tailoring.
    """

    existing: BaseModel | None = None
    target_role: str | None = None
    job: JobListing | None = None


class ExtractionService:
    """Single-call structured extraction on top of the completion client.

    The returned models always have every list field present (absent or null
    lists are normalized to ``[]`` by the schema validators). Strings may still
    hold the ``<UNKNOWN>`` sentinel; the operation helpers sanitize them.
    """

    def __init__(self, llm: CompletionClient | None = None):
        self.llm = llm or CompletionClient()

    async def extract(
        self,
        kind: ExtractionKind,
        raw_text: str,
        context: ExtractionContext | None = None,
        config: AIConfig | dict | None = None,
    ) -> BaseModel:
        """Run one extraction call.

        Raises:
            MissingCredentialError, RateLimitedError, UpstreamError
        """
        context = context or ExtractionContext()
        system_prompt, prompt = self._build_prompts(kind, raw_text, context)

        logger.info(f"Extracting {kind.value} ({len(raw_text)} chars of input)")
        return await self.llm.generate_structured(
            prompt=prompt,
            output_model=SCHEMAS[kind],
            config=config,
            system_prompt=system_prompt,
        )

    def _build_prompts(
        self, kind: ExtractionKind, raw_text: str, context: ExtractionContext
    ) -> tuple[str, str]:
        if kind is ExtractionKind.PROFILE:
            return prompts.PROFILE_SYSTEM_PROMPT, prompts.profile_prompt(raw_text)
        if kind is ExtractionKind.JOB_LISTING:
            return prompts.JOB_LISTING_SYSTEM_PROMPT, prompts.job_listing_prompt(raw_text)
        if kind is ExtractionKind.RESUME_SECTION:
            return (
                prompts.RESUME_SECTION_SYSTEM_PROMPT,
                prompts.resume_section_prompt(raw_text, context.existing),
            )
        if context.job is not None and context.existing is not None:
            return (
                prompts.TAILORING_SYSTEM_PROMPT,
                prompts.tailoring_prompt(context.existing, context.job),
            )
        return (
            prompts.FULL_RESUME_SYSTEM_PROMPT,
            prompts.full_resume_prompt(raw_text, context.target_role),
        )

    async def format_job_listing(
        self, text: str, config: AIConfig | dict | None = None
    ) -> JobListing:
        """Convert a raw job description into a structured job listing."""
        if is_blank(text):
            raise InputValidationError("Please enter a job description")

        listing = await self.extract(ExtractionKind.JOB_LISTING, text, config=config)
        return JobListing.model_validate(sanitize_unknown_strings(listing.model_dump()))

    async def format_profile_with_ai(
        self, text: str, config: AIConfig | dict | None = None
    ) -> ProfileData:
        """Convert resume/career text into profile-shaped data."""
        if is_blank(text):
            raise InputValidationError("Please enter some text to import")

        data = await self.extract(ExtractionKind.PROFILE, text, config=config)
        return ProfileData.model_validate(sanitize_unknown_strings(data.model_dump()))

    async def convert_text_to_resume(
        self,
        text: str,
        skeleton: Resume,
        target_role: str,
        config: AIConfig | dict | None = None,
    ) -> Resume:
        """Convert pasted or PDF-derived resume text into a full resume.

        The extracted content is reconciled into ``skeleton`` (normally an
        empty base resume), so the skeleton's own data is never lost.
        """
        if is_blank(text):
            raise InputValidationError("Please enter your resume text")

        draft = await self.extract(
            ExtractionKind.FULL_RESUME,
            text,
            ExtractionContext(existing=skeleton, target_role=target_role),
            config=config,
        )
        return reconcile(skeleton, draft)

    async def extract_resume_additions(
        self,
        text: str,
        existing: Resume,
        config: AIConfig | dict | None = None,
    ) -> ResumeDraft:
        """Extract only the content in ``text`` that ``existing`` lacks."""
        if is_blank(text):
            raise InputValidationError("Please enter some text to import")

        draft = await self.extract(
            ExtractionKind.RESUME_SECTION,
            text,
            ExtractionContext(existing=existing, target_role=existing.target_role),
            config=config,
        )
        return ResumeDraft.model_validate(sanitize_unknown_strings(draft.model_dump()))

    async def tailor_resume_to_job(
        self,
        base_resume: Resume,
        job: JobListing,
        config: AIConfig | dict | None = None,
    ) -> ResumeDraft:
        """Rewrite a base resume's content for one job.

        The result replaces the resume's list content wholesale; it is not
        merged with the base resume.
        """
        draft = await self.extract(
            ExtractionKind.FULL_RESUME,
            "",
            ExtractionContext(
                existing=base_resume, target_role=base_resume.target_role, job=job
            ),
            config=config,
        )
        tailored = ResumeDraft.model_validate(sanitize_unknown_strings(draft.model_dump()))
        if is_blank(tailored.target_role):
            tailored.target_role = base_resume.target_role
        return tailored
