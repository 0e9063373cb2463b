"""Cover letter generation.

The letter is streamed: every fragment is appended to the text so far and
the accumulated text is handed to ``on_update`` straight away. If the stream
is cancelled or fails, the text already applied stays as it is.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable

from resumelm.ai.credentials import AIConfig
from resumelm.ai.errors import InputValidationError
from resumelm.ai.llm import CompletionClient
from resumelm.documents.models import CoverLetter, JobListing, Resume
from resumelm.extraction.prompts import COVER_LETTER_SYSTEM_PROMPT

logger = logging.getLogger(__name__)

_RESUME_FIELDS = {
    "first_name",
    "last_name",
    "email",
    "phone_number",
    "location",
    "target_role",
    "work_experience",
    "education",
    "skills",
    "projects",
}


def build_cover_letter_prompt(
    resume: Resume, job: JobListing, custom_prompt: str | None = None
) -> str:
    prompt = (
        f"Write a cover letter for the {job.position_title} position at {job.company_name}.\n\n"
        f"JOB LISTING:\n{job.model_dump_json(indent=2)}\n\n"
        f"CANDIDATE RESUME:\n{resume.model_dump_json(include=_RESUME_FIELDS, indent=2)}"
    )
    if custom_prompt and custom_prompt.strip():
        prompt += f"\n\nAdditional instructions from the user:\n{custom_prompt.strip()}"
    return prompt


class CoverLetterWriter:
    """Streams cover letters for tailored resumes.

    Args:
        llm: Completion client. A default client is created if not provided.
    """

    def __init__(self, llm: CompletionClient | None = None):
        self.llm = llm or CompletionClient()

    @staticmethod
    def validate(resume: Resume, job: JobListing | None) -> None:
        """Raise InputValidationError unless ``resume`` can get a cover letter."""
        if resume.is_base_resume:
            raise InputValidationError("Cover letters can only be generated for tailored resumes")
        if job is None:
            raise InputValidationError("A job is required to generate a cover letter")

    async def stream(
        self,
        resume: Resume,
        job: JobListing | None,
        config: AIConfig | dict | None = None,
        custom_prompt: str | None = None,
    ) -> AsyncIterator[str]:
        """Yield cover letter text fragments as they arrive."""
        self.validate(resume, job)
        prompt = build_cover_letter_prompt(resume, job, custom_prompt)
        logger.info(f"Streaming cover letter for resume {resume.id}")
        async for fragment in self.llm.stream_text(
            prompt=prompt, config=config, system_prompt=COVER_LETTER_SYSTEM_PROMPT
        ):
            yield fragment

    async def generate(
        self,
        resume: Resume,
        job: JobListing | None,
        config: AIConfig | dict | None = None,
        custom_prompt: str | None = None,
        on_update: Callable[[str], None] | None = None,
    ) -> Resume:
        """Stream a cover letter and return the resume carrying it.

        ``on_update`` receives the accumulated text after every fragment.
        """
        text = ""
        async for fragment in self.stream(resume, job, config, custom_prompt):
            text += fragment
            if on_update is not None:
                on_update(text)

        logger.info(f"Cover letter complete ({len(text)} chars)")
        return resume.update_field("cover_letter", CoverLetter(content=text))
