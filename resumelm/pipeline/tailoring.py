"""Tailoring pipeline.

Turns a base resume plus a job description into a new tailored resume:

    Idle -> AnalyzingJob -> FormattingJob -> FetchingBaseResume
         -> TailoringContent -> Finalizing -> Done

Any stage may end the run in Failed. Steps run strictly in sequence; nothing
is persisted before the job listing has been extracted, and a job created
before a later failure is left in place.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from resumelm.ai.credentials import AIConfig
from resumelm.ai.errors import (
    InputValidationError,
    NotFoundError,
    ResumeLMError,
    UpstreamError,
)
from resumelm.documents.models import (
    IDENTITY_FIELDS,
    SECTION_FIELDS,
    Job,
    JobListing,
    Resume,
    ResumeDraft,
)
from resumelm.extraction.service import ExtractionService
from resumelm.pipeline.states import (
    RunState,
    TailoringMode,
    advance,
    fail,
    tailoring_plan,
)
from resumelm.store.protocol import DocumentStore
from resumelm.utils.text import is_blank, redact_secrets

logger = logging.getLogger(__name__)

T = TypeVar("T")

DIRECT_COPY_TITLE = "Copied Resume"

ProgressCallback = Callable[[RunState], None]


@dataclass(frozen=True)
class TailoringRequest:
    """One user submission of the "create tailored resume" form."""

    base_resume_id: str
    job_description: str = ""
    mode: TailoringMode = TailoringMode.AI
    config: AIConfig | dict | None = None


@dataclass
class TailoringOutcome:
    """Result of a tailoring run."""

    success: bool
    state: RunState
    resume: Resume | None = None
    job: Job | None = None
    error: ResumeLMError | None = None


class TailoringPipeline:
    """Runs tailoring requests against a document store.

    Args:
        store: Persistence boundary (jobs and resumes).
        extraction: Structured extraction service used for the AI steps.
        progress_callback: Called with the new RunState after every transition.
    """

    def __init__(
        self,
        store: DocumentStore,
        extraction: ExtractionService | None = None,
        progress_callback: ProgressCallback | None = None,
    ):
        self.store = store
        self.extraction = extraction or ExtractionService()
        self.progress_callback = progress_callback

    @staticmethod
    def validate(request: TailoringRequest) -> None:
        """Check the request before a run starts.

        Raises:
            InputValidationError: No base resume selected, or AI mode without
                job description text.
        """
        if is_blank(request.base_resume_id):
            raise InputValidationError("Please select a base resume")
        if request.mode is TailoringMode.AI and is_blank(request.job_description):
            raise InputValidationError("Please enter a job description")

    async def run(self, request: TailoringRequest) -> TailoringOutcome:
        """Run the pipeline for one request.

        Validation failures are raised before the run starts. Every failure
        after that is reported in the returned outcome with the stage that
        failed; cancellation propagates to the caller.

        Raises:
            InputValidationError: If the request is invalid.
        """
        self.validate(request)

        has_job_text = not is_blank(request.job_description)
        state = RunState(plan=tailoring_plan(request.mode, has_job_text))
        listing: JobListing | None = None
        job: Job | None = None

        logger.info(
            f"Starting tailoring run for base resume {request.base_resume_id} "
            f"(mode={request.mode.value})"
        )
        try:
            if has_job_text:
                state = self._transition(state)
                listing = await self.extraction.format_job_listing(
                    request.job_description, request.config
                )

                state = self._transition(state)
                job = await self._persist(self.store.create_job(listing))
                state = self._transition(state, job_id=job.id)
            else:
                state = self._transition(state)

            base_resume = await self._call_store(
                self.store.get_resume_by_id(request.base_resume_id)
            )
            if base_resume is None:
                raise NotFoundError("Base resume not found")

            if request.mode is TailoringMode.AI:
                state = self._transition(state)
                content = await self.extraction.tailor_resume_to_job(
                    base_resume, listing, request.config
                )
            else:
                content = _copy_content(base_resume)

            state = self._transition(state)
            title, company = _title_and_company(listing, base_resume, request.mode)
            resume = await self._persist(
                self.store.create_tailored_resume(
                    base_resume=base_resume,
                    job_id=job.id if job else None,
                    title=title,
                    company=company,
                    content=content,
                )
            )
            state = self._transition(state, resume_id=resume.id)

        except ResumeLMError as e:
            return self._failed(state, e, job)
        except Exception as e:
            logger.exception(f"Unexpected error during {state.stage.value}")
            return self._failed(state, UpstreamError(f"Unexpected error: {e}", e), job)

        logger.info(f"Tailoring run finished: resume {resume.id}")
        return TailoringOutcome(success=True, state=state, resume=resume, job=job)

    def _failed(self, state: RunState, error: ResumeLMError, job: Job | None) -> TailoringOutcome:
        failed_at = state.stage
        state = fail(state, error.kind, redact_secrets(str(error)))
        logger.warning(f"Tailoring run failed at {failed_at.value}: {state.error_message}")
        self._emit_progress(state)
        return TailoringOutcome(success=False, state=state, job=job, error=error)

    def _transition(self, state: RunState, **updates: str | None) -> RunState:
        new_state = advance(state, **updates)
        logger.info(f"Tailoring stage: {new_state.stage.value}")
        self._emit_progress(new_state)
        return new_state

    def _emit_progress(self, state: RunState) -> None:
        if self.progress_callback is None:
            return
        try:
            self.progress_callback(state)
        except Exception:
            logger.exception(f"Progress callback failed at {state.stage.value}")

    async def _call_store(self, call: Awaitable[T]) -> T:
        try:
            return await call
        except ResumeLMError:
            raise
        except Exception as e:
            raise UpstreamError(f"Storage request failed: {e}", e) from e

    async def _persist(self, call: Awaitable[T]) -> T:
        # Once issued, a write runs to completion even if the run is cancelled
        return await self._call_store(asyncio.shield(call))


def _copy_content(base_resume: Resume) -> ResumeDraft:
    return ResumeDraft.model_validate(
        base_resume.model_dump(include={*IDENTITY_FIELDS, *SECTION_FIELDS, "target_role"})
    )


def _title_and_company(
    listing: JobListing | None, base_resume: Resume, mode: TailoringMode
) -> tuple[str, str]:
    if listing is None:
        return DIRECT_COPY_TITLE, ""
    title = listing.position_title
    if is_blank(title):
        title = DIRECT_COPY_TITLE if mode is TailoringMode.DIRECT_COPY else base_resume.target_role
    return title, listing.company_name
