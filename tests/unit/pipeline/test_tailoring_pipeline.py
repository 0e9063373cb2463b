"""Tests for the tailoring pipeline.

The document store is an AsyncMock-based stand-in so every persistence call
can be counted; AI calls go through a mocked completion client.
"""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from resumelm.ai.errors import (
    ErrorKind,
    InputValidationError,
    MissingCredentialError,
    UpstreamError,
)
from resumelm.ai.llm import CompletionClient
from resumelm.documents.models import JobListing, ResumeDraft
from resumelm.extraction.service import ExtractionService
from resumelm.pipeline.states import Stage, TailoringMode
from resumelm.pipeline.tailoring import TailoringPipeline, TailoringRequest

JOB_TEXT = "Senior Backend Engineer at Acme Corp. Build Python services with Kafka."


@pytest.fixture
def llm():
    client = MagicMock()
    client.generate_structured = AsyncMock()
    return client


@pytest.fixture
def extraction(llm):
    return ExtractionService(llm)


def _pipeline(store, extraction):
    stages = []
    pipeline = TailoringPipeline(
        store, extraction, progress_callback=lambda state: stages.append(state.stage)
    )
    return pipeline, stages


class TestValidation:
    """Requests are validated before the run starts."""

    @pytest.mark.asyncio
    async def test_empty_job_text_in_ai_mode(self, mock_store, extraction, llm, count_writes):
        """Empty job text never starts the run and persists nothing."""
        pipeline, stages = _pipeline(mock_store, extraction)

        with pytest.raises(InputValidationError):
            await pipeline.run(TailoringRequest(base_resume_id="base_1", job_description=""))

        assert stages == []
        assert count_writes(mock_store) == 0
        mock_store.get_resume_by_id.assert_not_awaited()
        llm.generate_structured.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_base_resume_selection(self, mock_store, extraction):
        """A base resume must be selected."""
        pipeline, _ = _pipeline(mock_store, extraction)

        with pytest.raises(InputValidationError):
            await pipeline.run(TailoringRequest(base_resume_id="", job_description=JOB_TEXT))


class TestAiTailoring:
    """The full AI path."""

    @pytest.mark.asyncio
    async def test_end_to_end(self, mock_store, extraction, llm, experience_b):
        """Job is formatted and saved, resume tailored and created with the job id."""
        llm.generate_structured.side_effect = [
            JobListing(position_title="Senior Backend Engineer", company_name="Acme Corp"),
            ResumeDraft(work_experience=[experience_b]),
        ]
        pipeline, stages = _pipeline(mock_store, extraction)

        outcome = await pipeline.run(
            TailoringRequest(base_resume_id="base_1", job_description=JOB_TEXT)
        )

        assert outcome.success
        assert outcome.state.stage is Stage.DONE
        assert outcome.state.job_id == "job_1"
        assert outcome.state.resume_id == "resume_1"
        assert outcome.resume.job_id == "job_1"
        assert outcome.resume.is_base_resume is False
        assert outcome.resume.name == "Senior Backend Engineer at Acme Corp"
        assert stages == [
            Stage.ANALYZING_JOB,
            Stage.FORMATTING_JOB,
            Stage.FETCHING_BASE_RESUME,
            Stage.TAILORING_CONTENT,
            Stage.FINALIZING,
            Stage.DONE,
        ]
        call = mock_store.create_tailored_resume.call_args.kwargs
        assert call["job_id"] == "job_1"
        assert call["title"] == "Senior Backend Engineer"
        assert call["company"] == "Acme Corp"

    @pytest.mark.asyncio
    async def test_tailoring_replaces_content(
        self, mock_store, extraction, llm, base_resume, experience_a, experience_b
    ):
        """Base [A] tailored to output [B] yields exactly [B]."""
        assert base_resume.work_experience == [experience_a]
        llm.generate_structured.side_effect = [
            JobListing(position_title="Senior Backend Engineer", company_name="Acme Corp"),
            ResumeDraft(work_experience=[experience_b]),
        ]
        pipeline, _ = _pipeline(mock_store, extraction)

        outcome = await pipeline.run(
            TailoringRequest(base_resume_id="base_1", job_description=JOB_TEXT)
        )

        assert outcome.resume.work_experience == [experience_b]


class TestFailures:
    """Failures short-circuit the run."""

    @pytest.mark.asyncio
    async def test_job_formatting_failure(self, mock_store, extraction, llm, count_writes):
        """A failed job analysis persists nothing and fails at AnalyzingJob."""
        llm.generate_structured.side_effect = UpstreamError("AI request failed: boom")
        pipeline, stages = _pipeline(mock_store, extraction)

        outcome = await pipeline.run(
            TailoringRequest(base_resume_id="base_1", job_description=JOB_TEXT)
        )

        assert not outcome.success
        assert outcome.state.stage is Stage.FAILED
        assert outcome.state.failed_stage is Stage.ANALYZING_JOB
        assert outcome.state.error_kind is ErrorKind.UPSTREAM_ERROR
        assert count_writes(mock_store) == 0
        assert stages == [Stage.ANALYZING_JOB, Stage.FAILED]

    @pytest.mark.asyncio
    async def test_credential_failure_is_classified(self, mock_store, extraction, llm):
        """Credential errors keep their classification."""
        llm.generate_structured.side_effect = MissingCredentialError("Invalid x-api-key provided")
        pipeline, _ = _pipeline(mock_store, extraction)

        outcome = await pipeline.run(
            TailoringRequest(base_resume_id="base_1", job_description=JOB_TEXT)
        )

        assert outcome.state.error_kind is ErrorKind.MISSING_CREDENTIAL
        assert isinstance(outcome.error, MissingCredentialError)

    @pytest.mark.asyncio
    async def test_job_persistence_failure(self, mock_store, extraction, llm):
        """A storage failure while saving the job fails FormattingJob as upstream."""
        llm.generate_structured.return_value = JobListing(position_title="SRE")
        mock_store.create_job.side_effect = RuntimeError("disk full")
        pipeline, _ = _pipeline(mock_store, extraction)

        outcome = await pipeline.run(
            TailoringRequest(base_resume_id="base_1", job_description=JOB_TEXT)
        )

        assert outcome.state.failed_stage is Stage.FORMATTING_JOB
        assert outcome.state.error_kind is ErrorKind.UPSTREAM_ERROR
        mock_store.create_tailored_resume.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_base_resume_not_found(self, mock_store, extraction, llm):
        """A missing base resume fails FetchingBaseResume as NotFound."""
        llm.generate_structured.return_value = JobListing(position_title="SRE")
        mock_store.get_resume_by_id.return_value = None
        pipeline, _ = _pipeline(mock_store, extraction)

        outcome = await pipeline.run(
            TailoringRequest(base_resume_id="missing", job_description=JOB_TEXT)
        )

        assert outcome.state.failed_stage is Stage.FETCHING_BASE_RESUME
        assert outcome.state.error_kind is ErrorKind.NOT_FOUND
        mock_store.create_tailored_resume.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_tailoring_failure_leaves_job(self, mock_store, extraction, llm):
        """A tailoring failure keeps the already created job and creates no resume."""
        llm.generate_structured.side_effect = [
            JobListing(position_title="SRE", company_name="Acme"),
            UpstreamError("AI response did not match the ResumeDraft schema"),
        ]
        pipeline, _ = _pipeline(mock_store, extraction)

        outcome = await pipeline.run(
            TailoringRequest(base_resume_id="base_1", job_description=JOB_TEXT)
        )

        assert outcome.state.failed_stage is Stage.TAILORING_CONTENT
        assert outcome.state.job_id == "job_1"
        assert outcome.job.id == "job_1"
        assert mock_store.create_job.await_count == 1
        mock_store.create_tailored_resume.assert_not_awaited()
        mock_store.delete_resume.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_error_message_is_redacted(self, mock_store, extraction, llm):
        """Keys in error messages never reach the run state."""
        llm.generate_structured.side_effect = UpstreamError("failed with sk-abcdefghijklmnop")
        pipeline, _ = _pipeline(mock_store, extraction)

        outcome = await pipeline.run(
            TailoringRequest(base_resume_id="base_1", job_description=JOB_TEXT)
        )

        assert "abcdefghijklmnop" not in outcome.state.error_message

    @pytest.mark.asyncio
    async def test_cancellation_before_persistence(self, mock_store, extraction, llm, count_writes):
        """Cancelling during the AI call propagates and writes nothing."""
        started = asyncio.Event()

        async def _slow(**kwargs):
            started.set()
            await asyncio.sleep(10)

        llm.generate_structured.side_effect = _slow
        pipeline, _ = _pipeline(mock_store, extraction)

        task = asyncio.create_task(
            pipeline.run(TailoringRequest(base_resume_id="base_1", job_description=JOB_TEXT))
        )
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert count_writes(mock_store) == 0

    @pytest.mark.asyncio
    async def test_unreadable_key_entries_fail_as_missing_credential(
        self, mock_store, settings, count_writes
    ):
        """Malformed stored keys resolve to none; the run fails at AnalyzingJob."""
        extraction = ExtractionService(CompletionClient(settings=settings))
        pipeline, stages = _pipeline(mock_store, extraction)
        config = {"apiKeys": [{"service": "anthropic", "key": None}, {"service": "anthropic"}]}

        with patch("resumelm.ai.llm.acompletion", new_callable=AsyncMock) as mock_completion:
            outcome = await pipeline.run(
                TailoringRequest(base_resume_id="base_1", job_description=JOB_TEXT, config=config)
            )

        assert not outcome.success
        assert outcome.state.failed_stage is Stage.ANALYZING_JOB
        assert outcome.state.error_kind is ErrorKind.MISSING_CREDENTIAL
        assert stages == [Stage.ANALYZING_JOB, Stage.FAILED]
        assert count_writes(mock_store) == 0
        mock_completion.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unexpected_exception_ends_in_failed(self, mock_store, count_writes):
        """An unclassified exception becomes an upstream failure of the current stage."""
        extraction = MagicMock()
        extraction.format_job_listing = AsyncMock(side_effect=KeyError("position_title"))
        pipeline, stages = _pipeline(mock_store, extraction)

        outcome = await pipeline.run(
            TailoringRequest(base_resume_id="base_1", job_description=JOB_TEXT)
        )

        assert not outcome.success
        assert outcome.state.failed_stage is Stage.ANALYZING_JOB
        assert outcome.state.error_kind is ErrorKind.UPSTREAM_ERROR
        assert isinstance(outcome.error, UpstreamError)
        assert isinstance(outcome.error.original_error, KeyError)
        assert stages[-1] is Stage.FAILED
        assert count_writes(mock_store) == 0

    @pytest.mark.asyncio
    async def test_failing_progress_callback_is_logged(self, mock_store, extraction, llm, caplog):
        """A raising progress callback does not stop the run and is logged."""
        llm.generate_structured.side_effect = [
            JobListing(position_title="SRE", company_name="Acme"),
            ResumeDraft(),
        ]

        def _broken(state):
            raise RuntimeError("display gone")

        pipeline = TailoringPipeline(mock_store, extraction, progress_callback=_broken)

        with caplog.at_level(logging.ERROR, logger="resumelm.pipeline.tailoring"):
            outcome = await pipeline.run(
                TailoringRequest(base_resume_id="base_1", job_description=JOB_TEXT)
            )

        assert outcome.success
        assert "Progress callback failed" in caplog.text


class TestDirectCopy:
    """Import-profile (direct copy) mode."""

    @pytest.mark.asyncio
    async def test_copy_without_job_text(self, mock_store, extraction, llm, base_resume):
        """Without job text no job is created and the default title is used."""
        pipeline, stages = _pipeline(mock_store, extraction)

        outcome = await pipeline.run(
            TailoringRequest(base_resume_id="base_1", mode=TailoringMode.DIRECT_COPY)
        )

        assert outcome.success
        llm.generate_structured.assert_not_awaited()
        mock_store.create_job.assert_not_awaited()
        call = mock_store.create_tailored_resume.call_args.kwargs
        assert call["job_id"] is None
        assert call["title"] == "Copied Resume"
        assert call["company"] == ""
        assert call["content"].work_experience == base_resume.work_experience
        assert stages == [Stage.FETCHING_BASE_RESUME, Stage.FINALIZING, Stage.DONE]

    @pytest.mark.asyncio
    async def test_copy_with_job_text(self, mock_store, extraction, llm, base_resume):
        """With job text the job is formatted and linked, content copied verbatim."""
        llm.generate_structured.return_value = JobListing(
            position_title="Senior Backend Engineer", company_name="Acme Corp"
        )
        pipeline, stages = _pipeline(mock_store, extraction)

        outcome = await pipeline.run(
            TailoringRequest(
                base_resume_id="base_1",
                job_description=JOB_TEXT,
                mode=TailoringMode.DIRECT_COPY,
            )
        )

        assert outcome.success
        assert llm.generate_structured.await_count == 1
        assert outcome.resume.job_id == "job_1"
        assert outcome.resume.work_experience == base_resume.work_experience
        assert Stage.TAILORING_CONTENT not in stages
