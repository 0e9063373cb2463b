"""Tests for the import pipeline."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from resumelm.ai.errors import (
    ErrorKind,
    InputValidationError,
    RateLimitedError,
    UpstreamError,
)
from resumelm.documents.models import ProfileData, ResumeDraft, SkillCategory
from resumelm.extraction.service import ExtractionService
from resumelm.pipeline.importing import ImportPipeline
from resumelm.pipeline.states import Stage
from resumelm.reconcile.engine import SkillMergePolicy


@pytest.fixture
def llm():
    client = MagicMock()
    client.generate_structured = AsyncMock()
    return client


@pytest.fixture
def extraction(llm):
    return ExtractionService(llm)


class TestImportIntoResume:
    """addTextToResume."""

    @pytest.mark.asyncio
    async def test_import_merges(self, extraction, llm, base_resume, experience_a, experience_b):
        """Base [A] with extracted [B] yields [B, A]."""
        llm.generate_structured.return_value = ResumeDraft(work_experience=[experience_b])
        pipeline = ImportPipeline(extraction)

        merged = await pipeline.add_text_to_resume("Backend Engineer at Initech", base_resume)

        assert merged.work_experience == [experience_b, experience_a]
        assert base_resume.work_experience == [experience_a]

    @pytest.mark.asyncio
    async def test_progress_stages(self, extraction, llm, base_resume):
        """The run goes Extracting -> Reconciling -> Done."""
        llm.generate_structured.return_value = ResumeDraft()
        stages = []
        pipeline = ImportPipeline(extraction, progress_callback=lambda s: stages.append(s.stage))

        outcome = await pipeline.import_into_resume("text", base_resume)

        assert outcome.success
        assert stages == [Stage.EXTRACTING, Stage.RECONCILING, Stage.DONE]

    @pytest.mark.asyncio
    async def test_failure_leaves_entity_untouched(self, extraction, llm, base_resume):
        """On failure no merged entity is produced and the original is unchanged."""
        before = base_resume.model_dump()
        llm.generate_structured.side_effect = RateLimitedError()
        pipeline = ImportPipeline(extraction)

        outcome = await pipeline.import_into_resume("text", base_resume)

        assert not outcome.success
        assert outcome.entity is None
        assert outcome.state.failed_stage is Stage.EXTRACTING
        assert outcome.state.error_kind is ErrorKind.RATE_LIMITED
        assert base_resume.model_dump() == before

    @pytest.mark.asyncio
    async def test_add_text_raises_on_failure(self, extraction, llm, base_resume):
        """The convenience entry point raises the classified error."""
        llm.generate_structured.side_effect = UpstreamError("boom")
        pipeline = ImportPipeline(extraction)

        with pytest.raises(UpstreamError):
            await pipeline.add_text_to_resume("text", base_resume)

    @pytest.mark.asyncio
    async def test_blank_text_rejected(self, extraction, llm, base_resume):
        """Blank text is a validation error without an AI call."""
        pipeline = ImportPipeline(extraction)

        with pytest.raises(InputValidationError):
            await pipeline.add_text_to_resume("  ", base_resume)
        llm.generate_structured.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unexpected_exception_ends_in_failed(self, base_resume):
        """An unclassified exception fails the current stage as upstream."""
        extraction = MagicMock()
        extraction.extract_resume_additions = AsyncMock(side_effect=TypeError("bad payload"))
        stages = []
        pipeline = ImportPipeline(extraction, progress_callback=lambda s: stages.append(s.stage))

        outcome = await pipeline.import_into_resume("text", base_resume)

        assert not outcome.success
        assert outcome.state.failed_stage is Stage.EXTRACTING
        assert outcome.state.error_kind is ErrorKind.UPSTREAM_ERROR
        assert isinstance(outcome.error.original_error, TypeError)
        assert stages == [Stage.EXTRACTING, Stage.FAILED]

    @pytest.mark.asyncio
    async def test_failing_progress_callback_is_logged(self, extraction, llm, base_resume, caplog):
        """A raising progress callback is logged and the import still completes."""
        llm.generate_structured.return_value = ResumeDraft()

        def _broken(state):
            raise RuntimeError("display gone")

        pipeline = ImportPipeline(extraction, progress_callback=_broken)

        with caplog.at_level(logging.ERROR, logger="resumelm.pipeline.importing"):
            outcome = await pipeline.import_into_resume("text", base_resume)

        assert outcome.success
        assert "Progress callback failed" in caplog.text


class TestImportIntoProfile:
    """Profile imports."""

    @pytest.mark.asyncio
    async def test_merge_without_saving(self, extraction, llm, profile, mock_store):
        """By default the caller decides when to save."""
        llm.generate_structured.return_value = ProfileData(
            email="<UNKNOWN>",
            skills=[SkillCategory(category="languages", items=["Rust"])],
        )
        pipeline = ImportPipeline(extraction, store=mock_store)

        outcome = await pipeline.import_into_profile("text", profile)

        assert outcome.success
        assert outcome.entity.email == "ada@example.com"
        assert outcome.entity.skills[0].items == ["Python", "Go", "Rust"]
        mock_store.update_profile.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_append_skill_policy(self, extraction, llm, profile):
        """The APPEND policy keeps imported categories separate."""
        llm.generate_structured.return_value = ProfileData(
            skills=[SkillCategory(category="Languages", items=["Rust"])]
        )
        pipeline = ImportPipeline(extraction, skill_policy=SkillMergePolicy.APPEND)

        outcome = await pipeline.import_into_profile("text", profile)

        assert len(outcome.entity.skills) == 2

    @pytest.mark.asyncio
    async def test_save_writes_merged_profile(self, extraction, llm, profile, mock_store):
        """With save=True the merged profile is stored."""
        llm.generate_structured.return_value = ProfileData(first_name="Augusta")
        pipeline = ImportPipeline(extraction, store=mock_store)

        outcome = await pipeline.import_into_profile("text", profile, save=True)

        saved = mock_store.update_profile.call_args.args[0]
        assert saved.first_name == "Augusta"
        assert outcome.entity == saved

    @pytest.mark.asyncio
    async def test_save_failure_fails_reconciling(self, extraction, llm, profile, mock_store):
        """A storage failure while saving fails the Reconciling stage."""
        llm.generate_structured.return_value = ProfileData()
        mock_store.update_profile.side_effect = RuntimeError("locked")
        pipeline = ImportPipeline(extraction, store=mock_store)

        outcome = await pipeline.import_into_profile("text", profile, save=True)

        assert outcome.state.failed_stage is Stage.RECONCILING
        assert outcome.state.error_kind is ErrorKind.UPSTREAM_ERROR

    @pytest.mark.asyncio
    async def test_save_requires_store(self, extraction, profile):
        """Saving without a store is a programming error."""
        with pytest.raises(ValueError):
            await ImportPipeline(extraction).import_into_profile("text", profile, save=True)
