"""Import pipeline: add pasted or PDF-derived text to a profile or resume.

    Idle -> Extracting -> Reconciling -> Done | Failed

The existing entity is never modified in place. On success a new, merged
entity is returned; on failure the caller's copy is untouched.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from resumelm.ai.credentials import AIConfig
from resumelm.ai.errors import InputValidationError, ResumeLMError, UpstreamError
from resumelm.documents.models import Profile, Resume
from resumelm.extraction.service import ExtractionService
from resumelm.pipeline.states import IMPORT_PLAN, RunState, advance, fail
from resumelm.reconcile.engine import SkillMergePolicy, reconcile
from resumelm.store.protocol import DocumentStore
from resumelm.utils.text import is_blank, redact_secrets

logger = logging.getLogger(__name__)

EntityT = TypeVar("EntityT", Profile, Resume)

ProgressCallback = Callable[[RunState], None]


@dataclass
class ImportOutcome(Generic[EntityT]):
    """Result of an import run. ``entity`` is the merged copy on success."""

    success: bool
    state: RunState
    entity: EntityT | None = None
    error: ResumeLMError | None = None


class ImportPipeline:
    """Extract structured content from text and merge it into an entity.

    Args:
        extraction: Structured extraction service.
        store: Optional store, only needed when a merged profile is saved.
        skill_policy: How imported skill categories combine with existing ones.
        progress_callback: Called with the new RunState after every transition.
    """

    def __init__(
        self,
        extraction: ExtractionService | None = None,
        store: DocumentStore | None = None,
        skill_policy: SkillMergePolicy = SkillMergePolicy.MERGE_BY_NAME,
        progress_callback: ProgressCallback | None = None,
    ):
        self.extraction = extraction or ExtractionService()
        self.store = store
        self.skill_policy = skill_policy
        self.progress_callback = progress_callback

    async def import_into_resume(
        self, text: str, existing: Resume, config: AIConfig | dict | None = None
    ) -> ImportOutcome[Resume]:
        """Merge the content found in ``text`` into a copy of ``existing``."""
        return await self._run(
            text,
            existing,
            lambda: self.extraction.extract_resume_additions(text, existing, config),
        )

    async def import_into_profile(
        self,
        text: str,
        profile: Profile,
        config: AIConfig | dict | None = None,
        save: bool = False,
    ) -> ImportOutcome[Profile]:
        """Merge the content found in ``text`` into a copy of ``profile``.

        With ``save=True`` the merged profile is written through the store
        before the run is reported done.
        """
        if save and self.store is None:
            raise ValueError("A store is required to save the imported profile")
        return await self._run(
            text,
            profile,
            lambda: self.extraction.format_profile_with_ai(text, config),
            save=save,
        )

    async def add_text_to_resume(
        self, text: str, existing: Resume, config: AIConfig | dict | None = None
    ) -> Resume:
        """Return ``existing`` with the content of ``text`` merged in.

        Raises:
            InputValidationError: If ``text`` is blank.
            ResumeLMError: If extraction fails.
        """
        outcome = await self.import_into_resume(text, existing, config)
        if not outcome.success:
            raise outcome.error
        return outcome.entity

    async def _run(
        self,
        text: str,
        existing: EntityT,
        extract: Callable[[], Awaitable[object]],
        save: bool = False,
    ) -> ImportOutcome[EntityT]:
        if is_blank(text):
            raise InputValidationError("Please enter some text to import")

        state = RunState(plan=IMPORT_PLAN)
        kind = type(existing).__name__
        logger.info(f"Starting import into {kind} ({len(text)} chars)")
        try:
            state = self._transition(state)
            incoming = await extract()

            state = self._transition(state)
            merged = reconcile(existing, incoming, self.skill_policy)
            if save:
                try:
                    await asyncio.shield(self.store.update_profile(merged))
                except Exception as e:
                    raise UpstreamError(f"Storage request failed: {e}", e) from e

            state = self._transition(state)
        except ResumeLMError as e:
            return self._failed(state, e, kind)
        except Exception as e:
            logger.exception(f"Unexpected error during {state.stage.value}")
            return self._failed(state, UpstreamError(f"Unexpected error: {e}", e), kind)

        return ImportOutcome(success=True, state=state, entity=merged)

    def _failed(self, state: RunState, error: ResumeLMError, kind: str) -> ImportOutcome:
        state = fail(state, error.kind, redact_secrets(str(error)))
        logger.warning(f"Import into {kind} failed: {state.error_message}")
        self._emit_progress(state)
        return ImportOutcome(success=False, state=state, error=error)

    def _transition(self, state: RunState) -> RunState:
        new_state = advance(state)
        logger.info(f"Import stage: {new_state.stage.value}")
        self._emit_progress(new_state)
        return new_state

    def _emit_progress(self, state: RunState) -> None:
        if self.progress_callback is None:
            return
        try:
            self.progress_callback(state)
        except Exception:
            logger.exception(f"Progress callback failed at {state.stage.value}")
