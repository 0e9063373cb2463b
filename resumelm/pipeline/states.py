"""Pipeline run state as an explicit finite-state machine.

A run's state is an immutable ``RunState`` value. Transitions are pure
functions returning a new value; the pipelines hold the current one and
publish it to progress listeners after every transition.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from resumelm.ai.errors import ErrorKind


class Stage(str, Enum):
    """Every stage a tailoring or import run can be in."""

    IDLE = "idle"
    # Tailoring
    ANALYZING_JOB = "analyzing_job"
    FORMATTING_JOB = "formatting_job"
    FETCHING_BASE_RESUME = "fetching_base_resume"
    TAILORING_CONTENT = "tailoring_content"
    FINALIZING = "finalizing"
    # Import
    EXTRACTING = "extracting"
    RECONCILING = "reconciling"
    # Terminal
    DONE = "done"
    FAILED = "failed"


TERMINAL_STAGES = frozenset({Stage.DONE, Stage.FAILED})


class TailoringMode(str, Enum):
    """How a tailored resume gets its content."""

    AI = "ai"
    # Copy the base resume verbatim ("import-profile" in the UI)
    DIRECT_COPY = "import-profile"


def tailoring_plan(mode: TailoringMode, has_job_text: bool) -> tuple[Stage, ...]:
    """Ordered stages for a tailoring run.

    AI mode always analyzes and persists the job and tailors the content.
    Direct copy skips tailoring, and skips the job stages when no job text
    was supplied.
    """
    job_stages = (Stage.ANALYZING_JOB, Stage.FORMATTING_JOB)
    if mode is TailoringMode.AI:
        return (
            *job_stages,
            Stage.FETCHING_BASE_RESUME,
            Stage.TAILORING_CONTENT,
            Stage.FINALIZING,
            Stage.DONE,
        )
    return (
        *(job_stages if has_job_text else ()),
        Stage.FETCHING_BASE_RESUME,
        Stage.FINALIZING,
        Stage.DONE,
    )


IMPORT_PLAN: tuple[Stage, ...] = (Stage.EXTRACTING, Stage.RECONCILING, Stage.DONE)


class InvalidTransitionError(RuntimeError):
    """Raised when a transition does not follow the run's plan."""


@dataclass(frozen=True)
class RunState:
    """Snapshot of one pipeline run.

    Attributes:
        plan: Ordered stages this run will go through (ending in DONE).
        stage: Current stage.
        failed_stage: Stage that was active when the run failed.
        error_kind: Classification of the failure.
        error_message: Redacted failure message.
        job_id: Job persisted by this run, if any.
        resume_id: Resume persisted by this run, if any.
    """

    plan: tuple[Stage, ...]
    stage: Stage = Stage.IDLE
    failed_stage: Stage | None = None
    error_kind: ErrorKind | None = None
    error_message: str | None = None
    job_id: str | None = None
    resume_id: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.stage in TERMINAL_STAGES

    @property
    def next_stage(self) -> Stage | None:
        if self.is_terminal:
            return None
        if self.stage is Stage.IDLE:
            return self.plan[0]
        index = self.plan.index(self.stage)
        return self.plan[index + 1] if index + 1 < len(self.plan) else None


def advance(state: RunState, **updates: str | None) -> RunState:
    """Move to the next planned stage, optionally recording job/resume ids.

    Raises:
        InvalidTransitionError: If the run is already terminal.
    """
    target = state.next_stage
    if target is None:
        raise InvalidTransitionError(f"Cannot advance from {state.stage.value}")
    return replace(state, stage=target, **updates)


def fail(state: RunState, kind: ErrorKind, message: str) -> RunState:
    """Move to FAILED, remembering the stage that failed.

    Raises:
        InvalidTransitionError: If the run is already terminal or never started.
    """
    if state.is_terminal or state.stage is Stage.IDLE:
        raise InvalidTransitionError(f"Cannot fail from {state.stage.value}")
    return replace(
        state,
        stage=Stage.FAILED,
        failed_stage=state.stage,
        error_kind=kind,
        error_message=message,
    )
