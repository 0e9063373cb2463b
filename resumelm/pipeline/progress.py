"""Progress labels and failure presentation for pipeline runs.

Maps run stages to the small fixed set of labels a UI shows, failure kinds to
a recovery action, and a failed run to a user-facing title/description.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from resumelm.ai.errors import RATE_LIMIT_MESSAGE, ErrorKind, classify_error
from resumelm.config.settings import Settings, get_settings
from resumelm.pipeline.states import Stage
from resumelm.utils.text import redact_secrets


class ProgressLabel(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    FORMATTING = "formatting"
    TAILORING = "tailoring"
    FINALIZING = "finalizing"
    EXTRACTING = "extracting"
    MERGING = "merging"
    COMPLETE = "complete"
    FAILED = "failed"


class RecoveryAction(str, Enum):
    RETRY_SAME_INPUT = "retryable-with-same-input"
    RETRY_AFTER_SETTINGS_CHANGE = "retryable-after-settings-change"
    FATAL = "fatal"


_STAGE_LABELS: dict[Stage, ProgressLabel] = {
    Stage.IDLE: ProgressLabel.IDLE,
    Stage.ANALYZING_JOB: ProgressLabel.ANALYZING,
    Stage.FORMATTING_JOB: ProgressLabel.FORMATTING,
    # Loading the base resume is shown as part of the formatting step
    Stage.FETCHING_BASE_RESUME: ProgressLabel.FORMATTING,
    Stage.TAILORING_CONTENT: ProgressLabel.TAILORING,
    Stage.FINALIZING: ProgressLabel.FINALIZING,
    Stage.EXTRACTING: ProgressLabel.EXTRACTING,
    Stage.RECONCILING: ProgressLabel.MERGING,
    Stage.DONE: ProgressLabel.COMPLETE,
    Stage.FAILED: ProgressLabel.FAILED,
}

_RECOVERY: dict[ErrorKind, RecoveryAction] = {
    ErrorKind.MISSING_CREDENTIAL: RecoveryAction.RETRY_AFTER_SETTINGS_CHANGE,
    ErrorKind.RATE_LIMITED: RecoveryAction.RETRY_SAME_INPUT,
    ErrorKind.UPSTREAM_ERROR: RecoveryAction.RETRY_SAME_INPUT,
    ErrorKind.NOT_FOUND: RecoveryAction.FATAL,
    ErrorKind.VALIDATION_ERROR: RecoveryAction.FATAL,
}

_FAILURE_SUMMARIES: dict[Stage, str] = {
    Stage.IDLE: "Please check your input",
    Stage.ANALYZING_JOB: "Failed to analyze job description",
    Stage.FORMATTING_JOB: "Failed to process job description",
    Stage.FETCHING_BASE_RESUME: "Failed to load base resume",
    Stage.TAILORING_CONTENT: "Failed to tailor resume",
    Stage.FINALIZING: "Failed to create resume",
    Stage.EXTRACTING: "Failed to import content",
    Stage.RECONCILING: "Failed to merge imported content",
}


def progress_label(stage: Stage) -> ProgressLabel:
    """Presentation label for a stage."""
    return _STAGE_LABELS[stage]


def recovery_for(kind: ErrorKind) -> RecoveryAction:
    """How a user can recover from a failure of the given kind."""
    return _RECOVERY[kind]


@dataclass(frozen=True)
class FailureMessage:
    """User-facing description of a failed run."""

    title: str
    description: str
    recovery: RecoveryAction
    retry_at: datetime | None = None


def describe_failure(
    stage: Stage | None,
    error: BaseException | str,
    now: datetime,
    settings: Settings | None = None,
) -> FailureMessage:
    """Build the dialog shown for a failure at ``stage``.

    ``error`` may be an exception or a bare message; bare messages are
    classified with the substring rules. Details are redacted before they
    are included.
    """
    settings = settings or get_settings()
    if isinstance(error, BaseException):
        kind = classify_error(error)
        details = str(error)
    else:
        kind = classify_error(Exception(error))
        details = error
    details = redact_secrets(details)
    summary = _FAILURE_SUMMARIES.get(stage, "Something went wrong")

    if kind is ErrorKind.MISSING_CREDENTIAL:
        return FailureMessage(
            title="API Key Error",
            description=(
                "There was an issue with your API key. Please check your settings "
                f"and try again. Details: {details}"
            ),
            recovery=recovery_for(kind),
        )

    if kind is ErrorKind.RATE_LIMITED:
        hours = settings.rate_limit_retry_hours
        retry_at = now + timedelta(hours=hours)
        return FailureMessage(
            title="Error",
            description=(
                f"{RATE_LIMIT_MESSAGE} You can try again at "
                f"{retry_at:%Y-%m-%d %H:%M} ({hours:g} hours from now)."
            ),
            recovery=recovery_for(kind),
            retry_at=retry_at,
        )

    if kind is ErrorKind.VALIDATION_ERROR:
        return FailureMessage(
            title="Error", description=details, recovery=recovery_for(kind)
        )

    return FailureMessage(
        title="Error",
        description=f"{summary} Details: {details}",
        recovery=recovery_for(kind),
    )
