"""Multi-step pipelines: tailoring, import and base resume creation."""

from resumelm.pipeline.base_resume import BaseResumeBuilder, ProfileService
from resumelm.pipeline.importing import ImportOutcome, ImportPipeline
from resumelm.pipeline.progress import (
    FailureMessage,
    ProgressLabel,
    RecoveryAction,
    describe_failure,
    progress_label,
    recovery_for,
)
from resumelm.pipeline.states import (
    InvalidTransitionError,
    RunState,
    Stage,
    TailoringMode,
)
from resumelm.pipeline.tailoring import (
    TailoringOutcome,
    TailoringPipeline,
    TailoringRequest,
)

__all__ = [
    "BaseResumeBuilder",
    "FailureMessage",
    "ImportOutcome",
    "ImportPipeline",
    "InvalidTransitionError",
    "ProfileService",
    "ProgressLabel",
    "RecoveryAction",
    "RunState",
    "Stage",
    "TailoringMode",
    "TailoringOutcome",
    "TailoringPipeline",
    "TailoringRequest",
    "describe_failure",
    "progress_label",
    "recovery_for",
]
