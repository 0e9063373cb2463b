"""AI completion access: credential resolution, error taxonomy, client."""

from resumelm.ai.credentials import (
    AIConfig,
    Credential,
    Entitlement,
    ResolvedModel,
    provider_for_model,
    resolve,
)
from resumelm.ai.errors import (
    RATE_LIMIT_MESSAGE,
    ErrorKind,
    InputValidationError,
    MissingCredentialError,
    NotFoundError,
    RateLimitedError,
    ResumeLMError,
    UpstreamError,
    classify_error,
    classify_message,
)
from resumelm.ai.llm import CompletionClient

__all__ = [
    "AIConfig",
    "CompletionClient",
    "Credential",
    "Entitlement",
    "ErrorKind",
    "InputValidationError",
    "MissingCredentialError",
    "NotFoundError",
    "RATE_LIMIT_MESSAGE",
    "RateLimitedError",
    "ResolvedModel",
    "ResumeLMError",
    "UpstreamError",
    "classify_error",
    "classify_message",
    "provider_for_model",
    "resolve",
]
