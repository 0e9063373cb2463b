"""Error taxonomy for AI calls and pipeline runs.

Every failure that can reach a caller is one of five kinds. The typed
exceptions are the primary contract; their messages are kept matchable by the
legacy substring checks ("api key", "unauthorized", "invalid key") so older
callers that inspect ``str(error)`` keep classifying correctly.
"""

from __future__ import annotations

from enum import Enum

from litellm import AuthenticationError, RateLimitError

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Try again later."

_CREDENTIAL_MARKERS = ("api key", "unauthorized", "invalid key", "invalid x-api-key")
_RATE_LIMIT_MARKERS = ("rate limit", "rate_limit", "429", "quota")


class ErrorKind(str, Enum):
    """Classification of a failure, by how it was detected."""

    MISSING_CREDENTIAL = "missing_credential"
    RATE_LIMITED = "rate_limited"
    UPSTREAM_ERROR = "upstream_error"
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"


class ResumeLMError(Exception):
    """Base exception for classified failures."""

    kind: ErrorKind = ErrorKind.UPSTREAM_ERROR

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error


class MissingCredentialError(ResumeLMError):
    """No usable model/API key combination, or the provider rejected the key."""

    kind = ErrorKind.MISSING_CREDENTIAL

    def __init__(
        self,
        message: str = "API key required. Please add an API key in settings or upgrade to Pro.",
        original_error: Exception | None = None,
    ):
        if "api key" not in message.lower():
            message = f"Invalid API key: {message}"
        super().__init__(message, original_error)


class RateLimitedError(ResumeLMError):
    """Upstream quota signal. The message is the fixed user-facing string."""

    kind = ErrorKind.RATE_LIMITED

    def __init__(self, original_error: Exception | None = None):
        super().__init__(RATE_LIMIT_MESSAGE, original_error)


class UpstreamError(ResumeLMError):
    """Any other completion failure, including unusable output."""

    kind = ErrorKind.UPSTREAM_ERROR


class NotFoundError(ResumeLMError):
    """A referenced entity is missing at the persistence boundary."""

    kind = ErrorKind.NOT_FOUND


class InputValidationError(ResumeLMError):
    """A local precondition failed before any pipeline step started."""

    kind = ErrorKind.VALIDATION_ERROR


def classify_message(message: str) -> ErrorKind:
    """Classify an error message with the legacy substring rules.

    Only credential and rate-limit failures are distinguishable by text;
    everything else is an upstream error.
    """
    lowered = message.lower()
    if any(marker in lowered for marker in _CREDENTIAL_MARKERS):
        return ErrorKind.MISSING_CREDENTIAL
    if message == RATE_LIMIT_MESSAGE or any(
        marker in lowered for marker in _RATE_LIMIT_MARKERS
    ):
        return ErrorKind.RATE_LIMITED
    return ErrorKind.UPSTREAM_ERROR


def classify_error(error: BaseException) -> ErrorKind:
    """Classify any exception, preferring type information over message text."""
    if isinstance(error, ResumeLMError):
        return error.kind
    if isinstance(error, AuthenticationError):
        return ErrorKind.MISSING_CREDENTIAL
    if isinstance(error, RateLimitError):
        return ErrorKind.RATE_LIMITED
    return classify_message(str(error))


def to_resumelm_error(error: Exception) -> ResumeLMError:
    """Wrap an arbitrary completion failure in the matching typed error."""
    if isinstance(error, ResumeLMError):
        return error

    kind = classify_error(error)
    if kind is ErrorKind.MISSING_CREDENTIAL:
        return MissingCredentialError(str(error), error)
    if kind is ErrorKind.RATE_LIMITED:
        return RateLimitedError(error)
    return UpstreamError(f"AI request failed: {error}", error)
