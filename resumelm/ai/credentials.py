"""Model and credential resolution.

The client owns its model choice and API keys (persisted in its local
settings); the server owns the entitlement state. Resolution is a pure read of
both: it never fails, and never touches server-side secrets. Whether a usable
key exists is decided later, when the completion client builds the request.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

# Model id prefixes that identify a provider without an explicit "provider/" prefix
_MODEL_PREFIXES: tuple[tuple[str, str], ...] = (
    ("gpt-", "openai"),
    ("chatgpt-", "openai"),
    ("o1", "openai"),
    ("o3", "openai"),
    ("o4", "openai"),
    ("claude-", "anthropic"),
    ("gemini-", "gemini"),
    ("deepseek-", "deepseek"),
)

KNOWN_SERVICES = frozenset({"openai", "anthropic", "gemini", "deepseek", "openrouter"})

_PRO_STATUSES = frozenset({"active", "trialing"})


class Credential(BaseModel):
    """A user-supplied API key tagged with the provider it belongs to."""

    model_config = ConfigDict(populate_by_name=True)

    service: str = Field(..., validation_alias=AliasChoices("service", "provider"))
    key: str
    added_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("added_at", "addedAt")
    )

    @field_validator("service")
    @classmethod
    def normalize_service(cls, v: str) -> str:
        normalized = v.strip().lower()
        return "gemini" if normalized == "google" else normalized


class AIConfig(BaseModel):
    """Client-held configuration threaded into every AI operation."""

    model_config = ConfigDict(populate_by_name=True)

    model: str = ""
    api_keys: list[Credential] = Field(
        default_factory=list, validation_alias=AliasChoices("api_keys", "apiKeys")
    )

    @field_validator("model", mode="before")
    @classmethod
    def none_model_to_empty(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("api_keys", mode="before")
    @classmethod
    def drop_malformed_keys(cls, v: Any) -> list:
        # Stored key lists can be corrupt; an unreadable list means "no keys"
        # and an unreadable entry is skipped.
        if not isinstance(v, list):
            return []
        credentials = []
        for item in v:
            if isinstance(item, Credential):
                credentials.append(item)
                continue
            try:
                credentials.append(Credential.model_validate(item))
            except ValidationError:
                continue
        return credentials


class Entitlement(BaseModel):
    """Server-held subscription state (billing is an external collaborator)."""

    plan: str = "free"
    status: str | None = None

    @property
    def is_pro(self) -> bool:
        """Pro access only while the subscription is active or trialing."""
        return self.plan == "pro" and (self.status or "") in _PRO_STATUSES


@dataclass(frozen=True)
class ResolvedModel:
    """Result of credential resolution for one call."""

    model: str
    service: str
    api_keys: list[Credential] = field(default_factory=list)

    def key_for_service(self) -> str | None:
        """Return the first non-empty user key for the model's provider."""
        for credential in self.api_keys:
            if credential.service == self.service and credential.key.strip():
                return credential.key.strip()
        return None


def provider_for_model(model: str) -> str:
    """Infer the provider of a model id.

    An explicit known ``provider/model`` prefix wins; any other slash-separated
    id is treated as an OpenRouter route.
    """
    lowered = model.strip().lower()
    if "/" in lowered:
        prefix = lowered.split("/", 1)[0]
        return prefix if prefix in KNOWN_SERVICES else "openrouter"
    for model_prefix, service in _MODEL_PREFIXES:
        if lowered.startswith(model_prefix):
            return service
    return "openai"


def resolve(config: AIConfig | dict | None, default_model: str | None = None) -> ResolvedModel:
    """Determine which model and which user keys to use for a call.

    Args:
        config: Client configuration (model choice and user API keys).
        default_model: Model to use when the client chose none. Defaults to
            the application setting.

    Returns:
        ResolvedModel with the model id, its provider and the user's keys.
    """
    if config is None:
        config = AIConfig()
    elif isinstance(config, dict):
        config = AIConfig.model_validate(config)

    model = config.model
    if not model:
        if default_model is None:
            from resumelm.config.settings import get_settings

            default_model = get_settings().default_model
        model = default_model

    return ResolvedModel(
        model=model,
        service=provider_for_model(model),
        api_keys=list(config.api_keys),
    )
