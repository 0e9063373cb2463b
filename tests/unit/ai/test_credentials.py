"""Tests for model and credential resolution."""

import pytest

from resumelm.ai.credentials import (
    AIConfig,
    Credential,
    Entitlement,
    provider_for_model,
    resolve,
)


class TestProviderForModel:
    """Provider inference from model ids."""

    @pytest.mark.parametrize(
        ("model", "provider"),
        [
            ("gpt-4o", "openai"),
            ("o3-mini", "openai"),
            ("claude-sonnet-4-20250514", "anthropic"),
            ("gemini-2.0-flash", "gemini"),
            ("deepseek-chat", "deepseek"),
            ("anthropic/claude-3-opus", "anthropic"),
            ("meta-llama/llama-3-70b", "openrouter"),
            ("some-custom-model", "openai"),
        ],
    )
    def test_inference(self, model, provider):
        """Known prefixes map to their provider."""
        assert provider_for_model(model) == provider


class TestAIConfig:
    """Client configuration parsing."""

    def test_accepts_camel_case_keys(self):
        """The client-side ``apiKeys`` / ``addedAt`` spelling is accepted."""
        config = AIConfig.model_validate(
            {"model": "gpt-4o", "apiKeys": [{"service": "openai", "key": "k", "addedAt": None}]}
        )
        assert config.api_keys[0].service == "openai"

    def test_malformed_key_list_means_no_keys(self):
        """A corrupt stored key list resolves to no keys."""
        assert AIConfig.model_validate({"apiKeys": "garbage"}).api_keys == []

    def test_unreadable_entries_are_skipped(self):
        """Entries without a usable key are dropped; valid ones survive."""
        config = AIConfig.model_validate(
            {
                "apiKeys": [
                    {"service": "openai"},
                    {"service": "openai", "key": None},
                    {"key": "sk-orphan"},
                    "not-a-credential",
                    {"service": "openai", "key": "sk-good"},
                ]
            }
        )
        assert [c.key for c in config.api_keys] == ["sk-good"]

    def test_google_is_gemini(self):
        """The google service name is normalized to gemini."""
        assert Credential(service="Google", key="k").service == "gemini"


class TestResolve:
    """resolve()."""

    def test_empty_model_uses_default(self):
        """No model choice falls back to the default model."""
        resolved = resolve({"model": None}, default_model="claude-sonnet-4-20250514")
        assert resolved.model == "claude-sonnet-4-20250514"
        assert resolved.service == "anthropic"

    def test_none_config_uses_settings_default(self):
        """A missing config resolves to the settings default."""
        assert resolve(None).model == "claude-sonnet-4-20250514"

    def test_key_for_service(self, ai_config):
        """The first non-empty key for the model's provider is used."""
        resolved = resolve(ai_config)
        assert resolved.key_for_service() == "sk-ant-test-key-123456"

    def test_key_for_other_service_ignored(self):
        """Keys for other providers are not used."""
        resolved = resolve({"model": "gpt-4o", "apiKeys": [{"service": "anthropic", "key": "k"}]})
        assert resolved.key_for_service() is None

    def test_malformed_entries_never_fail_resolution(self):
        """Resolution skips unreadable key entries instead of raising."""
        resolved = resolve(
            {
                "model": "gpt-4o",
                "apiKeys": [{"service": "openai"}, {"service": "openai", "key": "sk-good"}],
            }
        )
        assert resolved.key_for_service() == "sk-good"


class TestEntitlement:
    """Pro entitlement."""

    @pytest.mark.parametrize(
        ("plan", "status", "expected"),
        [
            ("pro", "active", True),
            ("pro", "trialing", True),
            ("pro", "canceled", False),
            ("pro", None, False),
            ("free", "active", False),
        ],
    )
    def test_is_pro(self, plan, status, expected):
        """Only active or trialing pro subscriptions are entitled."""
        assert Entitlement(plan=plan, status=status).is_pro is expected
