"""Completion client for all AI operations.

Provides a unified interface over LiteLLM with structured output support,
plain text and streamed text generation. Every call resolves its model and
key from the caller's AIConfig; failures are raised as the typed errors in
``resumelm.ai.errors``. No retries happen here: retrying is a user decision.
"""

from __future__ import annotations

import logging
import os
import warnings
from collections.abc import AsyncIterator
from typing import Any, TypeVar

from litellm import Timeout, acompletion
from pydantic import BaseModel, ValidationError

from resumelm.ai.credentials import AIConfig, Entitlement, ResolvedModel, resolve
from resumelm.ai.errors import MissingCredentialError, UpstreamError, to_resumelm_error
from resumelm.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

warnings.filterwarnings(
    "ignore",
    message=r"(?s)^Pydantic serializer warnings:.*",
    category=UserWarning,
)

# LiteLLM loads `.env` into the process environment in DEV mode.
os.environ.setdefault("LITELLM_MODE", "PRODUCTION")

# LiteLLM routing prefixes per provider; OpenAI models need none
_LITELLM_PREFIX = {
    "anthropic": "anthropic",
    "gemini": "gemini",
    "deepseek": "deepseek",
    "openrouter": "openrouter",
}


class CompletionClient:
    """LLM client used by extraction, tailoring and writing helpers.

    Args:
        settings: Application settings. Uses global settings if not provided.
        entitlement: The calling user's subscription state. Server-side keys
            are only used for entitled users who supplied no key of their own.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        entitlement: Entitlement | None = None,
    ):
        self.settings = settings or get_settings()
        self.entitlement = entitlement or Entitlement()

    def _get_model_name(self, resolved: ResolvedModel) -> str:
        """Get the model name formatted for LiteLLM."""
        prefix = _LITELLM_PREFIX.get(resolved.service)
        if prefix is None or resolved.model.lower().startswith(f"{prefix}/"):
            return resolved.model
        return f"{prefix}/{resolved.model}"

    def _select_api_key(self, resolved: ResolvedModel) -> str:
        """Pick the user's key, falling back to the server key for Pro users.

        Raises:
            MissingCredentialError: If neither is available.
        """
        user_key = resolved.key_for_service()
        if user_key:
            return user_key

        if self.entitlement.is_pro:
            server_key = self.settings.server_key_for(resolved.service)
            if server_key:
                logger.debug(f"Using server key for {resolved.service}")
                return server_key

        raise MissingCredentialError(
            f"API key required for {resolved.service} ({resolved.model}). "
            "Please add your API key in settings or upgrade to Pro."
        )

    def _request_kwargs(self, config: AIConfig | dict | None) -> dict[str, Any]:
        resolved = resolve(config, default_model=self.settings.default_model)
        return {
            "model": self._get_model_name(resolved),
            "api_key": self._select_api_key(resolved),
            "timeout": self.settings.llm_timeout,
        }

    @staticmethod
    def _build_messages(prompt: str, system_prompt: str | None) -> list[dict]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return messages

    async def generate_structured(
        self,
        prompt: str,
        output_model: type[T],
        config: AIConfig | dict | None = None,
        system_prompt: str | None = None,
    ) -> T:
        """Generate structured output matching a Pydantic model.

        Args:
            prompt: The user prompt to send to the LLM.
            output_model: Pydantic model class defining the expected output structure.
            config: Client model/key configuration.
            system_prompt: Optional system prompt for context.

        Returns:
            Parsed Pydantic model instance.

        Raises:
            MissingCredentialError: No usable key, or the provider rejected it.
            RateLimitedError: The provider signalled a quota/backoff.
            UpstreamError: Any other failure, including unparseable output.
        """
        kwargs = self._request_kwargs(config)
        kwargs["messages"] = self._build_messages(prompt, system_prompt)
        kwargs["response_format"] = output_model

        response = await self._complete(kwargs)
        return self._parse_response(response, output_model)

    async def generate_text(
        self,
        prompt: str,
        config: AIConfig | dict | None = None,
        system_prompt: str | None = None,
    ) -> str:
        """Generate a plain text response (single request/response)."""
        kwargs = self._request_kwargs(config)
        kwargs["messages"] = self._build_messages(prompt, system_prompt)

        response = await self._complete(kwargs)
        content = getattr(response.choices[0].message, "content", None)
        if not content or not content.strip():
            raise UpstreamError("AI returned an empty response.")
        return content.strip()

    async def stream_text(
        self,
        prompt: str,
        config: AIConfig | dict | None = None,
        system_prompt: str | None = None,
    ) -> AsyncIterator[str]:
        """Stream a narrative response as text fragments.

        Fragments are yielded as soon as they arrive. Closing the iterator (or
        cancelling the consuming task) stops the stream; whatever the caller
        already applied stays applied.
        """
        kwargs = self._request_kwargs(config)
        kwargs["messages"] = self._build_messages(prompt, system_prompt)
        kwargs["stream"] = True

        stream = await self._complete(kwargs)
        try:
            async for chunk in stream:
                delta = getattr(chunk.choices[0], "delta", None)
                fragment = getattr(delta, "content", None)
                if fragment:
                    yield fragment
        except Timeout as e:
            raise UpstreamError("AI stream timed out.", e) from e
        except Exception as e:
            raise to_resumelm_error(e) from e

    async def _complete(self, kwargs: dict[str, Any]) -> Any:
        try:
            return await acompletion(**kwargs)
        except Timeout as e:
            raise UpstreamError(
                "AI request timed out. The model may be slow "
                f"(timeout={self.settings.llm_timeout}s); please try again.",
                e,
            ) from e
        except Exception as e:
            error = to_resumelm_error(e)
            logger.warning(f"Completion failed ({error.kind.value}): {e}")
            raise error from e

    def _parse_response(self, response: Any, output_model: type[T]) -> T:
        """Parse and validate an LLM response.

        Raises:
            UpstreamError: If parsing or validation fails.
        """
        message = response.choices[0].message
        content = getattr(message, "content", None)

        # Some providers return structured output as tool call arguments with no content.
        if content is None:
            tool_calls = getattr(message, "tool_calls", None) or []
            if tool_calls:
                function = getattr(tool_calls[0], "function", None)
                arguments = getattr(function, "arguments", None)
                if isinstance(arguments, str) and arguments.strip():
                    content = arguments

        if content is None:
            raise UpstreamError("AI returned no content to parse.")

        content = _extract_json(content)

        try:
            return output_model.model_validate_json(content)
        except ValidationError as e:
            raise UpstreamError(
                f"AI response did not match the {output_model.__name__} schema: {e}", e
            ) from e
        except Exception as e:
            raise UpstreamError(f"Failed to parse AI response as JSON: {e}", e) from e


def _extract_json(content: str) -> str:
    """Extract a JSON document from a response, tolerating fences and preambles."""
    content = content.strip()

    if content.startswith("```"):
        first_newline = content.find("\n")
        if first_newline != -1:
            content = content[first_newline + 1 :]
        if content.endswith("```"):
            content = content[:-3]
        content = content.strip()

    if content.startswith("{") or content.startswith("["):
        return content

    for open_char, close_char in (("{", "}"), ("[", "]")):
        extracted = _extract_balanced(content, open_char, close_char)
        if extracted is not None:
            return extracted

    return content


def _extract_balanced(text: str, open_char: str, close_char: str) -> str | None:
    start = text.find(open_char)
    if start == -1:
        return None

    depth = 0
    for idx in range(start, len(text)):
        ch = text[idx]
        if ch == open_char:
            depth += 1
        elif ch == close_char:
            depth -= 1
            if depth == 0:
                return text[start : idx + 1].strip()
    return None
