"""Chat-completions adapter for OpenRouter, OpenAI and local runtimes.

Each backend is a ``ProviderPreset``: where it lives, which model it plays
by default, and which env vars may hold its key. LLM_MODEL and LLM_BASE_URL
override the preset.

The SDK's own retry loop is switched off (``max_retries=0``). A failed call
returns None and the decision oracle spends one of its attempts on it.
"""

import logging
import os
from typing import NamedTuple

from openai import AsyncOpenAI

from ledgerquest.services.llm.interface import LLMProvider, Messages

logger = logging.getLogger("llm.openai_compat")

JSON_ONLY_SUFFIX = "\n\nReply with ONE JSON object and nothing else. No markdown fences."


class ProviderPreset(NamedTuple):
    base_url: str
    model: str
    key_vars: tuple[str, ...]  # empty: no key needed


_PRESETS: dict[str, ProviderPreset] = {
    "openrouter": ProviderPreset(
        "https://openrouter.ai/api/v1", "anthropic/claude-3.5-sonnet",
        ("OPENROUTER_API_KEY", "LLM_API_KEY"),
    ),
    "openai": ProviderPreset("https://api.openai.com/v1", "gpt-4o-mini", ("LLM_API_KEY",)),
    "local": ProviderPreset("http://localhost:11434/v1", "llama3", ()),
    "ollama": ProviderPreset("http://localhost:11434/v1", "llama3", ()),
}


def _read_key(preset: ProviderPreset) -> str:
    for var in preset.key_vars:
        value = os.environ.get(var, "")
        if value:
            return value
    return ""


def with_json_instruction(messages: Messages) -> Messages:
    """Copy of ``messages`` with the JSON-only instruction appended to the system turn."""
    patched = [dict(m) for m in messages]
    if patched and patched[0].get("role") == "system":
        patched[0]["content"] = patched[0]["content"] + JSON_ONLY_SUFFIX
    else:
        patched.insert(0, {"role": "system", "content": JSON_ONLY_SUFFIX.strip()})
    return patched


class OpenAICompatibleProvider(LLMProvider):
    """Any endpoint that speaks the OpenAI chat completions format."""

    def __init__(self, provider_name: str = "openrouter", *, timeout: float = 30.0) -> None:
        preset = _PRESETS.get(provider_name, _PRESETS["openrouter"])
        api_key = _read_key(preset)
        if preset.key_vars and not api_key:
            raise ValueError(
                f"{' or '.join(preset.key_vars)} must be set for LLM provider '{provider_name}'."
            )

        self._provider_name = provider_name
        self._is_local = not preset.key_vars
        self._default_model = os.environ.get("LLM_MODEL", preset.model)
        base_url = os.environ.get("LLM_BASE_URL", preset.base_url)
        self._client = AsyncOpenAI(
            api_key=api_key or "not-needed",
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )
        logger.info(
            "LLM provider ready: %s (base=%s, model=%s, timeout=%.0fs)",
            provider_name, base_url, self._default_model, timeout,
        )

    async def _complete(self, request: dict):
        try:
            return await self._client.chat.completions.create(**request)
        except Exception as exc:
            # Local runtimes often reject response_format; ask for JSON in the prompt instead.
            if not (self._is_local and "response_format" in request):
                raise
            logger.warning("%s rejected response_format (%s); retrying with prompt instruction",
                           self._provider_name, exc)
            request = {k: v for k, v in request.items() if k != "response_format"}
            request["messages"] = with_json_instruction(request["messages"])
            return await self._client.chat.completions.create(**request)

    async def generate_tracked(
        self,
        messages: Messages,
        *,
        model: str | None = None,
        max_tokens: int = 150,
        temperature: float = 0.7,
        response_format: dict | None = None,
    ) -> tuple[str | None, int, int]:
        request: dict = {
            "model": model or self._default_model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if response_format:
            request["response_format"] = response_format

        try:
            response = await self._complete(request)
        except Exception as exc:
            logger.error("%s completion failed: %s: %s", self._provider_name, type(exc).__name__, exc)
            return None, 0, 0

        text = response.choices[0].message.content if response.choices else None
        usage = getattr(response, "usage", None)
        return (
            text.strip() if text else None,
            getattr(usage, "prompt_tokens", 0) or 0,
            getattr(usage, "completion_tokens", 0) or 0,
        )

    async def generate(
        self,
        messages: Messages,
        *,
        model: str | None = None,
        max_tokens: int = 150,
        temperature: float = 0.7,
        response_format: dict | None = None,
    ) -> str | None:
        text, _, _ = await self.generate_tracked(
            messages, model=model, max_tokens=max_tokens,
            temperature=temperature, response_format=response_format,
        )
        return text
