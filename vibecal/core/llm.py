"""
VibeCalendar — LLM Provider Abstraction.

Single public function `complete()` that routes to the configured provider.
Provider is selected at first use via the LLM_PROVIDER env var.
Supports: gemini (default), anthropic, openai, cohere.

Also hosts the helpers every caller uses to turn a model reply into JSON.
"""

from __future__ import annotations

import json
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

# Type alias for provider implementations
_ProviderFn = Callable[[str, str, str, str, int], Awaitable[str]]


class LLMUnavailableError(RuntimeError):
    """Raised when no language model can be reached (missing key, bad provider)."""


# ---------------------------------------------------------------------------
# Provider implementations
# ---------------------------------------------------------------------------


async def _complete_gemini(api_key: str, model: str, system: str, user_message: str, max_tokens: int) -> str:
    import google.generativeai as genai

    genai.configure(api_key=api_key)
    gm = genai.GenerativeModel(
        model_name=model,
        system_instruction=system,
    )
    response = await gm.generate_content_async(
        user_message,
        generation_config=genai.types.GenerationConfig(max_output_tokens=max_tokens),
    )
    return response.text


async def _complete_anthropic(api_key: str, model: str, system: str, user_message: str, max_tokens: int) -> str:
    import anthropic

    client = anthropic.AsyncAnthropic(api_key=api_key)
    response = await client.messages.create(
        model=model,
        max_tokens=max_tokens,
        system=system,
        messages=[{"role": "user", "content": user_message}],
    )
    return response.content[0].text


async def _complete_openai(api_key: str, model: str, system: str, user_message: str, max_tokens: int) -> str:
    from openai import AsyncOpenAI

    client = AsyncOpenAI(api_key=api_key)
    response = await client.chat.completions.create(
        model=model,
        max_tokens=max_tokens,
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": user_message},
        ],
    )
    return response.choices[0].message.content


async def _complete_cohere(api_key: str, model: str, system: str, user_message: str, max_tokens: int) -> str:
    import cohere

    client = cohere.AsyncClientV2(api_key=api_key)
    response = await client.chat(
        model=model,
        max_tokens=max_tokens,
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": user_message},
        ],
    )
    return response.message.content[0].text


# ---------------------------------------------------------------------------
# Provider selection (runs once at first call)
# ---------------------------------------------------------------------------

_PROVIDERS: dict[str, tuple[_ProviderFn, str]] = {
    "gemini":    (_complete_gemini,    "gemini-2.0-flash"),
    "anthropic": (_complete_anthropic, "claude-haiku-4-5-20251001"),
    "openai":    (_complete_openai,    "gpt-4o-mini"),
    "cohere":    (_complete_cohere,    "command-a-03-2025"),
}


def _select_provider() -> tuple[_ProviderFn, str, str, str]:
    """Read settings and return (provider_fn, model, default_model, api_key)."""
    from vibecal.config import settings

    provider_name = settings.LLM_PROVIDER.lower()
    if provider_name not in _PROVIDERS:
        raise LLMUnavailableError(
            f"Unknown LLM_PROVIDER={provider_name!r}. "
            f"Supported: {', '.join(_PROVIDERS)}"
        )
    if not settings.LLM_API_KEY:
        raise LLMUnavailableError("LLM_API_KEY is not set")

    fn, default_model = _PROVIDERS[provider_name]
    model = settings.LLM_MODEL or default_model

    logger.info("LLM provider: %s, model: %s", provider_name, model)
    return fn, model, default_model, settings.LLM_API_KEY


# Lazy singleton, populated on first call to complete()
_provider_fn: _ProviderFn | None = None
_model: str = ""
_default_model: str = ""
_api_key: str = ""


def reset_provider() -> None:
    """Forget the cached provider so the next call re-reads settings."""
    global _provider_fn, _model, _default_model, _api_key
    _provider_fn = None
    _model = _default_model = _api_key = ""


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def complete(system: str, user_message: str, max_tokens: int = 256) -> str:
    """Send a prompt to the configured LLM provider and return the response text.

    A failing custom model is retried once with the provider's default
    model. Raises on API errors — callers should handle exceptions.
    """
    global _provider_fn, _model, _default_model, _api_key

    if _provider_fn is None:
        _provider_fn, _model, _default_model, _api_key = _select_provider()

    try:
        return await _provider_fn(_api_key, _model, system, user_message, max_tokens)
    except Exception as exc:
        if _model == _default_model:
            raise
        logger.warning(
            "LLM model %s failed (%s), retrying with default model %s",
            _model, exc, _default_model,
        )
        return await _provider_fn(_api_key, _default_model, system, user_message, max_tokens)


# ---------------------------------------------------------------------------
# Response cleaning
# ---------------------------------------------------------------------------


def clean_llm_response(raw_text: str) -> str:
    """Remove markdown code fences from an LLM's raw response."""
    cleaned_text = raw_text.strip()
    cleaned_text = cleaned_text.replace("```json", "").replace("```", "")
    return cleaned_text.strip()


def extract_json_object(raw_text: str) -> dict:
    """Decode the JSON object in an LLM reply, tolerating fences and chatter.

    Raises ValueError if no JSON object can be recovered.
    """
    cleaned = clean_llm_response(raw_text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        start = cleaned.find("{")
        end = cleaned.rfind("}")
        if start == -1 or end <= start:
            raise ValueError(f"No JSON object in LLM response: {cleaned[:80]!r}")
        try:
            data = json.loads(cleaned[start:end + 1])
        except json.JSONDecodeError as exc:
            raise ValueError(f"Malformed JSON in LLM response: {exc}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data
