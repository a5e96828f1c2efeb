"""Tests for vibecal.core.llm — provider routing and reply cleaning."""

from unittest.mock import AsyncMock, patch

import pytest

from vibecal.core import llm
from vibecal.core.llm import (
    LLMUnavailableError,
    clean_llm_response,
    complete,
    extract_json_object,
    reset_provider,
)


@pytest.fixture(autouse=True)
def _fresh_provider():
    reset_provider()
    yield
    reset_provider()


# ---------------------------------------------------------------------------
# Response cleaning
# ---------------------------------------------------------------------------


class TestCleanResponse:
    def test_strips_fences(self):
        assert clean_llm_response('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_plain_text_untouched(self):
        assert clean_llm_response("  hello  ") == "hello"


class TestExtractJsonObject:
    def test_plain(self):
        assert extract_json_object('{"a": 1}') == {"a": 1}

    def test_fenced(self):
        assert extract_json_object('```json\n{"a": [1, 2]}\n```') == {"a": [1, 2]}

    def test_surrounded_by_chatter(self):
        raw = 'Sure! Here it is:\n{"title": "Run"}\nEnjoy.'
        assert extract_json_object(raw) == {"title": "Run"}

    def test_no_object(self):
        with pytest.raises(ValueError):
            extract_json_object("no json here")

    def test_array_rejected(self):
        with pytest.raises(ValueError):
            extract_json_object("[1, 2, 3]")

    def test_malformed(self):
        with pytest.raises(ValueError):
            extract_json_object("{title: oops}")


# ---------------------------------------------------------------------------
# complete()
# ---------------------------------------------------------------------------


class TestComplete:
    @pytest.mark.asyncio
    async def test_routes_to_selected_provider(self):
        provider = AsyncMock(return_value="ok")
        with patch.object(llm, "_select_provider", return_value=(provider, "m", "m", "key")):
            assert await complete("sys", "hi", max_tokens=10) == "ok"
        provider.assert_awaited_once_with("key", "m", "sys", "hi", 10)

    @pytest.mark.asyncio
    async def test_selects_provider_once(self):
        provider = AsyncMock(return_value="ok")
        with patch.object(llm, "_select_provider", return_value=(provider, "m", "m", "key")) as select:
            await complete("sys", "a")
            await complete("sys", "b")
        select.assert_called_once()

    @pytest.mark.asyncio
    async def test_custom_model_retries_with_default(self):
        provider = AsyncMock(side_effect=[RuntimeError("model not found"), "fallback ok"])
        with patch.object(llm, "_select_provider", return_value=(provider, "custom", "default", "key")):
            assert await complete("sys", "hi") == "fallback ok"
        assert provider.await_args_list[1].args[1] == "default"

    @pytest.mark.asyncio
    async def test_default_model_error_propagates(self):
        provider = AsyncMock(side_effect=RuntimeError("quota"))
        with patch.object(llm, "_select_provider", return_value=(provider, "default", "default", "key")):
            with pytest.raises(RuntimeError, match="quota"):
                await complete("sys", "hi")
        provider.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_key_is_unavailable(self):
        with patch("vibecal.config.settings.LLM_API_KEY", ""):
            with pytest.raises(LLMUnavailableError):
                await complete("sys", "hi")

    @pytest.mark.asyncio
    async def test_unknown_provider_is_unavailable(self):
        with patch("vibecal.config.settings.LLM_PROVIDER", "mystery"):
            with pytest.raises(LLMUnavailableError, match="mystery"):
                await complete("sys", "hi")
