"""Tests for LLMClient — mock the OpenAI SDK underneath."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest
from openai import RateLimitError

from resite.shared.llm_client import DryRunClient, LLMClient, _parse_retry_after


def _make_text_response(text: str, usage=None):
    """Create a mock OpenAI chat response with text only."""
    message = SimpleNamespace(content=text, tool_calls=None)
    choice = SimpleNamespace(message=message)
    return SimpleNamespace(choices=[choice], usage=usage)


def _rate_limit_error(message: str = "Rate limit reached", headers: dict | None = None) -> RateLimitError:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(429, headers=headers or {}, request=request)
    return RateLimitError(message, response=response, body=None)


class TestSimpleCompletion:
    @pytest.mark.asyncio
    async def test_returns_text(self, mock_llm_client: LLMClient) -> None:
        mock_llm_client._client.chat.completions.create = AsyncMock(
            return_value=_make_text_response("Hello!")
        )

        result = await mock_llm_client.simple_completion(system="sys", user_message="hi")
        assert result == "Hello!"

    @pytest.mark.asyncio
    async def test_json_mode_sets_response_format(self, mock_llm_client: LLMClient) -> None:
        create = AsyncMock(return_value=_make_text_response("{}"))
        mock_llm_client._client.chat.completions.create = create

        await mock_llm_client.simple_completion(system="sys", user_message="hi")
        assert create.call_args.kwargs["response_format"] == {"type": "json_object"}
        assert create.call_args.kwargs["model"] == "test-model"

    @pytest.mark.asyncio
    async def test_text_mode_omits_response_format(self, mock_llm_client: LLMClient) -> None:
        create = AsyncMock(return_value=_make_text_response("<html></html>"))
        mock_llm_client._client.chat.completions.create = create

        await mock_llm_client.simple_completion(system="sys", user_message="hi", json_mode=False)
        assert "response_format" not in create.call_args.kwargs

    @pytest.mark.asyncio
    async def test_reports_token_usage(self, mock_llm_client: LLMClient) -> None:
        usage = SimpleNamespace(prompt_tokens=120, completion_tokens=30)
        mock_llm_client._client.chat.completions.create = AsyncMock(
            return_value=_make_text_response("ok", usage=usage)
        )
        seen: list[tuple[int, int]] = []

        await mock_llm_client.simple_completion(
            system="sys", user_message="hi", on_tokens=lambda i, o: seen.append((i, o)),
        )
        assert seen == [(120, 30)]

    @pytest.mark.asyncio
    async def test_none_content_becomes_empty_string(self, mock_llm_client: LLMClient) -> None:
        mock_llm_client._client.chat.completions.create = AsyncMock(
            return_value=_make_text_response(None)
        )
        assert await mock_llm_client.simple_completion(system="s", user_message="u") == ""


class TestVisionCompletion:
    @pytest.mark.asyncio
    async def test_sends_content_parts(self, mock_llm_client: LLMClient) -> None:
        create = AsyncMock(return_value=_make_text_response('{"a": 1}'))
        mock_llm_client._client.chat.completions.create = create
        content = [{"type": "text", "text": "look"}]

        result = await mock_llm_client.vision_completion(system="sys", content=content)
        assert result == '{"a": 1}'
        assert create.call_args.kwargs["messages"][1] == {"role": "user", "content": content}


class TestGenerateImage:
    @pytest.mark.asyncio
    async def test_b64_payload_becomes_data_uri(self, mock_llm_client: LLMClient) -> None:
        mock_llm_client._client.images.generate = AsyncMock(
            return_value=SimpleNamespace(data=[SimpleNamespace(b64_json="QUJD", url=None)])
        )
        url = await mock_llm_client.generate_image(prompt="a cake")
        assert url == "data:image/png;base64,QUJD"

    @pytest.mark.asyncio
    async def test_remote_url_passed_through(self, mock_llm_client: LLMClient) -> None:
        generate = AsyncMock(
            return_value=SimpleNamespace(data=[SimpleNamespace(b64_json=None, url="https://img/1.png")])
        )
        mock_llm_client._client.images.generate = generate

        url = await mock_llm_client.generate_image(prompt="a cake", size="1536x1024")
        assert url == "https://img/1.png"
        assert generate.call_args.kwargs["size"] == "1536x1024"
        assert generate.call_args.kwargs["model"] == "test-image-model"

    @pytest.mark.asyncio
    async def test_empty_response_raises(self, mock_llm_client: LLMClient) -> None:
        mock_llm_client._client.images.generate = AsyncMock(return_value=SimpleNamespace(data=[]))
        with pytest.raises(ValueError, match="no data"):
            await mock_llm_client.generate_image(prompt="a cake")


class TestRetry:
    @pytest.mark.asyncio
    async def test_retries_rate_limit_then_succeeds(
        self, mock_llm_client: LLMClient, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        sleep = AsyncMock()
        monkeypatch.setattr("resite.shared.llm_client.asyncio", SimpleNamespace(sleep=sleep))
        mock_llm_client._client.chat.completions.create = AsyncMock(
            side_effect=[_rate_limit_error(), _make_text_response("ok")]
        )

        result = await mock_llm_client.simple_completion(system="s", user_message="u")
        assert result == "ok"
        assert sleep.await_count == 1

    @pytest.mark.asyncio
    async def test_context_length_not_retried(
        self, mock_llm_client: LLMClient, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        sleep = AsyncMock()
        monkeypatch.setattr("resite.shared.llm_client.asyncio", SimpleNamespace(sleep=sleep))
        mock_llm_client._client.chat.completions.create = AsyncMock(
            side_effect=_rate_limit_error("Request too large for gpt-4o")
        )

        with pytest.raises(RateLimitError):
            await mock_llm_client.simple_completion(system="s", user_message="u")
        sleep.assert_not_awaited()


class TestParseRetryAfter:
    def test_header(self) -> None:
        assert _parse_retry_after(_rate_limit_error(headers={"retry-after": "7"})) == 7.0

    def test_message_milliseconds(self) -> None:
        exc = _rate_limit_error("Rate limit reached. Please try again in 250ms.")
        assert _parse_retry_after(exc) == pytest.approx(0.25)

    def test_missing(self) -> None:
        assert _parse_retry_after(_rate_limit_error("slow down")) is None


class TestDryRunClient:
    @pytest.mark.asyncio
    async def test_analysis_prompt_gets_json(self) -> None:
        client = DryRunClient()
        raw = await client.simple_completion(system="You are the Site Analysis Agent.", user_message="x")
        assert '"business_name"' in raw

    @pytest.mark.asyncio
    async def test_other_prompts_get_html(self) -> None:
        client = DryRunClient()
        raw = await client.simple_completion(system="You are the Site Builder Agent.", user_message="x")
        assert raw.startswith("<!DOCTYPE html>")

    @pytest.mark.asyncio
    async def test_image_is_sized_placeholder(self) -> None:
        url = await DryRunClient().generate_image(prompt="p", size="1536x1024")
        assert url.startswith("https://picsum.photos/1536/1024")
