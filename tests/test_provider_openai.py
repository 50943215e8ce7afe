"""Tests for src/providers/openai.py — OpenAI-compatible completion provider."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from src.config.settings import get_settings
from src.core.errors import CompletionFailed
from src.providers.base import SYSTEM_PROMPT, build_user_prompt
from src.providers.openai import OpenAICompatibleProvider


@pytest.fixture
def provider(override_settings):
    override_settings(
        COMPLETION_BASE_URL="https://api.groq.com/openai/v1/",
        COMPLETION_API_KEY="gsk-test",
        COMPLETION_MODEL="llama-3.3-70b-versatile",
    )
    return OpenAICompatibleProvider(get_settings())


def _mock_client(provider, response=None, side_effect=None) -> AsyncMock:
    mock_client = AsyncMock()
    mock_client.is_closed = False
    if side_effect is not None:
        mock_client.post.side_effect = side_effect
    else:
        mock_client.post.return_value = response
    provider._client = mock_client
    return mock_client


def _response(status_code: int, body) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body
    return response


class TestAnswer:

    async def test_success(self, provider):
        mock_client = _mock_client(
            provider, _response(200, {"choices": [{"message": {"content": " 42 "}}]})
        )

        answer = await provider.answer("doc text", "What is X?")
        assert answer == " 42 "

        call = mock_client.post.call_args
        assert call.args[0] == "https://api.groq.com/openai/v1/chat/completions"
        assert call.kwargs["headers"]["Authorization"] == "Bearer gsk-test"

    async def test_request_body(self, provider):
        mock_client = _mock_client(
            provider, _response(200, {"choices": [{"message": {"content": "ok"}}]})
        )

        await provider.answer("doc text", "What is X?")
        body = mock_client.post.call_args.kwargs["json"]
        assert body["model"] == "llama-3.3-70b-versatile"
        assert body["max_tokens"] == 1024
        assert body["temperature"] == 0.7
        assert body["messages"] == [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": "PDF content:\ndoc text\n\nQuestion: What is X?"},
        ]

    async def test_provider_error_message_forwarded(self, provider):
        _mock_client(provider, _response(429, {"error": {"message": "Rate limit reached"}}))

        with pytest.raises(CompletionFailed) as exc_info:
            await provider.answer("doc", "q")
        assert exc_info.value.message == "Rate limit reached"
        assert exc_info.value.data == {"upstream_status": 429}

    async def test_generic_message_without_error_body(self, provider):
        response = _response(500, None)
        response.json.side_effect = ValueError("no json")
        _mock_client(provider, response)

        with pytest.raises(CompletionFailed) as exc_info:
            await provider.answer("doc", "q")
        assert exc_info.value.message == "Server error"

    async def test_malformed_success_body(self, provider):
        _mock_client(provider, _response(200, {"choices": []}))
        with pytest.raises(CompletionFailed):
            await provider.answer("doc", "q")

    async def test_connect_error(self, provider):
        _mock_client(provider, side_effect=httpx.ConnectError("Connection refused"))
        with pytest.raises(CompletionFailed) as exc_info:
            await provider.answer("doc", "q")
        assert exc_info.value.message == "Cannot reach completion provider"

    async def test_timeout(self, provider):
        _mock_client(provider, side_effect=httpx.ReadTimeout("Timed out"))
        with pytest.raises(CompletionFailed) as exc_info:
            await provider.answer("doc", "q")
        assert "timed out" in exc_info.value.message


class TestLifecycle:

    async def test_close(self, provider):
        mock_client = _mock_client(provider)
        await provider.close()
        mock_client.aclose.assert_called_once()
        assert provider._client is None

    async def test_close_when_no_client(self, provider):
        """Closing without a client should not raise."""
        await provider.close()

    async def test_client_created_lazily(self, provider):
        client = await provider._get_client()
        assert isinstance(client, httpx.AsyncClient)
        assert await provider._get_client() is client
        await provider.close()


def test_build_user_prompt():
    assert build_user_prompt("ctx", "q?") == "PDF content:\nctx\n\nQuestion: q?"
