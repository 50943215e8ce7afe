"""OpenAI-compatible chat completions provider (Groq, OpenAI, vLLM, ...)."""

import httpx

from src.config.settings import Settings
from src.core.errors import CompletionFailed
from src.providers.base import SYSTEM_PROMPT, CompletionProvider, build_user_prompt

GENERIC_ERROR = "Server error"


class OpenAICompatibleProvider(CompletionProvider):
    """Posts a system + user message pair to ``<base_url>/chat/completions``."""

    def __init__(self, settings: Settings):
        self._base_url = settings.completion_base_url.rstrip("/")
        self._api_key = settings.completion_api_key
        self._model = settings.completion_model
        self._max_tokens = settings.completion_max_tokens
        self._temperature = settings.completion_temperature
        self._timeout = settings.completion_timeout_seconds
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout, connect=10.0))
        return self._client

    def _build_headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

    def _build_body(self, context: str, question: str) -> dict:
        return {
            "model": self._model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_user_prompt(context, question)},
            ],
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
        }

    async def answer(self, context: str, question: str) -> str:
        url = f"{self._base_url}/chat/completions"
        client = await self._get_client()
        try:
            response = await client.post(
                url, json=self._build_body(context, question), headers=self._build_headers()
            )
        except httpx.ConnectError as e:
            raise CompletionFailed("Cannot reach completion provider") from e
        except httpx.TimeoutException as e:
            raise CompletionFailed("Completion provider timed out") from e
        except httpx.HTTPError as e:
            raise CompletionFailed(str(e) or GENERIC_ERROR) from e

        if response.status_code >= 400:
            raise CompletionFailed(
                _provider_error_message(response),
                data={"upstream_status": response.status_code},
            )

        try:
            return response.json()["choices"][0]["message"]["content"] or ""
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise CompletionFailed("Malformed completion response") from e

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None


def _provider_error_message(response: httpx.Response) -> str:
    """Pull ``error.message`` out of an error body, falling back to a generic message."""
    try:
        body = response.json()
    except ValueError:
        return GENERIC_ERROR
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str) and error:
        return error
    return GENERIC_ERROR
