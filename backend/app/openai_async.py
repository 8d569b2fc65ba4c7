from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

import httpx

from .settings import Settings, settings

logger = logging.getLogger(__name__)

ASSISTANT_SYSTEM_PROMPT = (
    "You are a helpful assistant for a corporate team building and offsite platform. "
    "You help users find the right team building activities, venues and destinations "
    "from the catalog you are given.\n\n"
    "Guidelines:\n"
    "- Be friendly, professional, and enthusiastic about team building\n"
    "- Recommend specific catalog items by name when they fit\n"
    "- Mention relevant details like group sizes, locations, or activity types\n"
    "- Never invent activities, venues or destinations that are not in the context\n"
    "- If nothing fits, suggest contacting the team for a tailored plan\n"
    "- Keep a positive, solution-oriented tone"
)

_NEW_STYLE_MODEL_PREFIXES = ("gpt-4.1", "gpt-5", "o1", "o3", "o4")


class GenerationUnavailable(RuntimeError):
    """Raised when the language model cannot produce an answer."""


def _token_param(model: str | None) -> str:
    name = (model or "").lower()
    for prefix in _NEW_STYLE_MODEL_PREFIXES:
        if name.startswith(prefix):
            return "max_completion_tokens"
    return "max_tokens"


class OpenAIGenerator:
    """Chat-completions client implementing ``generate(instruction, context)``.

    Consecutive failures open a cooldown window during which calls fail fast
    instead of waiting on an upstream that is known to be down.
    """

    def __init__(
        self,
        config: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or settings
        self._transport = transport
        self._clock = clock
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()
        self._failure_count = 0
        self._disabled_until = 0.0

    @property
    def configured(self) -> bool:
        return bool((self._config.OPENAI_API_KEY or "").strip())

    @property
    def model(self) -> str:
        return self._config.SEARCH_GPT_MODEL

    def circuit_open(self) -> bool:
        return (
            self._failure_count >= self._config.SEARCH_LLM_MAX_FAILURES
            and self._disabled_until > self._clock()
        )

    def _headers(self) -> dict[str, str]:
        if not self.configured:
            raise GenerationUnavailable("OPENAI_API_KEY not configured")
        return {
            "Authorization": f"Bearer {self._config.OPENAI_API_KEY}",
            "Content-Type": "application/json",
        }

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            async with self._client_lock:
                if self._client is None:
                    timeout = httpx.Timeout(
                        self._config.OPENAI_TIMEOUT_SECONDS,
                        connect=self._config.OPENAI_CONNECT_TIMEOUT_SECONDS,
                    )
                    base_url = (
                        self._config.OPENAI_API_BASE.rstrip("/") or "https://api.openai.com/v1"
                    )
                    self._client = httpx.AsyncClient(
                        base_url=base_url, timeout=timeout, transport=self._transport
                    )
        return self._client

    async def post_json(
        self, path: str, payload: dict[str, Any], *, timeout: float | None = None
    ) -> dict[str, Any]:
        headers = self._headers()
        client = await self._get_client()
        try:
            response = await client.post(path, json=payload, headers=headers, timeout=timeout)
        except httpx.HTTPError as exc:
            raise GenerationUnavailable(f"Request failed: {exc}") from exc
        if response.status_code >= 400:
            raise GenerationUnavailable(
                f"OpenAI error {response.status_code}: {response.text[:200]}"
            )
        try:
            return response.json()
        except ValueError as exc:
            raise GenerationUnavailable("Invalid JSON from OpenAI") from exc

    async def generate(self, instruction: str, context: str) -> str:
        if self.circuit_open():
            raise GenerationUnavailable("Generation disabled after repeated failures")
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": ASSISTANT_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": f"Question: {instruction}\n\nRelevant Context: {context}",
                },
            ],
            "temperature": self._config.SEARCH_ANSWER_TEMPERATURE,
        }
        payload[_token_param(self.model)] = self._config.SEARCH_ANSWER_MAX_TOKENS
        try:
            response = await self.post_json(
                "/chat/completions", payload, timeout=self._config.OPENAI_TIMEOUT_SECONDS
            )
            try:
                content = response["choices"][0]["message"]["content"]
            except (KeyError, IndexError, TypeError) as exc:
                raise GenerationUnavailable("Completion payload missing content") from exc
            if not isinstance(content, str) or not content.strip():
                raise GenerationUnavailable("Completion content empty")
        except GenerationUnavailable as exc:
            self._register_failure(exc)
            raise
        self._register_success()
        return content.strip()

    def _register_failure(self, exc: Exception) -> None:
        self._failure_count += 1
        if self._failure_count >= self._config.SEARCH_LLM_MAX_FAILURES:
            self._disabled_until = self._clock() + self._config.SEARCH_LLM_COOLDOWN_SECONDS
        logger.warning(
            "LLM generation failure (%s/%s): %s",
            self._failure_count,
            self._config.SEARCH_LLM_MAX_FAILURES,
            exc,
        )

    def _register_success(self) -> None:
        self._failure_count = 0
        self._disabled_until = 0.0

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
