"""Completion provider interface and its OpenAI-compatible implementation."""

from __future__ import annotations

import logging
from contextlib import aclosing
from typing import AsyncIterator, Protocol, runtime_checkable

import httpx
from openai import (
    APIConnectionError,
    APIError,
    APIResponseValidationError,
    APIStatusError,
    APITimeoutError,
    AuthenticationError,
    BadRequestError,
    InternalServerError,
    NotFoundError,
    OpenAIError,
    PermissionDeniedError,
    RateLimitError,
    UnprocessableEntityError,
)

from ..actions.errors import ActionEngineError, ProviderError, ProviderUnavailableError
from .client import AIClient, ClientSettings

LOGGER = logging.getLogger(__name__)


@runtime_checkable
class CompletionProvider(Protocol):
    """Turns a system prompt plus user message into generated text."""

    async def complete(self, system_prompt: str, user_message: str, max_tokens: int) -> str:
        """Return the full reply; raise :class:`ActionEngineError` on failure."""

    def stream(self, system_prompt: str, user_message: str, max_tokens: int) -> AsyncIterator[str]:
        """Yield reply text chunks; raise :class:`ActionEngineError` on failure."""


def map_provider_error(exc: BaseException) -> ActionEngineError:
    """Translate a transport/SDK exception into the engine's error taxonomy.

    Cases are checked most specific first; every openai exception class has an
    explicit branch and anything unrecognised becomes ``request_failed``.
    """

    if isinstance(exc, ActionEngineError):
        return exc
    message = _message_for(exc)
    if isinstance(exc, AuthenticationError):
        return ProviderUnavailableError(
            message=f"The AI provider rejected the configured API key: {message}",
        )
    if isinstance(exc, PermissionDeniedError):
        return ProviderError(message=message, code="unauthorized", status_code=exc.status_code)
    if isinstance(exc, RateLimitError):
        return ProviderError(
            message=message,
            code="rate_limited",
            status_code=exc.status_code,
            suggestion="Rate limited. Please wait a moment and try again.",
        )
    if isinstance(exc, NotFoundError):
        return ProviderError(message=message, code="not_found", status_code=exc.status_code)
    if isinstance(exc, (BadRequestError, UnprocessableEntityError)):
        return ProviderError(message=message, code="bad_request", status_code=exc.status_code)
    if isinstance(exc, InternalServerError):
        return ProviderError(message=message, code="server_error", status_code=exc.status_code)
    if isinstance(exc, APIStatusError):
        return ProviderError(message=message, code=f"http_{exc.status_code}", status_code=exc.status_code)
    if isinstance(exc, APITimeoutError):
        return ProviderError(message=message, code="timeout")
    if isinstance(exc, APIConnectionError):
        return ProviderError(message=message, code="network")
    if isinstance(exc, APIResponseValidationError):
        return ProviderError(message=message, code="parse_error")
    if isinstance(exc, (APIError, OpenAIError)):
        return ProviderError(message=message, code="request_failed")
    if isinstance(exc, httpx.TimeoutException):
        return ProviderError(message=message, code="timeout")
    if isinstance(exc, httpx.HTTPError):
        return ProviderError(message=message, code="network")
    return ProviderError(message=message, code="request_failed")


def _message_for(exc: BaseException) -> str:
    text = getattr(exc, "message", None) or str(exc)
    return str(text).strip() or type(exc).__name__


class OpenAICompletionProvider:
    """:class:`CompletionProvider` backed by :class:`AIClient`.

    Constructed without a client (no API key configured) every call raises
    :class:`ProviderUnavailableError`.
    """

    def __init__(self, client: AIClient | None, *, temperature: float | None = 0.2) -> None:
        self._client = client
        self._temperature = temperature

    @classmethod
    def from_client_settings(
        cls, settings: ClientSettings, *, temperature: float | None = 0.2
    ) -> OpenAICompletionProvider:
        if not (settings.api_key or "").strip():
            LOGGER.info("No API key configured; AI actions are unavailable")
            return cls(None, temperature=temperature)
        return cls(AIClient(settings), temperature=temperature)

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    async def complete(self, system_prompt: str, user_message: str, max_tokens: int) -> str:
        client = self._require_client()
        try:
            response = await client.complete_chat(
                self._messages(system_prompt, user_message),
                temperature=self._temperature,
                max_tokens=max_tokens,
            )
        except Exception as exc:
            raise map_provider_error(exc) from exc
        LOGGER.info("AI response received: %s...", response[:100])
        return response

    async def stream(self, system_prompt: str, user_message: str, max_tokens: int) -> AsyncIterator[str]:
        client = self._require_client()
        events = client.stream_chat(
            self._messages(system_prompt, user_message),
            temperature=self._temperature,
            max_tokens=max_tokens,
        )
        try:
            async with aclosing(events):
                async for event in events:
                    if event.type == "content.delta" and event.content:
                        yield event.content
        except Exception as exc:
            raise map_provider_error(exc) from exc

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    def _require_client(self) -> AIClient:
        if self._client is None:
            raise ProviderUnavailableError()
        return self._client

    @staticmethod
    def _messages(system_prompt: str, user_message: str) -> list[dict[str, str]]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_message})
        return messages


__all__ = ["CompletionProvider", "OpenAICompletionProvider", "map_provider_error"]
