"""Client for the chat endpoint that streams BPMN assistant replies."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx

from models import ChatMessage, ChatRequest

from bpmn_builder.config import settings

logger = logging.getLogger(__name__)


class ChatError(Exception):
    """A failed chat request, carrying the text shown to the user."""

    user_message = "Failed to send message"

    def __init__(self, detail: str | None = None):
        super().__init__(detail or self.user_message)
        self.detail = detail


class ChatTransportError(ChatError):
    """The request never completed at the network level."""

    user_message = "Failed to reach the AI service. Please check your connection."


class RateLimitError(ChatError):
    """The backend answered 429."""

    user_message = "Rate limit exceeded. Please try again later."


class QuotaExhaustedError(ChatError):
    """The backend answered 402."""

    user_message = "AI credits exhausted. Please add more credits."


class ChatBackendError(ChatError):
    """The backend answered with any other non-success status."""

    user_message = "Failed to get AI response"

    def __init__(self, status_code: int, detail: str | None = None):
        super().__init__(detail or f"HTTP {status_code}")
        self.status_code = status_code


class MissingStreamBodyError(ChatError):
    """The backend accepted the request but sent no event stream."""

    user_message = "No response body"


_STATUS_ERRORS: dict[int, type[ChatError]] = {
    429: RateLimitError,
    402: QuotaExhaustedError,
}


class ChatClient:
    """HTTP client for the streaming chat endpoint."""

    def __init__(
        self,
        chat_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            chat_url: Endpoint accepting `{messages: [...]}`. Defaults to settings.
            api_key: Bearer token sent with each request
            timeout: Request timeout in seconds; None waits indefinitely
            transport: Custom httpx transport (used for mock backends)

        """
        self.chat_url = chat_url or settings.chat_url
        self.api_key = api_key if api_key is not None else settings.chat_api_key
        self.timeout = timeout if timeout is not None else settings.chat_timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    @asynccontextmanager
    async def open_stream(
        self, messages: list[ChatMessage]
    ) -> AsyncIterator[AsyncIterator[bytes]]:
        """Send the conversation and yield the raw response body.

        Errors are raised before anything is yielded, except for transport
        failures while the body is being read, which surface from the
        iteration as ChatTransportError.

        Args:
            messages: Role-tagged history, newest last

        Yields:
            An async iterator over raw body chunks

        Raises:
            ChatError: One of its subclasses, per failure kind

        """
        body = ChatRequest(messages=messages).model_dump()

        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout), transport=self._transport
        ) as client:
            try:
                async with client.stream(
                    "POST",
                    self.chat_url,
                    json=body,
                    headers=self._headers(),
                ) as response:
                    await self._raise_for_status(response)
                    logger.info(f"Chat stream opened ({len(messages)} messages)")
                    yield response.aiter_bytes()
            except httpx.RequestError as e:
                logger.error(f"Chat request error: {e}")
                raise ChatTransportError(f"Request failed: {e}") from e

    async def _raise_for_status(self, response: httpx.Response) -> None:
        if response.is_success:
            if response.status_code == 204 or response.headers.get("content-length") == "0":
                raise MissingStreamBodyError()
            return

        await response.aread()
        logger.error(f"Chat HTTP error: {response.status_code} {response.text[:500]}")
        error_cls = _STATUS_ERRORS.get(response.status_code)
        if error_cls is not None:
            raise error_cls(_error_detail(response))
        raise ChatBackendError(response.status_code, _error_detail(response))


def _error_detail(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return response.text or None
    if isinstance(payload, dict) and isinstance(payload.get("error"), str):
        return payload["error"]
    return None
