"""Unit tests for the chat endpoint client."""

import json

import httpx
import pytest
from bpmn_builder.services.chat_client import (
    ChatBackendError,
    ChatClient,
    ChatTransportError,
    MissingStreamBodyError,
    QuotaExhaustedError,
    RateLimitError,
)

from conftest import event_stream, json_error_transport, stream_transport
from models import ChatMessage

HISTORY = [ChatMessage(role="user", content="Model invoice approval")]


async def read_all(client: ChatClient) -> bytes:
    body = b""
    async with client.open_stream(HISTORY) as chunks:
        async for chunk in chunks:
            body += chunk
    return body


class TestChatClient:
    """Test request shape and error classification."""

    @pytest.mark.asyncio
    async def test_streams_body(self):
        """Test a successful response yields the raw event stream."""
        raw = event_stream("Hello")
        client = ChatClient(chat_url="http://test/chat", transport=stream_transport([raw]))

        assert await read_all(client) == raw

    @pytest.mark.asyncio
    async def test_request_body_and_auth(self):
        """Test the history is posted as {messages} with a bearer key."""
        requests: list[httpx.Request] = []
        client = ChatClient(
            chat_url="http://test/chat",
            api_key="secret",
            transport=stream_transport([event_stream("ok")], on_request=requests.append),
        )

        await read_all(client)

        request = requests[0]
        assert request.method == "POST"
        assert request.headers["Authorization"] == "Bearer secret"
        assert json.loads(request.content) == {
            "messages": [{"role": "user", "content": "Model invoice approval"}]
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status_code,error_cls,user_message",
        [
            (429, RateLimitError, "Rate limit exceeded. Please try again later."),
            (402, QuotaExhaustedError, "AI credits exhausted. Please add more credits."),
            (500, ChatBackendError, "Failed to get AI response"),
            (503, ChatBackendError, "Failed to get AI response"),
        ],
    )
    async def test_status_errors(self, status_code, error_cls, user_message):
        """Test each failing status maps to its own error kind."""
        client = ChatClient(
            chat_url="http://test/chat",
            transport=json_error_transport(status_code, "upstream said no"),
        )

        with pytest.raises(error_cls) as exc_info:
            await read_all(client)

        assert exc_info.value.user_message == user_message
        assert exc_info.value.detail == "upstream said no"

    @pytest.mark.asyncio
    async def test_backend_error_keeps_status(self):
        """Test generic failures remember the HTTP status."""
        client = ChatClient(
            chat_url="http://test/chat", transport=json_error_transport(500, "AI gateway error")
        )

        with pytest.raises(ChatBackendError) as exc_info:
            await read_all(client)

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_missing_body(self):
        """Test an empty success response is reported as a missing stream."""
        transport = httpx.MockTransport(lambda request: httpx.Response(204))
        client = ChatClient(chat_url="http://test/chat", transport=transport)

        with pytest.raises(MissingStreamBodyError):
            await read_all(client)

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        """Test network errors become ChatTransportError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = ChatClient(chat_url="http://test/chat", transport=httpx.MockTransport(handler))

        with pytest.raises(ChatTransportError) as exc_info:
            await read_all(client)

        assert "connection refused" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_failure_mid_stream(self):
        """Test a transport error while reading the body is a transport failure."""

        def handler(request: httpx.Request) -> httpx.Response:
            async def body():
                yield event_stream("partial", done=False)
                raise httpx.ReadError("connection reset", request=request)

            return httpx.Response(200, headers={"Content-Type": "text/event-stream"}, content=body())

        client = ChatClient(chat_url="http://test/chat", transport=httpx.MockTransport(handler))

        with pytest.raises(ChatTransportError):
            await read_all(client)

    def test_error_kinds_have_distinct_messages(self):
        """Test every failure kind shows the user something different."""
        messages = {
            cls.user_message
            for cls in (
                ChatTransportError,
                RateLimitError,
                QuotaExhaustedError,
                ChatBackendError,
                MissingStreamBodyError,
            )
        }
        assert len(messages) == 5
