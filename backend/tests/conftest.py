"""Shared fixtures and stream builders for the test suite."""

import json
from typing import AsyncIterator, Callable

import httpx
import pytest
from bpmn_builder.db.storage import MemoryStorage
from bpmn_builder.notifications import Notifier
from bpmn_builder.store import WorkflowStore

XML_DOC = '<?xml version="1.0"?><x/>'


def data_line(content: str) -> str:
    """One SSE event carrying a completion chunk with the given delta text."""
    chunk = {"choices": [{"index": 0, "delta": {"content": content}}]}
    return f"data: {json.dumps(chunk, ensure_ascii=False)}\n\n"


def event_stream(*contents: str, done: bool = True) -> bytes:
    """Encode a full event stream for a reply made of the given deltas."""
    body = "".join(data_line(c) for c in contents)
    if done:
        body += "data: [DONE]\n\n"
    return body.encode("utf-8")


def stream_transport(
    chunks: list[bytes],
    status_code: int = 200,
    on_request: Callable[[httpx.Request], None] | None = None,
) -> httpx.MockTransport:
    """A transport answering every request with the given body chunks."""

    def handler(request: httpx.Request) -> httpx.Response:
        if on_request is not None:
            on_request(request)

        async def body() -> AsyncIterator[bytes]:
            for chunk in chunks:
                yield chunk

        return httpx.Response(
            status_code,
            headers={"Content-Type": "text/event-stream"},
            content=body(),
        )

    return httpx.MockTransport(handler)


def json_error_transport(status_code: int, error: str) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json={"error": error})

    return httpx.MockTransport(handler)


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(storage) -> WorkflowStore:
    workflow_store = WorkflowStore(storage, storage_key="test-state")
    workflow_store.load()
    return workflow_store


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()
