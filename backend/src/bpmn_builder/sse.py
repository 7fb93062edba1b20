"""Server-Sent Events encoding for chat completion streams."""

import json
import uuid
from dataclasses import dataclass, field
from typing import Any, AsyncIterable

from fastapi.responses import StreamingResponse

DONE_SENTINEL = "[DONE]"


@dataclass
class SSEEvent:
    """An SSE event to send to clients.

    Chat completion streams only use `data:` lines, so `event` and `id` are
    optional and omitted when unset.
    """

    data: dict[str, Any] | str
    event: str | None = None
    id: str | None = None

    def encode(self) -> str:
        """Encode as SSE format."""
        lines = []
        if self.id:
            lines.append(f"id: {self.id}")
        if self.event:
            lines.append(f"event: {self.event}")
        data = self.data if isinstance(self.data, str) else json.dumps(self.data)
        lines.append(f"data: {data}")
        lines.append("")  # Empty line to end the event
        return "\n".join(lines) + "\n"


@dataclass
class CompletionChunkEncoder:
    """Builds `chat.completion.chunk` events for one streamed reply."""

    model: str = "mock"
    completion_id: str = field(default_factory=lambda: f"chatcmpl-{uuid.uuid4().hex[:12]}")

    def delta(self, content: str) -> SSEEvent:
        return SSEEvent(
            data={
                "id": self.completion_id,
                "object": "chat.completion.chunk",
                "model": self.model,
                "choices": [{"index": 0, "delta": {"content": content}, "finish_reason": None}],
            }
        )

    def finish(self) -> SSEEvent:
        return SSEEvent(
            data={
                "id": self.completion_id,
                "object": "chat.completion.chunk",
                "model": self.model,
                "choices": [{"index": 0, "delta": {}, "finish_reason": "stop"}],
            }
        )

    @staticmethod
    def done() -> SSEEvent:
        return SSEEvent(data=DONE_SENTINEL)


def create_sse_response(generator: AsyncIterable[str | bytes]) -> StreamingResponse:
    """Create an SSE StreamingResponse."""
    return StreamingResponse(
        generator,
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )
