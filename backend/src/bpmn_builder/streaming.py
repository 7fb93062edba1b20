"""Incremental processing of streamed chat completions.

The backend replies with server-sent events whose `data:` lines carry
`chat.completion.chunk` JSON. Chunks from the transport can split a line, a
JSON object or a multibyte character anywhere, so the processor buffers
decoded text and only consumes complete lines. After every delta the whole
accumulated reply is re-scanned for a fenced ```xml block, which becomes the
extracted BPMN document.
"""

import codecs
import json
import logging
import re
from dataclasses import dataclass
from typing import AsyncIterable, Callable

from pydantic import ValidationError

from models import ChatCompletionChunk

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"

DOCUMENT_PATTERN = re.compile(r"```xml\r?\n([\s\S]*?)```")

UpdateCallback = Callable[[str, str | None], None]


def extract_document(text: str) -> str | None:
    """Return the trimmed body of the last complete ```xml block in text."""
    matches = DOCUMENT_PATTERN.findall(text)
    if not matches:
        return None
    return matches[-1].strip()


@dataclass(frozen=True)
class StreamDelta:
    """State of the reply after one content delta."""

    content: str
    document: str | None = None


class StreamProcessor:
    """Turns raw event-stream bytes into accumulated-content deltas.

    The buffer only ever holds text that has not been consumed yet. A line
    whose payload fails to parse is put back at the front of the buffer and
    the current pass stops; it is retried once more bytes arrive.
    """

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.content = ""
        self.document: str | None = None

    @property
    def pending(self) -> str:
        """Decoded text not yet consumed."""
        return self._buffer

    def feed(self, chunk: bytes) -> list[StreamDelta]:
        """Consume a transport chunk and return the deltas it completed."""
        self._buffer += self._decoder.decode(chunk)
        return self._drain()

    def finish(self) -> list[StreamDelta]:
        """Flush the decoder at end of stream and process a final unterminated line."""
        self._buffer += self._decoder.decode(b"", final=True)
        if self._buffer and not self._buffer.endswith("\n"):
            self._buffer += "\n"

        deltas: list[StreamDelta] = []
        while "\n" in self._buffer:
            before = self._buffer
            deltas.extend(self._drain())
            if self._buffer == before:
                # No more input is coming, so a line that still fails to parse is dropped
                line, _, self._buffer = self._buffer.partition("\n")
                logger.warning(f"Discarding unparseable line at end of stream: {line[:80]!r}")
        return deltas

    def _drain(self) -> list[StreamDelta]:
        deltas: list[StreamDelta] = []

        while True:
            newline_index = self._buffer.find("\n")
            if newline_index == -1:
                break

            line = self._buffer[:newline_index]
            self._buffer = self._buffer[newline_index + 1 :]

            if line.endswith("\r"):
                line = line[:-1]
            if line.startswith(":") or not line.strip():
                continue
            if not line.startswith(DATA_PREFIX):
                continue

            payload = line[len(DATA_PREFIX) :].strip()
            if payload == DONE_SENTINEL:
                break

            try:
                record = json.loads(payload)
            except json.JSONDecodeError:
                logger.debug("Incomplete payload, waiting for more data")
                self._buffer = line + "\n" + self._buffer
                break

            text = _delta_content(record)
            if not text:
                continue

            self.content += text
            document = extract_document(self.content)
            if document is not None:
                self.document = document
            deltas.append(StreamDelta(content=self.content, document=self.document))

        return deltas


def _delta_content(record: object) -> str | None:
    try:
        chunk = ChatCompletionChunk.model_validate(record)
    except ValidationError:
        logger.debug(f"Ignoring payload without completion chunk shape: {record!r}")
        return None
    return chunk.delta_content


async def process_stream(
    chunks: AsyncIterable[bytes],
    on_update: UpdateCallback,
) -> StreamDelta:
    """Read a byte stream to its end, reporting every delta in arrival order.

    Args:
        chunks: Raw response body chunks
        on_update: Called with (accumulated_text, document_or_None) per delta

    Returns:
        The final accumulated content and extracted document

    """
    processor = StreamProcessor()

    async for chunk in chunks:
        for delta in processor.feed(chunk):
            on_update(delta.content, delta.document)

    for delta in processor.finish():
        on_update(delta.content, delta.document)

    return StreamDelta(content=processor.content, document=processor.document)
