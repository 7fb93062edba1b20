"""Chat wire models shared by the client and the relay."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ChatMessage(BaseModel):
    """A role-tagged message sent to the AI backend."""

    role: Literal["system", "user", "assistant"] = Field(..., description="Message role")
    content: str = Field(..., description="Message content")


class ChatRequest(BaseModel):
    """Request body accepted by the chat endpoint."""

    messages: list[ChatMessage] = Field(..., description="Conversation history, oldest first")


class ChunkDelta(BaseModel):
    """Incremental content of a streamed completion choice."""

    model_config = ConfigDict(extra="ignore")

    role: str | None = None
    content: str | None = None


class ChunkChoice(BaseModel):
    """One choice of a streamed completion chunk."""

    model_config = ConfigDict(extra="ignore")

    index: int = 0
    delta: ChunkDelta | None = None
    finish_reason: str | None = None


class ChatCompletionChunk(BaseModel):
    """A `chat.completion.chunk` payload carried on a `data:` line."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    choices: list[ChunkChoice] = Field(default_factory=list)

    @property
    def delta_content(self) -> str | None:
        """Text of `choices[0].delta.content`, if present."""
        if not self.choices or self.choices[0].delta is None:
            return None
        return self.choices[0].delta.content
