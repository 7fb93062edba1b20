"""Shared Pydantic models for the BPMN workflow builder."""

from models.conversation import (
    DEFAULT_CONVERSATION_NAME,
    Conversation,
    Message,
    WorkflowState,
)
from models.chat import (
    ChatCompletionChunk,
    ChatMessage,
    ChatRequest,
    ChunkChoice,
    ChunkDelta,
)

__all__ = [
    # Persisted state
    "DEFAULT_CONVERSATION_NAME",
    "Conversation",
    "Message",
    "WorkflowState",
    # Chat wire models
    "ChatCompletionChunk",
    "ChatMessage",
    "ChatRequest",
    "ChunkChoice",
    "ChunkDelta",
]
