"""Conversation, message and workflow state models."""

import re
import uuid
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_CONVERSATION_NAME = "New Workflow"
DIAGRAM_PLACEHOLDER_TEXT = "I've generated a BPMN workflow for you:"

# Any fenced ```xml block, used to hide diagrams from the chat transcript
_XML_FENCE = re.compile(r"```xml\r?\n[\s\S]*?```")


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class _StateModel(BaseModel):
    """Base for persisted models: immutable, camelCase on the wire."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class Message(_StateModel):
    """A single message in a conversation."""

    id: str = Field(default_factory=_uuid, description="Unique message ID")
    role: Literal["user", "assistant"] = Field(..., description="Message role")
    content: str = Field("", description="Message content")
    timestamp: datetime = Field(default_factory=_now, description="Creation timestamp")
    embedded_document: str | None = Field(
        None, description="BPMN XML extracted from this message"
    )

    @property
    def has_diagram(self) -> bool:
        """Whether the message carries a displayable BPMN document."""
        return bool(self.embedded_document and "<?xml" in self.embedded_document)

    @property
    def display_content(self) -> str:
        """Message text with the fenced XML removed."""
        text = _XML_FENCE.sub("", self.content).strip()
        if not text and self.has_diagram:
            return DIAGRAM_PLACEHOLDER_TEXT
        return text


class Conversation(_StateModel):
    """A named conversation thread with its current diagram."""

    id: str = Field(default_factory=_uuid, description="Unique conversation ID")
    name: str = Field(DEFAULT_CONVERSATION_NAME, description="Conversation name")
    messages: list[Message] = Field(default_factory=list, description="Messages in arrival order")
    embedded_document: str | None = Field(
        None, description="Most recently confirmed BPMN XML"
    )
    created_at: datetime = Field(default_factory=_now, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=_now, description="Last update timestamp")

    def get_message(self, message_id: str) -> Message | None:
        for message in self.messages:
            if message.id == message_id:
                return message
        return None


class WorkflowState(_StateModel):
    """All conversations plus the active selection."""

    conversations: list[Conversation] = Field(default_factory=list)
    active_conversation_id: str | None = Field(None, description="Active conversation ID")

    def get_conversation(self, conversation_id: str | None) -> Conversation | None:
        if conversation_id is None:
            return None
        for conversation in self.conversations:
            if conversation.id == conversation_id:
                return conversation
        return None

    @property
    def active_conversation(self) -> Conversation | None:
        return self.get_conversation(self.active_conversation_id)
