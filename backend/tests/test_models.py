"""Tests for the shared state models."""

from models import ChatCompletionChunk, Conversation, Message, WorkflowState
from models.conversation import DIAGRAM_PLACEHOLDER_TEXT

from conftest import XML_DOC


class TestMessage:
    """Test message display helpers."""

    def test_display_content_hides_xml(self):
        """Test the fenced block is stripped from the transcript text."""
        message = Message(
            role="assistant",
            content=f"Here is the process:\n```xml\n{XML_DOC}\n```\nAnything else?",
            embedded_document=XML_DOC,
        )
        assert message.display_content == "Here is the process:\n\nAnything else?"
        assert message.has_diagram

    def test_diagram_only_reply_uses_placeholder(self):
        """Test a reply that is only a diagram still shows some text."""
        message = Message(
            role="assistant", content=f"```xml\n{XML_DOC}\n```", embedded_document=XML_DOC
        )
        assert message.display_content == DIAGRAM_PLACEHOLDER_TEXT

    def test_document_without_xml_declaration_is_not_a_diagram(self):
        """Test only documents with an XML declaration count as diagrams."""
        message = Message(role="assistant", content="```xml\n<x/>\n```", embedded_document="<x/>")
        assert not message.has_diagram
        assert message.display_content == ""

    def test_messages_are_immutable(self):
        """Test updates go through model_copy instead of mutation."""
        message = Message(role="user", content="Hi")
        updated = message.model_copy(update={"content": "Hello"})

        assert message.content == "Hi"
        assert updated.id == message.id


class TestWorkflowState:
    """Test state lookup and wire layout."""

    def test_active_conversation(self):
        """Test the active ID resolves to its conversation."""
        first, second = Conversation(), Conversation(name="Hiring")
        state = WorkflowState(conversations=[first, second], active_conversation_id=second.id)

        assert state.active_conversation is second
        assert state.get_conversation("missing") is None

    def test_camel_case_round_trip(self):
        """Test persisted JSON uses camelCase and loads back."""
        conversation = Conversation(embedded_document=XML_DOC)
        state = WorkflowState(conversations=[conversation], active_conversation_id=conversation.id)

        dumped = state.model_dump(by_alias=True, mode="json")
        assert dumped["activeConversationId"] == conversation.id
        assert dumped["conversations"][0]["embeddedDocument"] == XML_DOC

        assert WorkflowState.model_validate(dumped) == state


class TestChatCompletionChunk:
    """Test tolerant chunk parsing."""

    def test_delta_content(self):
        """Test content is read from the first choice, ignoring extra fields."""
        chunk = ChatCompletionChunk.model_validate(
            {
                "id": "c1",
                "object": "chat.completion.chunk",
                "choices": [{"index": 0, "delta": {"content": "Hi"}, "logprobs": None}],
            }
        )
        assert chunk.delta_content == "Hi"

    def test_missing_delta(self):
        """Test chunks without content report None."""
        assert ChatCompletionChunk.model_validate({"choices": []}).delta_content is None
        assert ChatCompletionChunk.model_validate({"choices": [{}]}).delta_content is None
