"""End-to-end tests for the workflow session against the mock backend."""

import pytest
from bpmn_builder.config import Settings
from bpmn_builder.services.chat_client import ChatClient
from bpmn_builder.services.chat_handler import SendState
from bpmn_builder.services.chat_mock import create_mock_transport
from bpmn_builder.session import WorkflowSession, create_session


@pytest.fixture
def session(store, notifier) -> WorkflowSession:
    client = ChatClient(chat_url="http://mock/chat", transport=create_mock_transport(chunk_size=7))
    return WorkflowSession(store, client, notifier)


class TestWorkflowSession:
    """Test user actions on the session facade."""

    @pytest.mark.asyncio
    async def test_diagram_request_shows_document(self, session):
        """Test a diagram reply lands in the transcript and the viewer."""
        state = await session.send_message("  Create a workflow for invoice approval  ")

        assert state == SendState.COMPLETED
        conversation = session.active_conversation
        assert conversation.name == "Create a workflow for invoice approval"
        user, assistant = conversation.messages
        assert user.content == "Create a workflow for invoice approval"
        assert assistant.has_diagram
        assert "```xml" not in assistant.display_content
        assert "<bpmn:definitions" in conversation.embedded_document
        assert session.displayed_document == conversation.embedded_document

    @pytest.mark.asyncio
    async def test_question_reply_has_no_document(self, session):
        """Test a clarifying reply leaves the viewer empty."""
        await session.send_message("I need help with purchasing")

        assistant = session.active_conversation.messages[-1]
        assert assistant.content.startswith("To model")
        assert assistant.embedded_document is None
        assert session.displayed_document is None

    @pytest.mark.asyncio
    async def test_blank_message_is_ignored(self, session, store):
        """Test whitespace-only input sends nothing."""
        assert await session.send_message("   ") == SendState.IDLE
        assert store.active_conversation.messages == []

    @pytest.mark.asyncio
    async def test_select_and_create_reset_viewer(self, session):
        """Test switching conversations shows that conversation's document."""
        first = session.active_conversation
        await session.send_message("Generate a process for onboarding")
        document = session.displayed_document
        assert document is not None

        second = session.create_conversation()
        assert session.active_conversation.id == second.id
        assert session.displayed_document is None

        session.select_conversation(first.id)
        assert session.displayed_document == document

    def test_rename_trims_and_ignores_blank(self, session):
        """Test rename trims the name and skips empty input."""
        conversation_id = session.active_conversation.id

        session.rename_conversation(conversation_id, "  Hiring  ")
        assert session.active_conversation.name == "Hiring"

        session.rename_conversation(conversation_id, "   ")
        assert session.active_conversation.name == "Hiring"

    def test_delete_last_conversation_recreates_default(self, session, store):
        """Test the store never ends up without a conversation."""
        only = session.active_conversation
        session.delete_conversation(only.id)

        assert len(store.state.conversations) == 1
        assert session.active_conversation.id != only.id

    def test_save_diagram_changes(self, session, store):
        """Test an edited diagram replaces the conversation document."""
        session.save_diagram_changes("<?xml version=\"1.0\"?><edited/>")

        assert store.active_conversation.embedded_document == '<?xml version="1.0"?><edited/>'
        assert session.displayed_document == '<?xml version="1.0"?><edited/>'

    @pytest.mark.asyncio
    async def test_state_is_persisted(self, session, storage):
        """Test the conversation survives in storage after a send."""
        await session.send_message("hello")

        assert "test-state" in storage.items
        assert "Describe the business process" in storage.items["test-state"]


class TestCreateSession:
    """Test building a session from settings."""

    @pytest.mark.asyncio
    async def test_mock_session_persists_to_state_dir(self, tmp_path):
        """Test a mock-backed session writes its state and a new one reloads it."""
        config = Settings(state_dir=tmp_path, storage_key="workflow", mock_backend=True)

        session = create_session(config)
        await session.send_message("Design a workflow for travel requests")

        assert (tmp_path / "workflow.json").exists()

        reloaded = create_session(config)
        conversation = reloaded.active_conversation
        assert conversation.name == "Design a workflow for travel requests"
        assert "<bpmn:definitions" in conversation.embedded_document
        assert reloaded.displayed_document == conversation.embedded_document
