"""Workflow session - the UI-facing facade over store, orchestrator and diagram."""

import logging

from models import Conversation

from bpmn_builder.config import Settings, settings
from bpmn_builder.db.storage import LocalStorage
from bpmn_builder.notifications import Notifier
from bpmn_builder.services.chat_client import ChatClient
from bpmn_builder.services.chat_handler import ChatOrchestrator, SendState
from bpmn_builder.services.chat_mock import create_mock_transport
from bpmn_builder.store import WorkflowStore

logger = logging.getLogger(__name__)


class WorkflowSession:
    """Tracks the displayed document and exposes the user actions."""

    def __init__(
        self,
        store: WorkflowStore,
        client: ChatClient,
        notifier: Notifier | None = None,
    ):
        self.store = store
        self.notifier = notifier or Notifier()
        self.orchestrator = ChatOrchestrator(
            store,
            client,
            notifier=self.notifier,
            on_document=self.view_document,
        )
        self._shown_document: str | None = None

    @property
    def active_conversation(self) -> Conversation | None:
        return self.store.active_conversation

    @property
    def is_loading(self) -> bool:
        return self.orchestrator.is_loading

    @property
    def displayed_document(self) -> str | None:
        """Explicitly shown document, else the active conversation's document."""
        if self._shown_document:
            return self._shown_document
        conversation = self.active_conversation
        return conversation.embedded_document if conversation else None

    def view_document(self, xml: str) -> None:
        self._shown_document = xml

    def select_conversation(self, conversation_id: str) -> None:
        self.store.set_active(conversation_id)
        conversation = self.store.get_conversation(conversation_id)
        self._shown_document = conversation.embedded_document if conversation else None

    def create_conversation(self) -> Conversation:
        conversation = self.store.create_conversation()
        self._shown_document = None
        return conversation

    def delete_conversation(self, conversation_id: str) -> None:
        self.store.delete_conversation(conversation_id)

    def rename_conversation(self, conversation_id: str, name: str) -> None:
        name = name.strip()
        if not name:
            return
        self.store.rename_conversation(conversation_id, name)

    async def send_message(self, text: str) -> SendState:
        """Send text on the active conversation."""
        text = text.strip()
        conversation = self.active_conversation
        if not text or conversation is None:
            return SendState.IDLE
        return await self.orchestrator.send_message(conversation.id, text)

    def save_diagram_changes(self, xml: str) -> None:
        """Store an edited diagram on the active conversation."""
        conversation = self.active_conversation
        if conversation is None:
            logger.warning("No active conversation, diagram edit not saved")
            return
        self.store.update_conversation_bpmn(conversation.id, xml)
        self._shown_document = xml

    def close(self) -> None:
        self.orchestrator.close()


def create_session(config: Settings | None = None) -> WorkflowSession:
    """Build a loaded session backed by the local state directory.

    With `mock_backend` enabled the chat client talks to the in-process mock
    instead of `chat_url`.
    """
    config = config or settings
    store = WorkflowStore(LocalStorage(config.state_dir), storage_key=config.storage_key)
    store.load()

    transport = create_mock_transport() if config.mock_backend else None
    client = ChatClient(
        chat_url=config.chat_url,
        api_key=config.chat_api_key,
        timeout=config.chat_timeout,
        transport=transport,
    )
    logger.info(f"Session ready with {len(store.state.conversations)} conversations")
    return WorkflowSession(store, client, Notifier())
