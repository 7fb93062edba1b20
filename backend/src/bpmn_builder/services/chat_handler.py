"""Chat orchestration - sends a user message and streams the reply into the store."""

import logging
from enum import Enum
from typing import Callable

from models import ChatMessage, Message

from bpmn_builder.notifications import Notifier
from bpmn_builder.services.chat_client import ChatClient, ChatError
from bpmn_builder.store import WorkflowStore
from bpmn_builder.streaming import process_stream

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Failed to send message"

DocumentCallback = Callable[[str], None]


class SendState(str, Enum):
    """Lifecycle of a single send."""

    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


def build_outbound_messages(history: list[Message], user_text: str) -> list[ChatMessage]:
    """Format prior history plus the new user text for the chat endpoint."""
    messages = [
        ChatMessage(role=m.role, content=m.content)
        for m in history
        if m.role in ("user", "assistant")
    ]
    messages.append(ChatMessage(role="user", content=user_text))
    return messages


class ChatOrchestrator:
    """Runs at most one send at a time and routes streamed deltas into the store."""

    def __init__(
        self,
        store: WorkflowStore,
        client: ChatClient,
        notifier: Notifier | None = None,
        on_document: DocumentCallback | None = None,
    ):
        self.store = store
        self.client = client
        self.notifier = notifier or Notifier()
        self.on_document = on_document
        self.state = SendState.IDLE
        self._closed = False

    @property
    def is_loading(self) -> bool:
        return self.state in (SendState.SENDING, SendState.STREAMING)

    def close(self) -> None:
        """Stop forwarding updates from any in-flight stream."""
        self._closed = True

    async def send_message(self, conversation_id: str, text: str) -> SendState:
        """Send a user message on a conversation and stream the assistant reply.

        The user message and an empty assistant placeholder are stored before
        any network activity. Updates always target the conversation the send
        started on, even if another conversation is selected meanwhile.

        Args:
            conversation_id: Conversation to send on
            text: User message text

        Returns:
            The final state of this send. IDLE means the send was rejected
            because another one is in flight or the conversation is unknown.

        """
        if self.is_loading:
            logger.debug("Send rejected: a reply is already streaming")
            return SendState.IDLE

        conversation = self.store.get_conversation(conversation_id)
        if conversation is None:
            logger.warning(f"Conversation {conversation_id} not found, not sending")
            return SendState.IDLE

        self.state = SendState.SENDING
        try:
            outbound = build_outbound_messages(conversation.messages, text)
            self.store.add_message(conversation_id, "user", text)
            placeholder = self.store.add_message(conversation_id, "assistant", "")

            def on_update(content: str, document: str | None) -> None:
                if self._closed:
                    return
                self.store.update_message(conversation_id, placeholder.id, content, document)
                if document and self.on_document is not None:
                    self.on_document(document)

            async with self.client.open_stream(outbound) as chunks:
                self.state = SendState.STREAMING
                result = await process_stream(chunks, on_update)

            logger.info(
                f"Reply complete for {conversation_id}: {len(result.content)} chars, "
                f"document={'yes' if result.document else 'no'}"
            )
            self.state = SendState.COMPLETED
        except ChatError as e:
            logger.error(f"Chat error: {e}")
            self.notifier.error(e.user_message)
            self.state = SendState.FAILED
        except Exception:
            logger.exception("Unexpected error while sending message")
            self.notifier.error(GENERIC_FAILURE_MESSAGE)
            self.state = SendState.FAILED

        return self.state
