"""Persistent conversation store.

The workflow state is an immutable snapshot. Each operation is a pure
function from one snapshot to the next; `WorkflowStore` owns the current
snapshot, applies those functions, saves the whole state after every change
and tells its subscribers.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Literal

from pydantic import ValidationError

from bpmn_builder.config import settings
from bpmn_builder.db.storage import Storage
from models import DEFAULT_CONVERSATION_NAME, Conversation, Message, WorkflowState

logger = logging.getLogger(__name__)

AUTO_NAME_LENGTH = 40  # Characters of the first user message used as the name
AUTO_NAME_ELLIPSIS = "..."

StateListener = Callable[[WorkflowState], None]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def new_conversation() -> Conversation:
    """Build an empty conversation with the default name."""
    now = _now()
    return Conversation(name=DEFAULT_CONVERSATION_NAME, created_at=now, updated_at=now)


def default_state() -> WorkflowState:
    """A state holding one fresh conversation, which is active."""
    conversation = new_conversation()
    return WorkflowState(conversations=[conversation], active_conversation_id=conversation.id)


def auto_name(content: str) -> str:
    """Derive a conversation name from the first user message."""
    name = content[:AUTO_NAME_LENGTH]
    if len(content) > AUTO_NAME_LENGTH:
        name += AUTO_NAME_ELLIPSIS
    return name


def _replace_conversation(
    state: WorkflowState,
    conversation_id: str,
    update: Callable[[Conversation], Conversation],
) -> WorkflowState:
    conversations = [
        update(c) if c.id == conversation_id else c for c in state.conversations
    ]
    return state.model_copy(update={"conversations": conversations})


# ============= Pure state transitions =============


def create_conversation(state: WorkflowState) -> tuple[WorkflowState, Conversation]:
    conversation = new_conversation()
    new_state = WorkflowState(
        conversations=[*state.conversations, conversation],
        active_conversation_id=conversation.id,
    )
    return new_state, conversation


def delete_conversation(state: WorkflowState, conversation_id: str) -> WorkflowState:
    remaining = [c for c in state.conversations if c.id != conversation_id]
    if not remaining:
        return default_state()

    active_id = state.active_conversation_id
    if active_id == conversation_id:
        active_id = remaining[0].id
    return WorkflowState(conversations=remaining, active_conversation_id=active_id)


def rename_conversation(state: WorkflowState, conversation_id: str, name: str) -> WorkflowState:
    return _replace_conversation(
        state,
        conversation_id,
        lambda c: c.model_copy(update={"name": name, "updated_at": _now()}),
    )


def add_message(
    state: WorkflowState,
    conversation_id: str,
    role: Literal["user", "assistant"],
    content: str,
) -> tuple[WorkflowState, Message]:
    """Append a new message, naming the conversation after its first user message."""
    message = Message(role=role, content=content, timestamp=_now())

    def append(conversation: Conversation) -> Conversation:
        update = {
            "messages": [*conversation.messages, message],
            "updated_at": _now(),
        }
        if not conversation.messages and role == "user":
            update["name"] = auto_name(content)
        return conversation.model_copy(update=update)

    return _replace_conversation(state, conversation_id, append), message


def update_message(
    state: WorkflowState,
    conversation_id: str,
    message_id: str,
    content: str,
    embedded_document: str | None = None,
) -> WorkflowState:
    """Replace a message's content and document wholesale.

    A non-empty document also becomes the conversation's current document.
    """

    def replace(conversation: Conversation) -> Conversation:
        messages = [
            m.model_copy(update={"content": content, "embedded_document": embedded_document})
            if m.id == message_id
            else m
            for m in conversation.messages
        ]
        update = {"messages": messages, "updated_at": _now()}
        if embedded_document:
            update["embedded_document"] = embedded_document
        return conversation.model_copy(update=update)

    return _replace_conversation(state, conversation_id, replace)


def update_conversation_bpmn(
    state: WorkflowState, conversation_id: str, embedded_document: str
) -> WorkflowState:
    return _replace_conversation(
        state,
        conversation_id,
        lambda c: c.model_copy(
            update={"embedded_document": embedded_document, "updated_at": _now()}
        ),
    )


def set_active(state: WorkflowState, conversation_id: str) -> WorkflowState:
    return state.model_copy(update={"active_conversation_id": conversation_id})


def repair_state(state: WorkflowState) -> WorkflowState:
    """Give an empty state a default conversation and fix a dangling active id."""
    if not state.conversations:
        return default_state()
    if state.active_conversation is None:
        return set_active(state, state.conversations[0].id)
    return state


# ============= Serialization =============


def serialize_state(state: WorkflowState) -> str:
    """Serialize the whole state as camelCase JSON with ISO-8601 timestamps."""
    return state.model_dump_json(by_alias=True)


def deserialize_state(raw: str) -> WorkflowState:
    """Parse a serialized state.

    Raises:
        ValidationError: If the text is not valid JSON or does not match the layout

    """
    return WorkflowState.model_validate_json(raw)


# ============= Store =============


class WorkflowStore:
    """Owns the workflow state and persists it on every change."""

    def __init__(self, storage: Storage, storage_key: str | None = None):
        """Initialize the store. Call `load()` before use.

        Args:
            storage: Durable key/value storage
            storage_key: Key holding the serialized state

        """
        self.storage = storage
        self.storage_key = storage_key or settings.storage_key
        self._state = default_state()
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def active_conversation(self) -> Conversation | None:
        return self._state.active_conversation

    def get_conversation(self, conversation_id: str) -> Conversation | None:
        return self._state.get_conversation(conversation_id)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a callback invoked with each new state.

        Returns:
            A function that removes the listener

        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def load(self) -> WorkflowState:
        """Load the state from storage, falling back to a fresh default."""
        state: WorkflowState | None = None
        try:
            raw = self.storage.get_item(self.storage_key)
            if raw:
                state = repair_state(deserialize_state(raw))
                logger.info(
                    f"Loaded {len(state.conversations)} conversations from storage"
                )
        except (OSError, ValidationError, ValueError) as e:
            logger.error(f"Failed to load workflow state: {e}")

        self._commit(state or default_state())
        return self._state

    def save(self) -> None:
        """Write the current state. Failures are logged, never raised."""
        try:
            self.storage.set_item(self.storage_key, serialize_state(self._state))
        except (OSError, ValueError) as e:
            logger.error(f"Failed to save workflow state: {e}")

    def _commit(self, state: WorkflowState) -> None:
        self._state = state
        self.save()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("State listener failed")

    # Operations

    def create_conversation(self) -> Conversation:
        state, conversation = create_conversation(self._state)
        self._commit(state)
        logger.info(f"Created conversation {conversation.id}")
        return conversation

    def delete_conversation(self, conversation_id: str) -> WorkflowState:
        self._commit(delete_conversation(self._state, conversation_id))
        logger.info(f"Deleted conversation {conversation_id}")
        return self._state

    def rename_conversation(self, conversation_id: str, name: str) -> Conversation | None:
        self._commit(rename_conversation(self._state, conversation_id, name))
        return self.get_conversation(conversation_id)

    def add_message(
        self,
        conversation_id: str,
        role: Literal["user", "assistant"],
        content: str,
    ) -> Message:
        """Append a message and return it, including its generated ID."""
        state, message = add_message(self._state, conversation_id, role, content)
        self._commit(state)
        return message

    def update_message(
        self,
        conversation_id: str,
        message_id: str,
        content: str,
        embedded_document: str | None = None,
    ) -> Conversation | None:
        self._commit(
            update_message(self._state, conversation_id, message_id, content, embedded_document)
        )
        return self.get_conversation(conversation_id)

    def update_conversation_bpmn(
        self, conversation_id: str, embedded_document: str
    ) -> Conversation | None:
        self._commit(update_conversation_bpmn(self._state, conversation_id, embedded_document))
        return self.get_conversation(conversation_id)

    def set_active(self, conversation_id: str) -> WorkflowState:
        self._commit(set_active(self._state, conversation_id))
        return self._state
