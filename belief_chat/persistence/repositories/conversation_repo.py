"""Conversation repository over the JSON document store."""

from pathlib import Path
from typing import Optional

import structlog

from belief_chat.domain.models.conversation import Conversation
from belief_chat.persistence.json_store import CONVERSATIONS, JsonDocumentStore

log = structlog.get_logger(__name__)


class ConversationRepository:
    """Repository for conversation documents (transcript + state)."""

    def __init__(self, data_dir: Path):
        self.store = JsonDocumentStore(Path(data_dir) / CONVERSATIONS)

    def create(self, conversation: Conversation) -> Conversation:
        """Write a new conversation document."""
        self.store.write(conversation.id, conversation.to_document())
        log.info(
            "conversation_created",
            conversation_id=conversation.id,
            participant_id=conversation.participant_id,
        )
        return conversation

    def get(self, conversation_id: str) -> Optional[Conversation]:
        """Get a conversation by ID, always re-read from disk."""
        document = self.store.read(conversation_id)
        if document is None:
            return None
        return Conversation.model_validate(document)

    def get_document(self, conversation_id: str) -> Optional[dict]:
        return self.store.read(conversation_id)

    def save(self, conversation: Conversation) -> None:
        """Replace the stored conversation document (state and messages together)."""
        self.store.write(conversation.id, conversation.to_document())
