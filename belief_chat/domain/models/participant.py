"""Participant domain model.

A participant is created on survey submit. Survey answers are stored as
top-level fields next to the identifiers; the chatbot transcript lives under
`chatbot_interaction.messages` and only ever grows.
"""

from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from belief_chat.domain.models.base import DocumentModel
from belief_chat.domain.models.message import StoredMessage


# Document keys that survey input may not overwrite
RESERVED_FIELDS = {
    "id",
    "createdAt",
    "created_at",
    "updatedAt",
    "updated_at",
    "chatbot_interaction",
}


class ChatbotInteraction(DocumentModel):
    """Participant-side view of the interview transcript."""

    conversation_id: Optional[str] = None
    messages: List[StoredMessage] = Field(default_factory=list)


class Participant(DocumentModel):
    """Persisted participant document (survey fields kept as extras)."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    id: str
    created_at: str
    updated_at: Optional[str] = None
    chatbot_interaction: ChatbotInteraction = Field(
        default_factory=ChatbotInteraction, alias="chatbot_interaction"
    )

    @property
    def survey(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})

    @property
    def views_changed(self) -> Optional[str]:
        return self.survey.get("views_changed")
