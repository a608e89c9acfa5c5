"""Message records stored on conversations and participants.

A message is written once and never edited. The user message and the assistant
reply of one exchange share a `turn` index (1-based); the opening assistant
line carries turn 0 and lives only on the conversation.
"""

from enum import Enum
from typing import List, Literal, Optional
from uuid import uuid4

from pydantic import Field

from belief_chat.domain.models.base import DocumentModel, utc_now_iso
from belief_chat.domain.models.stage import Stage


Role = Literal["assistant", "user"]
Sender = Literal["chatbot", "participant"]

SENDER_BY_ROLE = {"assistant": "chatbot", "user": "participant"}


class InfluenceDirection(str, Enum):
    """Which way a named influence moved the participant."""

    TOWARD = "toward"
    AWAY_FROM = "away_from"
    UNCLEAR = "unclear"


class Influence(DocumentModel):
    """A person the participant cites as shaping their belief."""

    person: str
    direction: InfluenceDirection = InfluenceDirection.UNCLEAR
    snippet: str = ""

    @property
    def key(self) -> tuple[str, str]:
        return (self.person, self.direction.value)


class TurnMetadata(DocumentModel):
    """Classifier tags attached to both messages of a turn."""

    minimal: bool = False
    exhaustion: bool = False
    substantive: bool = False
    influences: List[Influence] = Field(default_factory=list)
    stage: Stage = Stage.EXPLORATION
    opening: bool = False
    fallback: bool = False
    closing: bool = False


class StoredMessage(DocumentModel):
    """One line of the transcript as written to disk."""

    role: Role
    sender: Sender
    text: str
    timestamp: str
    turn: int = Field(ge=0)
    conversation_id: str
    message_id: str
    metadata: TurnMetadata = Field(default_factory=TurnMetadata)

    @classmethod
    def create(
        cls,
        role: Role,
        text: str,
        turn: int,
        conversation_id: str,
        metadata: Optional[TurnMetadata] = None,
    ) -> "StoredMessage":
        return cls(
            role=role,
            sender=SENDER_BY_ROLE[role],
            text=text,
            timestamp=utc_now_iso(),
            turn=turn,
            conversation_id=conversation_id,
            message_id=str(uuid4()),
            metadata=metadata or TurnMetadata(),
        )

    def as_history_entry(self) -> dict:
        """Chat-format entry for the Reply Generator."""
        return {"role": self.role, "content": self.text}
