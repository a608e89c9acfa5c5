"""Conversation domain models.

Core Models:
    - ConversationState: per-conversation stage, counters and narrative memory
    - Conversation: the persisted document (transcript + state)

Lifecycle:
    1. Created on start with the opening assistant line
    2. One user + one assistant message appended per turn; state updated
    3. Closed on end (stage terminated, endedAt set); never deleted

Invariants:
    - turn_count equals the number of user messages in the transcript
    - substantive_response_count + minimal_response_count <= turn_count
    - stage never moves backward
"""

from typing import List, Optional

from pydantic import Field

from belief_chat.domain.models.base import DocumentModel
from belief_chat.domain.models.message import Influence, StoredMessage
from belief_chat.domain.models.stage import Stage


class ResponsePatterns(DocumentModel):
    """Opening-phrase memory used to avoid formulaic replies."""

    last_opening_phrase: Optional[str] = None
    consecutive_similar_responses: int = Field(default=0, ge=0)


class ConversationState(DocumentModel):
    """Mutable interview state tracked across turns.

    Only the ConversationDirector writes it; it is persisted inside the
    conversation document so a cold restart resumes exactly.
    """

    stage: Stage = Stage.EXPLORATION
    turn_count: int = Field(default=0, ge=0)
    topic_turn_count: int = Field(default=0, ge=0)
    substantive_response_count: int = Field(default=0, ge=0)
    minimal_response_count: int = Field(default=0, ge=0)
    exhaustion_signals: int = Field(default=0, ge=0)
    explored_topics: List[str] = Field(default_factory=list)
    narrative_influences: List[Influence] = Field(default_factory=list)
    response_patterns: ResponsePatterns = Field(default_factory=ResponsePatterns)
    fallback_cursor: int = Field(default=0, ge=0)

    @property
    def is_terminated(self) -> bool:
        return self.stage is Stage.TERMINATED

    def counters(self) -> dict:
        return {
            "turn_count": self.turn_count,
            "topic_turn_count": self.topic_turn_count,
            "substantive_response_count": self.substantive_response_count,
            "minimal_response_count": self.minimal_response_count,
            "exhaustion_signals": self.exhaustion_signals,
        }

    def add_topic(self, topic: str) -> None:
        if topic not in self.explored_topics:
            self.explored_topics.append(topic)

    def add_influence(self, influence: Influence) -> bool:
        """Record an influence unless the same person+direction is known."""
        if any(i.key == influence.key for i in self.narrative_influences):
            return False
        self.narrative_influences.append(influence)
        return True


class Conversation(DocumentModel):
    """Persisted conversation document."""

    id: str
    participant_id: str
    started_at: str
    ended_at: Optional[str] = None
    state: ConversationState = Field(default_factory=ConversationState)
    messages: List[StoredMessage] = Field(default_factory=list)

    @property
    def transcript(self) -> List[StoredMessage]:
        """Messages without the opening assistant line."""
        return [m for m in self.messages if not m.metadata.opening]

    @property
    def user_message_count(self) -> int:
        return sum(1 for m in self.messages if m.role == "user")

    @property
    def last_assistant_text(self) -> Optional[str]:
        for message in reversed(self.messages):
            if message.role == "assistant":
                return message.text
        return None

    def history(self) -> List[dict]:
        return [m.as_history_entry() for m in self.messages]
