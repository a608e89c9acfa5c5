"""
API request/response schemas.

Pydantic models for API validation and serialization. Wire names are
camelCase, matching the stored documents.
"""

from typing import List

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from belief_chat.domain.models.message import StoredMessage
from belief_chat.domain.models.stage import Stage


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============ SURVEY SCHEMAS ============


class SurveySubmitResponse(ApiModel):
    """Identifier assigned to a new participant."""

    participant_id: str


# ============ CONVERSATION SCHEMAS ============


class StartConversationRequest(ApiModel):
    """Request to start (or resume) a participant's conversation."""

    participant_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("participantId", "participant_id", "userId"),
    )


class StartConversationResponse(ApiModel):
    """Conversation handle plus the messages to render.

    A new conversation carries only the opening line; a resumed one carries
    its full transcript.
    """

    conversation_id: str
    messages: List[StoredMessage]
    stage: Stage
    resumed: bool = False


class MessageRequest(ApiModel):
    """One participant utterance."""

    content: str = Field(..., min_length=1, description="Participant's message text")


class MessageResponse(ApiModel):
    """Assistant reply for one turn."""

    reply: str
    turn: int
    stage: Stage
    terminated: bool = False


class EndConversationResponse(ApiModel):
    """Empty acknowledgement."""

    pass


# ============ DEPRECATED /chat ALIAS SCHEMAS ============


class ChatReplyRequest(ApiModel):
    """Reply request in the legacy /chat shape."""

    conversation_id: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
