"""
Conversation API routes.

Endpoints for starting, continuing and ending an interview, plus read access
to the stored documents.
"""

from fastapi import APIRouter

from belief_chat.api.dependencies import DirectorDep
from belief_chat.api.schemas import (
    EndConversationResponse,
    MessageRequest,
    MessageResponse,
    StartConversationRequest,
    StartConversationResponse,
)
from belief_chat.services.director import StartResult, TurnResult

router = APIRouter(prefix="/api", tags=["conversations"])


def start_response(result: StartResult) -> StartConversationResponse:
    conversation = result.conversation
    return StartConversationResponse(
        conversation_id=conversation.id,
        messages=conversation.messages,
        stage=conversation.state.stage,
        resumed=result.resumed,
    )


def message_response(result: TurnResult) -> MessageResponse:
    return MessageResponse(
        reply=result.reply,
        turn=result.turn,
        stage=result.stage,
        terminated=result.terminated,
    )


@router.post("/conversations/start", response_model=StartConversationResponse)
async def start_conversation(request: StartConversationRequest, director: DirectorDep):
    """Start a conversation for a participant, or resume their open one.

    A new conversation is seeded with an opening line based on the
    participant's survey answers.
    """
    result = await director.start(request.participant_id)
    return start_response(result)


@router.post("/conversations/{conversation_id}/message", response_model=MessageResponse)
async def send_message(
    conversation_id: str,
    request: MessageRequest,
    director: DirectorDep,
):
    """Process one participant message and return the interviewer's reply.

    Returns 404 for an unknown conversation and 409 once it has ended.
    """
    result = await director.reply(conversation_id, request.content)
    return message_response(result)


@router.post("/conversations/{conversation_id}/end", response_model=EndConversationResponse)
async def end_conversation(conversation_id: str, director: DirectorDep):
    """End a conversation. Ending an already ended conversation is a no-op."""
    await director.end(conversation_id)
    return EndConversationResponse()


@router.get("/conversations/{conversation_id}")
async def get_conversation(conversation_id: str, director: DirectorDep):
    """Stored conversation document (transcript and state)."""
    return director.get_conversation(conversation_id).to_document()


@router.get("/participant/{participant_id}")
async def get_participant(participant_id: str, director: DirectorDep):
    """Stored participant document, exactly as on disk."""
    return director.get_participant_document(participant_id)
