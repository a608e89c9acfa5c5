"""
Deprecated /chat routes.

Aliases onto the /api/conversations operations for clients still using the
original paths and the `message` field name.
"""

from fastapi import APIRouter
import structlog

from belief_chat.api.dependencies import DirectorDep
from belief_chat.api.routes.conversations import message_response, start_response
from belief_chat.api.schemas import (
    ChatReplyRequest,
    MessageResponse,
    StartConversationRequest,
    StartConversationResponse,
)

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/chat", tags=["chat (deprecated)"])


@router.post("/start", response_model=StartConversationResponse, deprecated=True)
async def chat_start(request: StartConversationRequest, director: DirectorDep):
    """Alias of POST /api/conversations/start (accepts participantId or userId)."""
    log.info("deprecated_route_used", route="/chat/start")
    result = await director.start(request.participant_id)
    return start_response(result)


@router.post("/reply", response_model=MessageResponse, deprecated=True)
async def chat_reply(request: ChatReplyRequest, director: DirectorDep):
    """Alias of POST /api/conversations/{id}/message."""
    log.info("deprecated_route_used", route="/chat/reply")
    result = await director.reply(request.conversation_id, request.message)
    return message_response(result)
