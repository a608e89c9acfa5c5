"""Dependency injection for API routes."""

import secrets
from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, status

from belief_chat.core.config import settings
from belief_chat.llm.client import ReplyGenerator, get_reply_generator
from belief_chat.persistence.repositories.conversation_repo import ConversationRepository
from belief_chat.persistence.repositories.participant_repo import ParticipantRepository
from belief_chat.services.director import ConversationDirector
from belief_chat.services.export_service import ExportService
from belief_chat.services.survey_service import SurveyService


def get_participant_repository() -> ParticipantRepository:
    """FastAPI dependency injection for ParticipantRepository.

    Each request gets a repository over the configured data directory.
    """
    return ParticipantRepository(settings.data_dir)


def get_conversation_repository() -> ConversationRepository:
    """FastAPI dependency injection for ConversationRepository."""
    return ConversationRepository(settings.data_dir)


@lru_cache(maxsize=1)
def get_shared_reply_generator() -> ReplyGenerator:
    """Cached Reply Generator, created once per process and reused."""
    return get_reply_generator()


@lru_cache(maxsize=1)
def get_director() -> ConversationDirector:
    """Process-wide ConversationDirector.

    Shared so that the per-conversation turn locks are shared by every request.
    """
    return ConversationDirector(
        participant_repo=ParticipantRepository(settings.data_dir),
        conversation_repo=ConversationRepository(settings.data_dir),
        generator=get_shared_reply_generator(),
    )


def get_survey_service(
    participant_repo: ParticipantRepository = Depends(get_participant_repository),
) -> SurveyService:
    return SurveyService(participant_repo)


def get_export_service(
    participant_repo: ParticipantRepository = Depends(get_participant_repository),
    conversation_repo: ConversationRepository = Depends(get_conversation_repository),
) -> ExportService:
    return ExportService(participant_repo, conversation_repo)


def require_admin(authorization: Optional[str] = Header(default=None)) -> None:
    """Bearer-token guard for admin endpoints.

    Raises:
        HTTPException: 401 without a bearer token, 403 for a wrong token or
            when no admin token is configured
    """
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin token required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not settings.admin_token or not secrets.compare_digest(
        token.strip(), settings.admin_token
    ):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid admin token")


# Type aliases for dependency injection
DirectorDep = Annotated[ConversationDirector, Depends(get_director)]
SurveyServiceDep = Annotated[SurveyService, Depends(get_survey_service)]
ExportServiceDep = Annotated[ExportService, Depends(get_export_service)]
AdminDep = Depends(require_admin)
