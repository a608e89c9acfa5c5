"""
Shared test fixtures.

Every test gets its own data directory, fresh repositories, and a scripted
Reply Generator so no test reaches a real model.
"""

import os

# Settings are read at import time; keep tests off the network and the log dir
os.environ.setdefault("GENERATOR_PROVIDER", "offline")
os.environ.setdefault("LOG_TO_FILE", "false")

from typing import Dict, List, Optional, Tuple  # noqa: E402

import pytest  # noqa: E402

from belief_chat.core.config import InterviewConfig  # noqa: E402
from belief_chat.llm.client import ReplyGenerator  # noqa: E402
from belief_chat.persistence.repositories.conversation_repo import (  # noqa: E402
    ConversationRepository,
)
from belief_chat.persistence.repositories.participant_repo import (  # noqa: E402
    ParticipantRepository,
)
from belief_chat.services.director import ConversationDirector  # noqa: E402
from belief_chat.services.survey_service import SurveyService  # noqa: E402


class ScriptedGenerator(ReplyGenerator):
    """Reply Generator that returns queued replies and records every call.

    Queue entries that are exceptions are raised instead of returned. Once the
    queue is empty it answers with numbered replies that never share an opening.
    """

    provider_name = "scripted"

    def __init__(self, replies: Optional[List] = None):
        self.replies = list(replies or [])
        self.calls: List[Tuple[str, List[Dict[str, str]]]] = []

    @property
    def last_prompt(self) -> str:
        return self.calls[-1][0]

    async def generate(self, prompt: str, history: List[Dict[str, str]]) -> str:
        self.calls.append((prompt, history))
        if self.replies:
            reply = self.replies.pop(0)
            if isinstance(reply, BaseException):
                raise reply
            return reply
        return f"Reply {len(self.calls)}: what else shaped how you see it?"


@pytest.fixture
def data_dir(tmp_path):
    """Temporary data root."""
    return tmp_path / "data"


@pytest.fixture
def participant_repo(data_dir):
    return ParticipantRepository(data_dir)


@pytest.fixture
def conversation_repo(data_dir):
    return ConversationRepository(data_dir)


@pytest.fixture
def make_generator():
    """Factory for scripted generators with queued replies."""
    return ScriptedGenerator


@pytest.fixture
def generator():
    return ScriptedGenerator()


@pytest.fixture
def director(participant_repo, conversation_repo, generator):
    """Director with default thresholds, a short deadline and no retries."""
    return ConversationDirector(
        participant_repo=participant_repo,
        conversation_repo=conversation_repo,
        generator=generator,
        config=InterviewConfig(),
        timeout=2.0,
        retries=0,
    )


@pytest.fixture
def participant(participant_repo):
    """Participant whose views changed from sceptic to believer."""
    return SurveyService(participant_repo).submit(
        {
            "views_changed": "Yes",
            "change_direction": "From climate sceptic to climate believer",
            "change_description": "I used to think it was exaggerated",
            "change_confidence": 8,
            "age": "25-34",
        }
    )


@pytest.fixture
async def conversation_id(director, participant):
    """ID of a freshly started conversation."""
    result = await director.start(participant.id)
    return result.conversation.id
