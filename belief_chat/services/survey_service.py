"""
Survey intake.

Creates a participant from a pre-survey submission. Only `views_changed` is
validated; every other field is stored as submitted, except keys the
participant document reserves for itself.
"""

from typing import Any, Dict, Mapping
from uuid import uuid4

import structlog

from belief_chat.core.exceptions import ValidationError
from belief_chat.domain.models.base import utc_now_iso
from belief_chat.domain.models.participant import RESERVED_FIELDS, Participant
from belief_chat.persistence.repositories.participant_repo import ParticipantRepository

log = structlog.get_logger(__name__)

VIEWS_CHANGED_VALUES = ("Yes", "No")


class SurveyService:
    """Turns survey submissions into participant documents."""

    def __init__(self, participant_repo: ParticipantRepository):
        self.participants = participant_repo

    def submit(self, answers: Mapping[str, Any]) -> Participant:
        """
        Validate and store a survey submission.

        Args:
            answers: Survey fields as submitted

        Returns:
            The created Participant

        Raises:
            ValidationError: views_changed missing or not Yes/No
        """
        if answers.get("views_changed") not in VIEWS_CHANGED_VALUES:
            raise ValidationError(
                "Please indicate whether your views changed", field="views_changed"
            )

        survey: Dict[str, Any] = {
            key: value for key, value in answers.items() if key not in RESERVED_FIELDS
        }
        dropped = sorted(set(answers) & RESERVED_FIELDS)
        if dropped:
            log.info("survey_reserved_fields_ignored", fields=dropped)

        participant = Participant(id=str(uuid4()), created_at=utc_now_iso(), **survey)
        return self.participants.create(participant)
