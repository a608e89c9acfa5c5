"""Participant repository over the JSON document store."""

from pathlib import Path
from typing import Optional

import structlog

from belief_chat.domain.models.participant import Participant
from belief_chat.persistence.json_store import PARTICIPANTS, JsonDocumentStore

log = structlog.get_logger(__name__)


class ParticipantRepository:
    """Repository for participant documents."""

    def __init__(self, data_dir: Path):
        self.store = JsonDocumentStore(Path(data_dir) / PARTICIPANTS)

    def create(self, participant: Participant) -> Participant:
        """Write a new participant document."""
        self.store.write(participant.id, participant.to_document())
        log.info("participant_created", participant_id=participant.id)
        return participant

    def get(self, participant_id: str) -> Optional[Participant]:
        """Get a participant by ID."""
        document = self.store.read(participant_id)
        if document is None:
            return None
        return Participant.model_validate(document)

    def get_document(self, participant_id: str) -> Optional[dict]:
        """Raw stored document, exactly as on disk."""
        return self.store.read(participant_id)

    def save(self, participant: Participant) -> None:
        """Replace the stored participant document."""
        self.store.write(participant.id, participant.to_document())
