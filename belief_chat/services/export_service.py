"""
Export service for study data.

Supports export to:
- JSON: every participant and conversation document, as stored
- CSV: one row per transcript message with the participant's survey context
"""

import csv
import json
from datetime import datetime, timezone
from io import StringIO
from typing import Any, Dict, List

import structlog

from belief_chat.persistence.repositories.conversation_repo import ConversationRepository
from belief_chat.persistence.repositories.participant_repo import ParticipantRepository

log = structlog.get_logger(__name__)

CSV_SURVEY_FIELDS = [
    "views_changed",
    "change_direction",
    "change_description",
    "change_confidence",
]

CSV_FIELDS = [
    "participant_id",
    "conversation_id",
    *CSV_SURVEY_FIELDS,
    "turn",
    "role",
    "sender",
    "stage",
    "text",
    "timestamp",
    "minimal",
    "exhaustion",
    "substantive",
    "fallback",
    "influences",
]


class ExportService:
    """
    Service for exporting study data.

    Usage:
        service = ExportService(participant_repo, conversation_repo)
        json_str = service.export("json")
        csv_str = service.export("csv")
    """

    def __init__(
        self,
        participant_repo: ParticipantRepository,
        conversation_repo: ConversationRepository,
    ):
        self.participants = participant_repo
        self.conversations = conversation_repo

    def export(self, format: str = "json") -> str:
        """
        Export all study data to the given format.

        Args:
            format: "json" or "csv"

        Returns:
            Exported data as string

        Raises:
            ValueError: If format is not supported
        """
        if format.lower() not in ("json", "csv"):
            raise ValueError(f"Unsupported export format: {format}")

        data = self._collect()
        if format.lower() == "json":
            result = self._export_json(data)
        else:
            result = self._export_csv(data)

        log.info(
            "export_completed",
            format=format,
            participants=len(data["participants"]),
            conversations=len(data["conversations"]),
        )
        return result

    def _collect(self) -> Dict[str, Any]:
        participants = [
            self.participants.get_document(pid)
            for pid in self.participants.store.list_ids()
        ]
        conversations = [
            self.conversations.get_document(cid)
            for cid in self.conversations.store.list_ids()
        ]
        return {
            "exported_at": datetime.now(timezone.utc).isoformat(),
            "participants": [p for p in participants if p is not None],
            "conversations": [c for c in conversations if c is not None],
        }

    def _export_json(self, data: Dict[str, Any]) -> str:
        return json.dumps(data, indent=2, ensure_ascii=False)

    def _export_csv(self, data: Dict[str, Any]) -> str:
        """One row per participant-side message; participants without a chat get one row."""
        output = StringIO()
        writer = csv.DictWriter(output, fieldnames=CSV_FIELDS)
        writer.writeheader()

        for participant in data["participants"]:
            interaction = participant.get("chatbot_interaction") or {}
            base = {
                "participant_id": participant.get("id", ""),
                "conversation_id": interaction.get("conversationId", ""),
            }
            for field in CSV_SURVEY_FIELDS:
                value = participant.get(field, "")
                base[field] = "" if value is None else value

            messages: List[Dict[str, Any]] = interaction.get("messages") or []
            if not messages:
                writer.writerow(base)
                continue

            for message in messages:
                metadata = message.get("metadata") or {}
                writer.writerow(
                    {
                        **base,
                        "turn": message.get("turn", ""),
                        "role": message.get("role", ""),
                        "sender": message.get("sender", ""),
                        "stage": metadata.get("stage", ""),
                        "text": message.get("text", ""),
                        "timestamp": message.get("timestamp", ""),
                        "minimal": metadata.get("minimal", ""),
                        "exhaustion": metadata.get("exhaustion", ""),
                        "substantive": metadata.get("substantive", ""),
                        "fallback": metadata.get("fallback", ""),
                        "influences": json.dumps(metadata.get("influences") or []),
                    }
                )

        return output.getvalue()
