"""Tests for the JSON document store and repositories."""

import json

import pytest

from belief_chat.core.exceptions import PersistenceError
from belief_chat.domain.models.base import utc_now_iso
from belief_chat.domain.models.conversation import Conversation
from belief_chat.domain.models.message import StoredMessage, TurnMetadata
from belief_chat.domain.models.participant import Participant
from belief_chat.persistence.json_store import (
    JsonDocumentStore,
    check_storage_health,
    is_valid_document_id,
)


class TestJsonDocumentStore:
    """Tests for JsonDocumentStore."""

    def test_write_then_read(self, tmp_path):
        store = JsonDocumentStore(tmp_path / "docs")
        store.write("abc-123", {"id": "abc-123", "text": "héllo"})

        assert store.read("abc-123") == {"id": "abc-123", "text": "héllo"}
        assert store.exists("abc-123")
        assert store.list_ids() == ["abc-123"]

    def test_missing_document(self, tmp_path):
        store = JsonDocumentStore(tmp_path / "docs")
        assert store.read("nope") is None
        assert not store.exists("nope")

    def test_write_leaves_no_temporary_files(self, tmp_path):
        store = JsonDocumentStore(tmp_path / "docs")
        store.write("a", {"v": 1})
        store.write("a", {"v": 2})

        assert [p.name for p in (tmp_path / "docs").iterdir()] == ["a.json"]
        assert store.read("a") == {"v": 2}

    def test_failed_write_keeps_previous_document(self, tmp_path):
        store = JsonDocumentStore(tmp_path / "docs")
        store.write("a", {"v": 1})

        with pytest.raises(PersistenceError):
            store.write("a", {"v": object()})

        assert store.read("a") == {"v": 1}
        assert [p.name for p in (tmp_path / "docs").iterdir()] == ["a.json"]

    def test_corrupt_document(self, tmp_path):
        store = JsonDocumentStore(tmp_path / "docs")
        (tmp_path / "docs" / "bad.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(PersistenceError):
            store.read("bad")

    @pytest.mark.parametrize("doc_id", ["../escape", "a/b", "", ".hidden", "x" * 200])
    def test_unsafe_ids_rejected(self, tmp_path, doc_id):
        store = JsonDocumentStore(tmp_path / "docs")
        assert not is_valid_document_id(doc_id)
        assert store.read(doc_id) is None
        with pytest.raises(ValueError):
            store.write(doc_id, {})

    def test_storage_health(self, tmp_path):
        health = check_storage_health(tmp_path / "data")
        assert health["status"] == "healthy"
        assert (tmp_path / "data" / "participants").is_dir()
        assert (tmp_path / "data" / "conversations").is_dir()


class TestParticipantRepository:
    def test_camel_case_document_with_survey_fields(self, participant_repo, data_dir):
        participant = Participant(
            id="p1", created_at=utc_now_iso(), views_changed="No", age="18-24"
        )
        participant_repo.create(participant)

        on_disk = json.loads((data_dir / "participants" / "p1.json").read_text("utf-8"))
        assert on_disk["id"] == "p1"
        assert "createdAt" in on_disk
        assert on_disk["views_changed"] == "No"
        assert on_disk["age"] == "18-24"
        assert on_disk["chatbot_interaction"] == {"conversationId": None, "messages": []}

        loaded = participant_repo.get("p1")
        assert loaded.views_changed == "No"
        assert loaded.survey["age"] == "18-24"

    def test_unknown(self, participant_repo):
        assert participant_repo.get("missing") is None
        assert participant_repo.get_document("missing") is None


class TestConversationRepository:
    def test_round_trip_keeps_state_and_messages(self, conversation_repo, data_dir):
        opening = StoredMessage.create(
            "assistant", "Hello!", 0, "c1", metadata=TurnMetadata(opening=True)
        )
        conversation = Conversation(
            id="c1", participant_id="p1", started_at=utc_now_iso(), messages=[opening]
        )
        conversation.state.turn_count = 3
        conversation_repo.create(conversation)

        on_disk = json.loads((data_dir / "conversations" / "c1.json").read_text("utf-8"))
        assert on_disk["participantId"] == "p1"
        assert on_disk["state"]["turnCount"] == 3
        assert on_disk["state"]["responsePatterns"] == {
            "lastOpeningPhrase": None,
            "consecutiveSimilarResponses": 0,
        }
        assert on_disk["messages"][0]["conversationId"] == "c1"
        assert on_disk["messages"][0]["sender"] == "chatbot"

        assert conversation_repo.get("c1") == conversation
        assert conversation_repo.store.list_ids() == ["c1"]
