"""
JSON document store.

Each document is one UTF-8 JSON file named `<id>.json` inside a collection
directory under the data root:

    <data_dir>/participants/<id>.json
    <data_dir>/conversations/<id>.json

Writes go to a temporary sibling which is fsynced and renamed over the
target, so an observer sees either the old or the new document, never a
partial one.
"""

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

from belief_chat.core.exceptions import PersistenceError

log = structlog.get_logger(__name__)

PARTICIPANTS = "participants"
CONVERSATIONS = "conversations"

_SAFE_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,127}$")


def is_valid_document_id(doc_id: str) -> bool:
    """Ids become file names; only a conservative character set is allowed."""
    return bool(doc_id) and bool(_SAFE_ID.match(doc_id))


class JsonDocumentStore:
    """A directory of JSON documents keyed by opaque id."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, doc_id: str) -> Path:
        if not is_valid_document_id(doc_id):
            raise ValueError(f"Invalid document id: {doc_id!r}")
        return self.directory / f"{doc_id}.json"

    def exists(self, doc_id: str) -> bool:
        return is_valid_document_id(doc_id) and self.path_for(doc_id).exists()

    def read(self, doc_id: str) -> Optional[Dict[str, Any]]:
        """Load a document, or None if it does not exist.

        Raises:
            PersistenceError: If the file exists but cannot be read or parsed
        """
        if not is_valid_document_id(doc_id):
            return None

        path = self.path_for(doc_id)
        if not path.exists():
            return None

        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            log.error("document_read_failed", path=str(path), error=str(e))
            raise PersistenceError(f"Failed to read document {doc_id}") from e

    def write(self, doc_id: str, document: Dict[str, Any]) -> None:
        """Atomically replace a document.

        Raises:
            PersistenceError: If the temporary file cannot be written or renamed
        """
        path = self.path_for(doc_id)
        tmp_path: Optional[str] = None

        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=self.directory, prefix=f".{doc_id}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
            tmp_path = None
        except (OSError, TypeError, ValueError) as e:
            log.error("document_write_failed", path=str(path), error=str(e))
            raise PersistenceError(f"Failed to write document {doc_id}") from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)

    def list_ids(self) -> List[str]:
        return sorted(p.stem for p in self.directory.glob("*.json"))


def check_storage_health(data_dir: Path) -> Dict[str, Any]:
    """
    Check that both collections exist and are writable.

    Returns:
        Dict with status ("healthy"/"unhealthy") and details
    """
    try:
        for collection in (PARTICIPANTS, CONVERSATIONS):
            directory = Path(data_dir) / collection
            directory.mkdir(parents=True, exist_ok=True)
            if not os.access(directory, os.W_OK):
                return {
                    "status": "unhealthy",
                    "error": f"{collection} directory is not writable",
                }

        return {"status": "healthy", "path": str(data_dir)}

    except OSError as e:
        log.error("storage_health_check_failed", error=str(e))
        return {"status": "unhealthy", "error": str(e)}
