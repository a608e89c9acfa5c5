"""Shared base for documents persisted as camelCase JSON."""

from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class DocumentModel(BaseModel):
    """Model whose on-disk field names are camelCase.

    Python code uses snake_case attributes; `to_document()` produces the JSON
    shape written to the data directory.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
