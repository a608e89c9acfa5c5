"""Interview stages.

Stages only move forward:

    exploration -> elaboration -> recap -> terminated
"""

from enum import Enum
from typing import Optional


class Stage(str, Enum):
    """Interview stage."""

    EXPLORATION = "exploration"
    """Open questions about how the participant's views changed."""

    ELABORATION = "elaboration"
    """Probe one thread of the story in depth."""

    RECAP = "recap"
    """Summarize what was heard and invite correction."""

    TERMINATED = "terminated"
    """Closed; no further replies accepted."""

    @property
    def rank(self) -> int:
        return STAGE_ORDER.index(self)

    def next_stage(self) -> Optional["Stage"]:
        """The following stage, or None for terminated."""
        if self is Stage.TERMINATED:
            return None
        return STAGE_ORDER[self.rank + 1]

    def precedes(self, other: "Stage") -> bool:
        return self.rank < other.rank


STAGE_ORDER = [Stage.EXPLORATION, Stage.ELABORATION, Stage.RECAP, Stage.TERMINATED]
