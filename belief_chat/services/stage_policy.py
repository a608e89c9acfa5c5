"""
Stage transition policy.

Evaluated after each participant utterance has been classified and the
counters updated. At most one transition applies per turn, always to the
next stage in order:

    exploration -> elaboration -> recap -> terminated

| From -> To                | Condition                                              |
|---------------------------|--------------------------------------------------------|
| exploration -> elaboration| substantive >= 5 and turns >= 12, or                   |
|                           | minimal >= 8 and turns >= 15                           |
| elaboration -> recap      | exhaustion >= 8, or minimal >= 12, or                  |
|                           | turns >= 25 and substantive >= 5                       |
| recap -> terminated       | exhaustion >= 10, or minimal >= 15, or                 |
|                           | topic turns >= 12 and exhaustion >= 3                  |

Thresholds come from InterviewConfig; the numbers above are the defaults.
The explicit end operation is handled by the Director, not here.
"""

from dataclasses import dataclass
from typing import Optional

from belief_chat.core.config import (
    ElaborationThresholds,
    RecapThresholds,
    StageThresholds,
    TerminationThresholds,
)
from belief_chat.domain.models.conversation import ConversationState
from belief_chat.domain.models.stage import Stage


@dataclass(frozen=True)
class Transition:
    """A stage change decided for the current turn."""

    from_stage: Stage
    to_stage: Stage
    reason: str


def _elaboration_reason(
    state: ConversationState, t: ElaborationThresholds
) -> Optional[str]:
    if (
        state.substantive_response_count >= t.substantive_responses
        and state.turn_count >= t.min_turns
    ):
        return "substantive_responses"
    if (
        state.minimal_response_count >= t.minimal_responses
        and state.turn_count >= t.minimal_min_turns
    ):
        return "minimal_responses"
    return None


def _recap_reason(state: ConversationState, t: RecapThresholds) -> Optional[str]:
    if state.exhaustion_signals >= t.exhaustion_signals:
        return "exhaustion_signals"
    if state.minimal_response_count >= t.minimal_responses:
        return "minimal_responses"
    if (
        state.turn_count >= t.min_turns
        and state.substantive_response_count >= t.substantive_responses
    ):
        return "turn_limit"
    return None


def _termination_reason(
    state: ConversationState, t: TerminationThresholds
) -> Optional[str]:
    if state.exhaustion_signals >= t.exhaustion_signals:
        return "exhaustion_signals"
    if state.minimal_response_count >= t.minimal_responses:
        return "minimal_responses"
    if (
        state.topic_turn_count >= t.topic_turns
        and state.exhaustion_signals >= t.topic_exhaustion_signals
    ):
        return "topic_exhausted"
    return None


def evaluate_transition(
    state: ConversationState, thresholds: StageThresholds
) -> Optional[Transition]:
    """
    Decide whether the conversation leaves its current stage this turn.

    Args:
        state: State with this turn's counters already applied
        thresholds: Calibration constants

    Returns:
        The transition to apply, or None to stay in the current stage
    """
    if state.stage is Stage.EXPLORATION:
        reason = _elaboration_reason(state, thresholds.elaboration)
    elif state.stage is Stage.ELABORATION:
        reason = _recap_reason(state, thresholds.recap)
    elif state.stage is Stage.RECAP:
        reason = _termination_reason(state, thresholds.termination)
    else:
        return None

    if reason is None:
        return None

    next_stage = state.stage.next_stage()
    if next_stage is None:
        return None
    return Transition(from_stage=state.stage, to_stage=next_stage, reason=reason)
