"""Tests for stage transition policy."""

import pytest

from belief_chat.core.config import StageThresholds
from belief_chat.domain.models.conversation import ConversationState
from belief_chat.domain.models.stage import Stage
from belief_chat.services.stage_policy import evaluate_transition


@pytest.fixture
def thresholds():
    return StageThresholds()


def state(**fields) -> ConversationState:
    return ConversationState(**fields)


class TestExplorationToElaboration:
    def test_substantive_path(self, thresholds):
        t = evaluate_transition(
            state(turn_count=12, substantive_response_count=5), thresholds
        )
        assert t.to_stage is Stage.ELABORATION
        assert t.reason == "substantive_responses"

    def test_substantive_needs_min_turns(self, thresholds):
        assert (
            evaluate_transition(state(turn_count=11, substantive_response_count=11), thresholds)
            is None
        )

    def test_minimal_path(self, thresholds):
        t = evaluate_transition(state(turn_count=15, minimal_response_count=8), thresholds)
        assert t.to_stage is Stage.ELABORATION
        assert t.reason == "minimal_responses"

    def test_exhaustion_alone_does_not_leave_exploration(self, thresholds):
        assert evaluate_transition(state(turn_count=10, exhaustion_signals=10), thresholds) is None


class TestElaborationToRecap:
    @pytest.mark.parametrize(
        "fields,reason",
        [
            ({"exhaustion_signals": 8}, "exhaustion_signals"),
            ({"minimal_response_count": 12, "turn_count": 12}, "minimal_responses"),
            ({"turn_count": 25, "substantive_response_count": 5}, "turn_limit"),
        ],
    )
    def test_paths(self, thresholds, fields, reason):
        t = evaluate_transition(state(stage=Stage.ELABORATION, **fields), thresholds)
        assert t.from_stage is Stage.ELABORATION
        assert t.to_stage is Stage.RECAP
        assert t.reason == reason

    def test_stays(self, thresholds):
        assert (
            evaluate_transition(
                state(stage=Stage.ELABORATION, turn_count=24, substantive_response_count=20),
                thresholds,
            )
            is None
        )


class TestRecapToTerminated:
    @pytest.mark.parametrize(
        "fields,reason",
        [
            ({"exhaustion_signals": 10}, "exhaustion_signals"),
            ({"minimal_response_count": 15, "turn_count": 15}, "minimal_responses"),
            ({"topic_turn_count": 12, "exhaustion_signals": 3}, "topic_exhausted"),
        ],
    )
    def test_paths(self, thresholds, fields, reason):
        t = evaluate_transition(state(stage=Stage.RECAP, **fields), thresholds)
        assert t.to_stage is Stage.TERMINATED
        assert t.reason == reason

    def test_nine_exhaustion_signals_stay_in_recap(self, thresholds):
        assert evaluate_transition(state(stage=Stage.RECAP, exhaustion_signals=9), thresholds) is None


def test_terminated_never_transitions(thresholds):
    assert (
        evaluate_transition(state(stage=Stage.TERMINATED, exhaustion_signals=50), thresholds)
        is None
    )


def test_one_step_per_turn(thresholds):
    """Counters that satisfy every threshold still move one stage only."""
    t = evaluate_transition(
        state(
            turn_count=40,
            substantive_response_count=20,
            minimal_response_count=20,
            exhaustion_signals=20,
        ),
        thresholds,
    )
    assert t.to_stage is Stage.ELABORATION


def test_thresholds_are_configurable():
    custom = StageThresholds(elaboration={"substantive_responses": 1, "min_turns": 1})
    t = evaluate_transition(state(turn_count=1, substantive_response_count=1), custom)
    assert t.to_stage is Stage.ELABORATION
