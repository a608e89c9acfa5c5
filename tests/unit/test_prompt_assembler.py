"""Tests for interview prompts and prompt assembly."""

import pytest

from belief_chat.domain.models.conversation import ConversationState, ResponsePatterns
from belief_chat.domain.models.message import Influence, InfluenceDirection
from belief_chat.domain.models.stage import Stage
from belief_chat.llm.prompts.interview import (
    OPENING_ALTERNATIVES,
    get_opening_line,
    get_role_directive,
    get_stage_directive,
)
from belief_chat.services.prompt_assembler import (
    assemble_closing_prompt,
    assemble_turn_prompt,
    narrative_lines,
)


PROFILE = {
    "views_changed": "Yes",
    "change_description": "I stopped doubting the science",
    "change_confidence": 7,
}


class TestOpeningLine:
    def test_direction_named(self):
        line = get_opening_line(
            {"views_changed": "Yes", "change_direction": "From climate believer to climate sceptic"}
        )
        assert "believer to skeptic" in line

    def test_views_changed_without_direction(self):
        line = get_opening_line({"views_changed": "Yes"})
        assert "shifted" in line

    def test_views_unchanged(self):
        line = get_opening_line({"views_changed": "No"})
        assert "currently think" in line

    def test_no_profile(self):
        assert get_opening_line(None) == get_opening_line({"views_changed": "No"})


class TestDirectives:
    def test_role_directive_carries_background(self):
        directive = get_role_directive(PROFILE)
        assert "Views changed: Yes" in directive
        assert "I stopped doubting the science" in directive
        assert "7/10" in directive

    def test_role_directive_defaults(self):
        directive = get_role_directive({})
        assert "Confidence in statement: Not provided" in directive

    @pytest.mark.parametrize("stage", [Stage.EXPLORATION, Stage.ELABORATION, Stage.RECAP])
    def test_stage_directives(self, stage):
        assert stage.value.upper() in get_stage_directive(stage)

    def test_terminated_has_no_stage_directive(self):
        with pytest.raises(ValueError):
            get_stage_directive(Stage.TERMINATED)


class TestNarrativeLines:
    def test_directional_influences(self):
        state = ConversationState(
            narrative_influences=[
                Influence(
                    person="uncle",
                    direction=InfluenceDirection.AWAY_FROM,
                    snippet="I got sick of him",
                ),
                Influence(person="teacher", direction=InfluenceDirection.TOWARD, snippet="she showed me"),
            ]
        )
        lines = narrative_lines(state)
        assert lines[0] == (
            '- Participant distanced themselves from their uncle regarding "I got sick of him"'
        )
        assert "moved toward the views of their teacher" in lines[1]

    def test_unclear_influences_get_no_direction_hint(self):
        state = ConversationState(
            narrative_influences=[Influence(person="friend", snippet="my friend")]
        )
        lines = narrative_lines(state)
        assert lines == ["- People mentioned (influence not yet clear): friend"]

    def test_explored_topics(self):
        state = ConversationState(explored_topics=["bushfires", "news"])
        assert narrative_lines(state) == ["- Topics already explored: bushfires, news"]


class TestAssembleTurnPrompt:
    def test_sections_in_order(self):
        state = ConversationState(stage=Stage.ELABORATION)
        history = [{"role": "user", "content": "hello"}]

        assembled = assemble_turn_prompt(state, PROFILE, history)

        prompt = assembled.prompt
        assert prompt.index("Participant Background") < prompt.index("ELABORATION")
        assert prompt.index("ELABORATION") < prompt.index("What You Know So Far")
        assert "Narrative Comprehension" in prompt
        assert assembled.history == history
        assert assembled.history is not history

    def test_no_repetition_section_without_history(self):
        assembled = assemble_turn_prompt(ConversationState(), PROFILE, [])
        assert "Response Variety" not in assembled.prompt

    def test_forbidden_opening(self):
        state = ConversationState(
            response_patterns=ResponsePatterns(last_opening_phrase="it sounds like")
        )
        prompt = assemble_turn_prompt(state, PROFILE, []).prompt
        assert 'Do NOT start your reply with "it sounds like"' in prompt
        assert "Your recent replies started alike" not in prompt

    def test_rotating_opener_after_repeat(self):
        state = ConversationState(
            turn_count=3,
            response_patterns=ResponsePatterns(
                last_opening_phrase="it sounds like", consecutive_similar_responses=1
            ),
        )
        prompt = assemble_turn_prompt(state, PROFILE, []).prompt
        assert f'Start this one with "{OPENING_ALTERNATIVES[3]}"' in prompt

    def test_does_not_mutate_state(self):
        state = ConversationState(explored_topics=["news"])
        before = state.model_dump()
        assemble_turn_prompt(state, PROFILE, [])
        assert state.model_dump() == before

    def test_terminated_rejected(self):
        with pytest.raises(ValueError):
            assemble_turn_prompt(ConversationState(stage=Stage.TERMINATED), PROFILE, [])


def test_closing_prompt():
    state = ConversationState(stage=Stage.TERMINATED, explored_topics=["evidence"])
    prompt = assemble_closing_prompt(state, PROFILE, []).prompt
    assert "## Closing" in prompt
    assert "Do NOT ask any question" in prompt
    assert "Topics already explored: evidence" in prompt
