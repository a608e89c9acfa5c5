"""
Prompt assembly for the Reply Generator.

A turn prompt is four sections joined in order:

1. Role directive (interviewer persona + participant background)
2. Stage directive (exploration / elaboration / recap)
3. Narrative state (tracked influences and explored topics, with the
   cause -> effect comprehension rule)
4. Repetition constraints (forbidden opening, rotating opener)

The full message history travels alongside the prompt. Nothing here mutates
conversation state.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from belief_chat.domain.models.conversation import ConversationState
from belief_chat.domain.models.message import InfluenceDirection
from belief_chat.domain.models.stage import Stage
from belief_chat.llm.prompts.interview import (
    OPENING_ALTERNATIVES,
    get_closing_directive,
    get_narrative_directive,
    get_role_directive,
    get_stage_directive,
)


@dataclass(frozen=True)
class AssembledPrompt:
    """Reply Generator input: system prompt plus ordered chat history."""

    prompt: str
    history: List[Dict[str, str]] = field(default_factory=list)


def narrative_lines(state: ConversationState) -> List[str]:
    """Bullet lines describing what the participant has told us so far."""
    lines = []

    for influence in state.narrative_influences:
        if influence.direction is InfluenceDirection.AWAY_FROM:
            lines.append(
                f"- Participant distanced themselves from their {influence.person} "
                f'regarding "{influence.snippet}"'
            )
        elif influence.direction is InfluenceDirection.TOWARD:
            lines.append(
                f"- Participant moved toward the views of their {influence.person} "
                f'regarding "{influence.snippet}"'
            )

    unclear = [
        i.person
        for i in state.narrative_influences
        if i.direction is InfluenceDirection.UNCLEAR
    ]
    if unclear:
        lines.append(f"- People mentioned (influence not yet clear): {', '.join(unclear)}")

    if state.explored_topics:
        lines.append(f"- Topics already explored: {', '.join(state.explored_topics)}")

    return lines


def rotating_opener(state: ConversationState) -> str:
    return OPENING_ALTERNATIVES[state.turn_count % len(OPENING_ALTERNATIVES)]


def repetition_constraints(state: ConversationState) -> Optional[str]:
    """Constraints on how the next reply may start, if any apply."""
    patterns = state.response_patterns
    rules = []

    if patterns.last_opening_phrase:
        rules.append(
            f'- Do NOT start your reply with "{patterns.last_opening_phrase}" '
            "or a close variant of it"
        )

    if patterns.consecutive_similar_responses >= 1:
        choices = ", ".join(f'"{o}"' for o in OPENING_ALTERNATIVES)
        rules.append(
            f'- Your recent replies started alike. Start this one with "{rotating_opener(state)}" '
            f"(allowed openers: {choices})"
        )

    if not rules:
        return None
    return "## Response Variety\n" + "\n".join(rules)


def assemble_turn_prompt(
    state: ConversationState,
    profile: Optional[Mapping[str, Any]],
    history: List[Dict[str, str]],
) -> AssembledPrompt:
    """
    Build the prompt for a productive-stage reply.

    Args:
        state: Conversation state with this turn's transition already applied
        profile: Participant survey answers
        history: Full message history in order, ending with the current user message

    Raises:
        ValueError: If the conversation is terminated
    """
    if state.stage is Stage.TERMINATED:
        raise ValueError("Terminated conversations use assemble_closing_prompt")

    sections = [get_role_directive(profile), get_stage_directive(state.stage)]

    narrative = narrative_lines(state)
    sections.append(
        "## What You Know So Far\n"
        + ("\n".join(narrative) if narrative else "- Nothing recorded yet")
        + "\n\n"
        + get_narrative_directive()
    )

    constraints = repetition_constraints(state)
    if constraints:
        sections.append(constraints)

    return AssembledPrompt(prompt="\n\n".join(sections), history=list(history))


def assemble_closing_prompt(
    state: ConversationState,
    profile: Optional[Mapping[str, Any]],
    history: List[Dict[str, str]],
) -> AssembledPrompt:
    """Build the dedicated prompt for the final (closing) reply."""
    sections = [get_role_directive(profile), get_closing_directive()]

    narrative = narrative_lines(state)
    if narrative:
        sections.append("## What You Know So Far\n" + "\n".join(narrative))

    return AssembledPrompt(prompt="\n\n".join(sections), history=list(history))
