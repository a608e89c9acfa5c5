"""
Prompts for the belief-change interview.

Templates for:
- The opening line (seeded from the pre-survey)
- The interviewer role directive (participant background + narrative goals)
- One directive per productive stage
- The closing turn
"""

from typing import Any, Dict, Mapping, Optional

from belief_chat.domain.models.stage import Stage


# Rotating openers offered once replies start to sound alike
OPENING_ALTERNATIVES = (
    "You mentioned…",
    "From what you describe…",
    "I understand that…",
    "That experience with…",
)

CHANGE_DIRECTIONS = {
    "From climate sceptic to climate believer": "skeptic to believer",
    "From climate believer to climate sceptic": "believer to skeptic",
}

COMPLETION_MARKER = "##INTERVIEW_COMPLETE##"


def get_opening_line(profile: Optional[Mapping[str, Any]] = None) -> str:
    """
    Opening assistant line for a new conversation.

    Args:
        profile: Survey answers; uses views_changed and change_direction

    Returns:
        Opening line text
    """
    profile = profile or {}
    views_changed = profile.get("views_changed")
    change_direction = profile.get("change_direction")

    if views_changed == "Yes" and change_direction:
        from_to = CHANGE_DIRECTIONS.get(change_direction, "one view to another")
        return (
            "Hi there! Thanks for continuing with the study. Earlier, you mentioned "
            f"that your view on climate change shifted, from {from_to}. I'd love to "
            "hear more about that. Can you tell me in your own words how that change "
            "came about?"
        )
    if views_changed == "Yes":
        return (
            "Hi there! Thanks for continuing with the study. Earlier, you mentioned "
            "that your views on climate change have shifted. I'd love to hear more "
            "about that. Can you tell me in your own words how that change came about?"
        )
    return (
        "Hello! I'm here to learn about your thoughts and experiences with climate "
        "change. Let's start by talking about your perspective. Can you tell me how "
        "you currently think about climate change?"
    )


def get_role_directive(profile: Optional[Mapping[str, Any]] = None) -> str:
    """
    Interviewer role and style rules, including the participant background.

    Args:
        profile: Survey answers (views_changed, change_description, change_confidence)
    """
    profile = profile or {}
    views_changed = profile.get("views_changed") or "unspecified"
    change_description = profile.get("change_description") or "Not provided"
    change_confidence = profile.get("change_confidence")
    confidence = (
        f"{change_confidence}/10" if change_confidence not in (None, "") else "Not provided"
    )

    return f"""You are a warm, curious, non-judgmental interviewer having a relaxed conversation about why the participant's views on climate change changed. You are not a therapist, expert, or authority figure.

## Participant Background:
- Views changed: {views_changed}
- Change description: {change_description}
- Confidence in statement: {confidence}

## Goal:
Help the participant tell their belief-change story in their own words:
1. What they used to think
2. What they think now
3. What changed their mind (events, people, conversations, information, feelings)

## Style Rules:
1. Reflect back what the participant just said in one short, natural sentence
2. Ask ONE open follow-up question; no multi-part questions
3. Keep replies to 2-3 sentences
4. Avoid leading or yes/no frames ("Did this make you...?", "Would you say that...?")
5. If the participant says they already explained something, do not ask for more on that point
6. If they point out a leading question, thank them and ask a clearly open one
7. Stay on climate change and their belief change; do not offer to change the subject"""


_STAGE_DIRECTIVES: Dict[Stage, str] = {
    Stage.EXPLORATION: """## Current Stage: EXPLORATION
- Ask open questions that invite the participant's story
- Cover before, turning points, after, and influences
- Try a new angle (timing, feelings, specific moments) rather than repeating a topic""",
    Stage.ELABORATION: """## Current Stage: ELABORATION
- Pick ONE thread the participant already raised and probe it in depth
- Compare their earlier and current views
- Build on the influences and relationships already identified""",
    Stage.RECAP: """## Current Stage: RECAP
- Summarize what you heard in 3-6 short bullet points: earlier belief, current belief, key influences
- Then ask one question: does this capture their experience, or is there anything to change or add?
- Do not open new topics""",
}


def get_stage_directive(stage: Stage) -> str:
    """
    Directive for a productive stage.

    Raises:
        ValueError: For the terminated stage (closing turns use get_closing_directive)
    """
    try:
        return _STAGE_DIRECTIVES[stage]
    except KeyError:
        raise ValueError(f"No stage directive for {stage.value}") from None


def get_closing_directive() -> str:
    """Directive for the final assistant message of a conversation."""
    return """## Closing
The interview is over. Write the final message:
- Thank the participant warmly for sharing their story
- Recap their belief change in at most three short bullet points, using their own words
- Do NOT ask any question
- Keep it under 120 words"""


def get_narrative_directive() -> str:
    return """## Narrative Comprehension
Use the direction of each influence correctly. When someone else moved toward an
extreme view and the participant reacted against it, the participant moved AWAY
from that person's position (e.g. "my uncle got into conspiracies, I got sick of
him" means the participant distanced themselves from the uncle). Never credit a
person with the opposite effect."""
