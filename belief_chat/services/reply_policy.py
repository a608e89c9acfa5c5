"""
Post-processing applied to every assistant reply before it is stored.

- Strips the completion marker a model may emit at the end of a recap
- Replaces replies that steer away from the interview topic
- Prevents two consecutive replies from opening with the same phrase
"""

import re
from dataclasses import dataclass
from typing import Optional

import structlog

from belief_chat.domain.models.conversation import ResponsePatterns
from belief_chat.llm.prompts.interview import COMPLETION_MARKER

log = structlog.get_logger(__name__)

# Number of leading words that make up an "opening phrase"
OPENING_WORDS = 3

# Grammatical lead-ins prepended to a reply whose opening would repeat
LEAD_INS = (
    "You mentioned that",
    "From what you describe,",
    "I understand that",
    "Thinking about that experience,",
)

OFF_TOPIC_PATTERNS = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"talk about something else",
        r"another topic",
        r"what would you like to discuss",
        r"anything you want",
        r"change the subject",
        r"different topic",
    )
)

REDIRECT_LINE = (
    "That's interesting! I'd love to keep our conversation focused on climate "
    "change though. Could you tell me more about how your thinking on it changed?"
)

_WORD_RE = re.compile(r"[\w']+")


def opening_phrase(text: str) -> Optional[str]:
    """First few words of a reply, lowercased and without punctuation."""
    words = _WORD_RE.findall(text.replace("’", "'").lower())[:OPENING_WORDS]
    return " ".join(words) if words else None


def strip_completion_marker(text: str) -> str:
    return text.replace(COMPLETION_MARKER, "").strip()


def is_off_topic(text: str) -> bool:
    return any(p.search(text) for p in OFF_TOPIC_PATTERNS)


def _lower_first(text: str) -> str:
    # Keep "I", "I'm", "I've" capitalized
    if not text or re.match(r"I\b", text):
        return text
    return text[0].lower() + text[1:]


def avoid_repeated_opening(text: str, forbidden: Optional[str], turn: int) -> str:
    """
    Prepend a lead-in if `text` opens with the forbidden phrase.

    Args:
        text: Candidate reply
        forbidden: Opening phrase of the previous reply (normalized)
        turn: Turn index, used to rotate the lead-in

    Returns:
        Reply that does not start with the forbidden phrase
    """
    if not forbidden or opening_phrase(text) != forbidden:
        return text

    for offset in range(len(LEAD_INS)):
        lead_in = LEAD_INS[(turn + offset) % len(LEAD_INS)]
        candidate = f"{lead_in} {_lower_first(text)}"
        if opening_phrase(candidate) != forbidden:
            return candidate

    return text  # unreachable while LEAD_INS have distinct openings


@dataclass(frozen=True)
class PolishedReply:
    """Outcome of post-processing one reply."""

    text: str
    patterns: ResponsePatterns
    repeated_opening: bool = False
    redirected: bool = False


def polish_reply(
    text: str,
    patterns: ResponsePatterns,
    turn: int,
    guard_topic: bool = True,
) -> PolishedReply:
    """
    Apply the full reply policy.

    Args:
        text: Raw reply (generator output or fallback)
        patterns: Opening-phrase memory before this turn
        turn: Turn index
        guard_topic: Whether to replace off-topic replies (generated text only)

    Returns:
        PolishedReply with the text to store and the updated pattern memory.
        The memory tracks the raw opening the model produced, so a habitual
        opening stays forbidden even after a lead-in masked it.
    """
    text = strip_completion_marker(text)

    redirected = False
    if guard_topic and is_off_topic(text):
        log.info("reply_redirected_off_topic", turn=turn)
        text = REDIRECT_LINE
        redirected = True

    raw_opening = opening_phrase(text)
    forbidden = patterns.last_opening_phrase
    repeated = forbidden is not None and raw_opening == forbidden

    if repeated:
        text = avoid_repeated_opening(text, forbidden, turn)
        log.info("repeated_opening_rewritten", turn=turn, opening=forbidden)

    updated = ResponsePatterns(
        last_opening_phrase=raw_opening,
        consecutive_similar_responses=(
            patterns.consecutive_similar_responses + 1 if repeated else 0
        ),
    )
    return PolishedReply(
        text=text, patterns=updated, repeated_opening=repeated, redirected=redirected
    )
