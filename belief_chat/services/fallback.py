"""
Canned replies used when the Reply Generator fails.

Turn fallbacks rotate round-robin per conversation (the cursor lives in the
conversation state) and never repeat the previous assistant line. The closing
fallback builds a short bullet summary from the participant's own messages.
"""

from typing import Iterable, List, Optional, Sequence, Tuple

from belief_chat.domain.models.message import StoredMessage

FALLBACK_REPLIES = (
    "That's interesting. Could you tell me more about what specifically influenced your thinking?",
    "I see. What role did personal experiences play in shaping your views?",
    "Thank you for sharing that. How did your view on climate change look before all this?",
    "That's a thoughtful point. What happened next in how you saw climate change?",
    "I appreciate you sharing that with me. Who or what else influenced that change for you?",
)

CLOSING_OPENER = "Thank you for sharing your story with me. Here is what I heard:"
CLOSING_FOOTER = "I appreciate your time and insights about your belief change experience."

# Keyword themes -> summary point
_THEMES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (
        ("evidence", "research", "study", "data"),
        "You discussed the role of evidence and research in shaping your views",
    ),
    (
        ("experience", "personal", "saw", "noticed", "felt"),
        "You shared personal experiences that influenced your thinking",
    ),
    (
        ("people", "family", "friend", "others", "uncle", "aunt"),
        "You talked about how other people influenced your perspective",
    ),
    (
        ("media", "news", "article", "tv", "video"),
        "You mentioned media sources that affected your views",
    ),
    (
        ("change", "shift", "different", "realized", "realised"),
        "You described the process of how your beliefs evolved",
    ),
)

_FILLER_POINTS = (
    "You reflected on your climate change belief journey",
    "You shared your perspective on what influences belief change",
)

MAX_SUMMARY_POINTS = 5


class FallbackReplyPool:
    """Round-robin pool of canned interviewer replies."""

    def __init__(self, replies: Sequence[str] = FALLBACK_REPLIES):
        if len(replies) < 2:
            raise ValueError("Fallback pool needs at least two distinct replies")
        self.replies = tuple(replies)

    def pick(self, cursor: int, previous: Optional[str] = None) -> Tuple[str, int]:
        """
        Choose the reply at `cursor`, skipping one identical to `previous`.

        Returns:
            (reply, next_cursor)
        """
        index = cursor % len(self.replies)
        reply = self.replies[index]
        if previous is not None and reply == previous:
            index = (index + 1) % len(self.replies)
            reply = self.replies[index]
        return reply, index + 1


def summary_points(participant_texts: Iterable[str], change_description: Optional[str] = None) -> List[str]:
    """Theme-based summary points (2 to 5) from participant utterances."""
    points: List[str] = []
    if change_description:
        points.append(
            f'You described how your climate change views changed: "{change_description}"'
        )

    texts = [
        t.lower()
        for t in participant_texts
        if t and len(t.strip()) > 10 and "end the chat" not in t.lower()
    ]
    for keywords, point in _THEMES:
        if any(k in text for text in texts for k in keywords):
            points.append(point)

    for filler in _FILLER_POINTS:
        if len(points) >= 2:
            break
        points.append(filler)

    return points[:MAX_SUMMARY_POINTS]


def closing_summary(
    messages: Sequence[StoredMessage], change_description: Optional[str] = None
) -> str:
    """Closing message used when the generator cannot write one."""
    texts = [m.text for m in messages if m.role == "user"]
    bullets = "\n".join(f"• {p}" for p in summary_points(texts, change_description))
    return f"{CLOSING_OPENER}\n\n{bullets}\n\n{CLOSING_FOOTER}"
