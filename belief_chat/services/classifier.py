"""Utterance classifier.

Pure, rule-based tagging of one participant utterance:

- minimal: too short to carry content (pacing signal)
- exhaustion: the participant literally says they have nothing more to add
- substantive: neither of the above
- influences: people named as shaping the belief change, with direction
- topics: coarse themes feeding the conversation's explored topics

Every ambiguity resolves to the less aggressive tag: substantive over
minimal, unclear over a guessed direction. Bare "no" / "yeah" are pacing
signals at most, never exhaustion.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Pattern, Sequence, Tuple

from belief_chat.domain.models.message import Influence, InfluenceDirection, TurnMetadata
from belief_chat.domain.models.stage import Stage


SNIPPET_LENGTH = 100

# Substring phrases (matched on word boundaries)
EXHAUSTION_PHRASES = (
    "that's all i've got",
    "nothing else to say",
    "can't think of anything",
    "i've said everything",
    "that's about it",
    "that's all",
    "nothing more",
    "wrap up",
    "end this",
)

# Whole-utterance matches
EXHAUSTION_WORDS = frozenset({"finish", "done", "finished"})

MINIMAL_PHRASES = frozenset(
    {
        "that's all",
        "nothing else",
        "no more",
        "can't think of anything",
        "i've said everything",
        "that's it",
        "finished",
        "done",
        "don't know",
        "dunno",
    }
)

# Surface form -> recorded person
RELATION_NOUNS = {
    "uncle": "uncle",
    "aunt": "aunt",
    "auntie": "aunt",
    "friend": "friend",
    "father": "father",
    "dad": "father",
    "mother": "mother",
    "mum": "mother",
    "mom": "mother",
    "brother": "brother",
    "sister": "sister",
    "teacher": "teacher",
    "professor": "teacher",
    "cousin": "cousin",
    "grandfather": "grandfather",
    "grandpa": "grandfather",
    "grandmother": "grandmother",
    "grandma": "grandmother",
    "parent": "parent",
    "partner": "partner",
    "husband": "husband",
    "wife": "wife",
    "boyfriend": "boyfriend",
    "girlfriend": "girlfriend",
    "son": "son",
    "daughter": "daughter",
    "colleague": "colleague",
    "coworker": "colleague",
    "co-worker": "colleague",
    "boss": "boss",
    "neighbour": "neighbour",
    "neighbor": "neighbour",
    "family": "family member",
}

AWAY_CUES = (
    "got sick of",
    "sick of",
    "tired of",
    "rejected",
    "made me reject",
    "disagreed",
    "disagree with",
    "opposite",
    "turned me off",
    "pushed me away",
)

TOWARD_CUES = (
    "convinced me",
    "agreed with",
    "showed me",
    "helped me believe",
    "made me think",
    "made me realise",
    "made me realize",
    "opened my eyes",
    "inspired me",
    "looked up to",
    "admired",
    "taught me",
)

EXTREME_DESCRIPTORS = (
    "conspiracy",
    "conspiracies",
    "conspiratorial",
    "extreme",
    "extremist",
    "crazy",
    "fringe",
    "radical",
    "paranoid",
    "denier",
)

DISTANCING_VERBS = (
    "moved away",
    "distanced",
    "stopped listening",
    "stopped talking",
    "backed away",
    "pulled away",
    "walked away",
    "stepped back",
    "turned away",
    "went the other way",
    "cut him off",
    "cut her off",
    "cut them off",
)

NEGATORS = ("never", "not", "didn't", "did not", "wasn't", "no one", "nobody")

# Checked in the words just before an end phrase ("I don't want to end the chat")
END_NEGATORS = ("don't", "dont", "do not", "not", "never", "won't", "can't", "cannot", "no")
END_NEGATION_WINDOW = 4

TOPIC_PATTERNS = (
    ("bushfires", r"bush ?fires?|fires?"),
    ("news", r"news|media"),
    ("evidence", r"evidence|research"),
    ("social", r"people|family|friends?"),
)


def _phrase_pattern(phrases: Sequence[str]) -> Pattern[str]:
    """Alternation that only matches whole words (apostrophes count as word chars)."""
    alternation = "|".join(re.escape(p) for p in sorted(phrases, key=len, reverse=True))
    return re.compile(rf"(?<![\w'])(?:{alternation})(?![\w'])")


_EXHAUSTION_RE = _phrase_pattern(EXHAUSTION_PHRASES)
_AWAY_RE = _phrase_pattern(AWAY_CUES)
_TOWARD_RE = _phrase_pattern(TOWARD_CUES)
_EXTREME_RE = _phrase_pattern(EXTREME_DESCRIPTORS)
_DISTANCING_RE = _phrase_pattern(DISTANCING_VERBS)
_END_NEGATOR_RE = _phrase_pattern(END_NEGATORS)
_RELATION_RE = re.compile(
    r"(?<![\w'-])("
    + "|".join(re.escape(n) for n in sorted(RELATION_NOUNS, key=len, reverse=True))
    + r")(?:s|'s|s')?(?![\w-])"
)
_TOPIC_RES = tuple((topic, re.compile(rf"\b(?:{rx})\b")) for topic, rx in TOPIC_PATTERNS)

_EDGE_PUNCTUATION = ".,!?;:\"'()…- "


@dataclass(frozen=True)
class Classification:
    """Tags for one participant utterance."""

    minimal: bool
    exhaustion: bool
    substantive: bool
    word_count: int
    influences: Tuple[Influence, ...] = field(default_factory=tuple)
    topics: Tuple[str, ...] = field(default_factory=tuple)

    def to_metadata(self, stage: Stage, **flags) -> TurnMetadata:
        """Message metadata for a turn recorded at `stage`."""
        return TurnMetadata(
            minimal=self.minimal,
            exhaustion=self.exhaustion,
            substantive=self.substantive,
            influences=[i.model_copy() for i in self.influences],
            stage=stage,
            **flags,
        )


def normalize(text: str) -> str:
    """Trim, lowercase, straighten quotes and collapse whitespace."""
    text = text.replace("’", "'").replace("‘", "'")
    return " ".join(text.lower().split())


def _bare(normalized: str) -> str:
    """Utterance without surrounding punctuation, for whole-string matches."""
    return normalized.strip(_EDGE_PUNCTUATION)


def is_exhaustion(normalized: str) -> bool:
    if _bare(normalized) in EXHAUSTION_WORDS:
        return True
    return _EXHAUSTION_RE.search(normalized) is not None


def is_minimal(normalized: str) -> bool:
    word_count = len(normalized.split())
    if word_count == 1:
        return True
    return word_count <= 2 and _bare(normalized) in MINIMAL_PHRASES


def _has_unnegated(pattern: Pattern[str], normalized: str) -> bool:
    """True if a cue occurs that is not directly preceded by a negator."""
    for match in pattern.finditer(normalized):
        preceding = normalized[max(0, match.start() - 12) : match.start()].split()
        if preceding and any(
            " ".join(preceding[-len(n.split()) :]) == n for n in NEGATORS
        ):
            continue
        return True
    return False


def requests_end(normalized: str, phrases: Sequence[str]) -> bool:
    """True if an end phrase occurs without a negation earlier in its clause."""
    if not phrases:
        return False
    for match in _phrase_pattern([p.lower() for p in phrases]).finditer(normalized):
        clause = re.split(r"[.,!?;:]", normalized[: match.start()])[-1]
        window = " ".join(clause.split()[-END_NEGATION_WINDOW:])
        if _END_NEGATOR_RE.search(window):
            continue
        return True
    return False


def influence_direction(normalized: str) -> InfluenceDirection:
    """Direction of influence expressed anywhere in the utterance."""
    away = _has_unnegated(_AWAY_RE, normalized) or (
        _EXTREME_RE.search(normalized) is not None
        and _has_unnegated(_DISTANCING_RE, normalized)
    )
    toward = _has_unnegated(_TOWARD_RE, normalized)

    if away and not toward:
        return InfluenceDirection.AWAY_FROM
    if toward and not away:
        return InfluenceDirection.TOWARD
    return InfluenceDirection.UNCLEAR


def extract_influences(text: str, normalized: Optional[str] = None) -> List[Influence]:
    """People named in the utterance, in order of first mention."""
    normalized = normalized if normalized is not None else normalize(text)

    people: List[str] = []
    for match in _RELATION_RE.finditer(normalized):
        person = RELATION_NOUNS[match.group(1)]
        if person not in people:
            people.append(person)

    if not people:
        return []

    direction = influence_direction(normalized)
    snippet = text.strip()[:SNIPPET_LENGTH]
    return [Influence(person=p, direction=direction, snippet=snippet) for p in people]


def extract_topics(normalized: str) -> List[str]:
    return [topic for topic, rx in _TOPIC_RES if rx.search(normalized)]


def classify(text: str) -> Classification:
    """Classify one participant utterance. Deterministic and side-effect free."""
    normalized = normalize(text)
    minimal = is_minimal(normalized)
    exhaustion = is_exhaustion(normalized)

    return Classification(
        minimal=minimal,
        exhaustion=exhaustion,
        substantive=not minimal and not exhaustion,
        word_count=len(normalized.split()),
        influences=tuple(extract_influences(text, normalized)),
        topics=tuple(extract_topics(normalized)),
    )
