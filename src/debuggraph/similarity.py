"""Text similarity for matching a new problem against past ones.

Combines six independent signals, each in [0, 1]:
- Error type match (TypeError vs TypeError)
- Longest common substring, scaled by the shorter text's length
- Edit distance (characters for short texts, words for long ones)
- Share of the key debugging phrase catalog present in both texts
- Word-token overlap with prefix matching ("config" ~ "configuration")
- Quoted literals and call-like identifiers ('express', getUser())

A signal with no evidence on either side (e.g. neither text names an error
type) is left out of the weighting instead of counting as zero. Identical
texts score 1.0 without consulting the signals.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Sequence

from .constants import (
    CHAR_EDIT_DISTANCE_MAX_LENGTH,
    COMMON_SUBSTRING_REFERENCE_LENGTH,
    ERROR_TYPE_FAMILY_SCORE,
    ERROR_TYPE_MISMATCH_SCORE,
    MAX_EDIT_DISTANCE_WORDS,
    MAX_SIMILARITY_TEXT_LENGTH,
    MIN_COMMON_SUBSTRING_LENGTH,
    MIN_PREFIX_MATCH_LENGTH,
    PARTIAL_TOKEN_MATCH_CREDIT,
    PARTIAL_WORD_SUBSTITUTION_COST,
    SHORT_TOKEN_CUTOFF,
    TEXT_PROFILE_CACHE_SIZE,
    WEIGHT_COMMON_SUBSTRING,
    WEIGHT_EDIT_DISTANCE,
    WEIGHT_ERROR_TYPE,
    WEIGHT_IDENTIFIER,
    WEIGHT_KEY_PHRASE,
    WEIGHT_WORD_OVERLAP,
)
from .error_types import ErrorMention, find_error_mention
from .models import clamp


DEFAULT_WEIGHTS: dict[str, float] = {
    "error_type": WEIGHT_ERROR_TYPE,
    "common_substring": WEIGHT_COMMON_SUBSTRING,
    "edit_distance": WEIGHT_EDIT_DISTANCE,
    "key_phrase": WEIGHT_KEY_PHRASE,
    "word_overlap": WEIGHT_WORD_OVERLAP,
    "identifier": WEIGHT_IDENTIFIER,
}

_CANNOT = r"(?:cannot|can't|can\s+not)"

# canonical phrase -> pattern matched against lower-cased text
KEY_PHRASES: dict[str, str] = {
    "cannot read property": rf"{_CANNOT}\s+read\s+propert(?:y|ies)",
    "cannot access": rf"{_CANNOT}\s+access",
    "is not defined": r"is\s+not\s+defined",
    "is not a function": r"is\s+not\s+a\s+function",
    "undefined or null": r"undefined\s+or\s+null|null\s+or\s+undefined",
    "of undefined": r"of\s+(?:undefined|null)\b",
    "maximum call stack": r"maximum\s+call\s+stack",
    "out of memory": r"out\s+of\s+memory",
    "permission denied": r"permission\s+denied|access\s+denied|\beacces\b",
    "not found": rf"not\s+found|no\s+such\s+file|\benoent\b|{_CANNOT}\s+find",
    "failed to": r"failed\s+to",
    "unable to": r"unable\s+to",
    "timed out": r"\btime[sd]?\s*out\b|\betimedout\b",
    "connection refused": r"connection\s+refused|\beconnrefused\b",
    "unexpected token": r"unexpected\s+token",
}

_KEY_PHRASE_RES: dict[str, re.Pattern] = {
    name: re.compile(pattern) for name, pattern in KEY_PHRASES.items()
}

_QUOTED_RE = re.compile(r"'([^'\s]+)'|\"([^\"\s]+)\"|`([^`\s]+)`")
_CALL_RE = re.compile(r"([A-Za-z_$][\w$]*)\(")
_TOKEN_SPLIT_RE = re.compile(r"[^a-z0-9]+")
_WORD_RE = re.compile(r"\w+")


# ─────────────────────────────────────────────────────────────────────────────
# String algorithms
# ─────────────────────────────────────────────────────────────────────────────


def longest_common_substring(s1: str, s2: str) -> str:
    """Longest contiguous substring shared by ``s1`` and ``s2`` (case-sensitive).

    Dynamic programming over two rolling rows: O(len1 * len2) time,
    O(len2) memory. Ties go to the earliest match in ``s1``.
    """
    if not s1 or not s2:
        return ""

    best_len = 0
    best_end = 0
    prev = [0] * (len(s2) + 1)
    for i, c1 in enumerate(s1, 1):
        cur = [0] * (len(s2) + 1)
        for j, c2 in enumerate(s2, 1):
            if c1 == c2:
                run = prev[j - 1] + 1
                cur[j] = run
                if run > best_len:
                    best_len = run
                    best_end = i
        prev = cur
    return s1[best_end - best_len:best_end]


def levenshtein_distance(
    a: Sequence,
    b: Sequence,
    substitution_cost: Callable[[object, object], float] | None = None,
) -> float:
    """Edit distance between two sequences (strings or token lists).

    ``substitution_cost`` prices replacing one unequal element with another;
    the default is 1.
    """
    if not a:
        return float(len(b))
    if not b:
        return float(len(a))

    prev = [float(j) for j in range(len(b) + 1)]
    for i, x in enumerate(a, 1):
        cur = [float(i)]
        for j, y in enumerate(b, 1):
            if x == y:
                cost = 0.0
            elif substitution_cost is None:
                cost = 1.0
            else:
                cost = substitution_cost(x, y)
            cur.append(min(prev[j] + 1.0, cur[j - 1] + 1.0, prev[j - 1] + cost))
        prev = cur
    return prev[-1]


def levenshtein_similarity(s1: str, s2: str) -> float:
    """Character-level similarity: 1 - distance / max(len1, len2)."""
    longest = max(len(s1), len(s2))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein_distance(s1, s2) / longest


def is_prefix_match(w1: str, w2: str) -> bool:
    """True when one word is a prefix of the other ("config" / "configuration")."""
    shorter, longer = sorted((w1, w2), key=len)
    return len(shorter) >= MIN_PREFIX_MATCH_LENGTH and longer.startswith(shorter)


def _word_substitution_cost(w1: object, w2: object) -> float:
    if is_prefix_match(str(w1), str(w2)):
        return PARTIAL_WORD_SUBSTITUTION_COST
    return 1.0


def word_level_similarity(s1: str, s2: str) -> float:
    """Levenshtein similarity using words as the alphabet.

    Punctuation and repeated whitespace are ignored; prefix-related words
    ("config" / "configuration") substitute at half cost.
    """
    return _word_sequence_similarity(_words(s1), _words(s2))


def _words(text: str) -> list[str]:
    return _WORD_RE.findall(text.lower())


def _word_sequence_similarity(words1: Sequence[str], words2: Sequence[str]) -> float:
    longest = max(len(words1), len(words2))
    if longest == 0:
        return 1.0
    distance = levenshtein_distance(words1, words2, _word_substitution_cost)
    return 1.0 - distance / longest


def significant_tokens(text: str) -> frozenset[str]:
    """Lower-cased tokens split on non-alphanumerics, minus short and numeric ones."""
    return frozenset(
        token
        for token in _TOKEN_SPLIT_RE.split(text.lower())
        if len(token) > SHORT_TOKEN_CUTOFF and not token.isdigit()
    )


def extract_identifiers(text: str) -> frozenset[str]:
    """Quoted literals ('x', "x", `x`) and call-like names (``name(``)."""
    found = set()
    for match in _QUOTED_RE.finditer(text):
        found.add(next(group for group in match.groups() if group))
    found.update(_CALL_RE.findall(text))
    return frozenset(found)


def match_key_phrases(text: str) -> frozenset[str]:
    """Canonical names of the key phrases present in ``text``."""
    lowered = text.lower()
    return frozenset(
        name for name, pattern in _KEY_PHRASE_RES.items() if pattern.search(lowered)
    )


# ─────────────────────────────────────────────────────────────────────────────
# Text profiles
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class TextProfile:
    """Pre-computed features of one text, reused across comparisons."""

    text: str  # truncated to MAX_SIMILARITY_TEXT_LENGTH
    error: ErrorMention | None
    words: tuple[str, ...]
    tokens: frozenset[str]
    phrases: frozenset[str]
    identifiers: frozenset[str]


@lru_cache(maxsize=TEXT_PROFILE_CACHE_SIZE)
def text_profile(text: str) -> TextProfile:
    """Build (and cache) the feature profile of ``text``."""
    return TextProfile(
        text=text[:MAX_SIMILARITY_TEXT_LENGTH],
        error=find_error_mention(text),
        words=tuple(_words(text)[:MAX_EDIT_DISTANCE_WORDS]),
        tokens=significant_tokens(text),
        phrases=match_key_phrases(text),
        identifiers=extract_identifiers(text),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Signals
# ─────────────────────────────────────────────────────────────────────────────


def _same_spelling(m1: ErrorMention, m2: ErrorMention) -> bool:
    return m1.raw.split() == m2.raw.split()


def error_type_score(p1: TextProfile, p2: TextProfile) -> float | None:
    if p1.error is None and p2.error is None:
        return None
    if p1.error is None or p2.error is None:
        return 0.0
    if p1.error.token != p2.error.token:
        return ERROR_TYPE_MISMATCH_SCORE
    if _same_spelling(p1.error, p2.error):
        return 1.0
    return ERROR_TYPE_FAMILY_SCORE


def common_substring_score(p1: TextProfile, p2: TextProfile) -> float:
    shorter = min(len(p1.text), len(p2.text))
    if shorter == 0:
        return 0.0
    overlap = len(longest_common_substring(p1.text, p2.text))
    if overlap < min(MIN_COMMON_SUBSTRING_LENGTH, shorter):
        return 0.0
    return min(1.0, overlap / min(shorter, COMMON_SUBSTRING_REFERENCE_LENGTH))


def edit_distance_score(p1: TextProfile, p2: TextProfile) -> float:
    if max(len(p1.text), len(p2.text)) <= CHAR_EDIT_DISTANCE_MAX_LENGTH:
        return levenshtein_similarity(p1.text, p2.text)
    return _word_sequence_similarity(p1.words, p2.words)


def key_phrase_score(p1: TextProfile, p2: TextProfile) -> float:
    """Fraction of the whole catalog matched by both texts."""
    return len(p1.phrases & p2.phrases) / len(KEY_PHRASES)


def word_overlap_score(p1: TextProfile, p2: TextProfile) -> float | None:
    t1, t2 = p1.tokens, p2.tokens
    if not t1 and not t2:
        return None
    if not t1 or not t2:
        return 0.0

    smaller, larger = (t1, t2) if len(t1) <= len(t2) else (t2, t1)
    matched = 0.0
    for token in smaller:
        if token in larger:
            matched += 1.0
        elif any(is_prefix_match(token, other) for other in larger):
            matched += PARTIAL_TOKEN_MATCH_CREDIT
    return matched / len(larger)


def identifier_score(p1: TextProfile, p2: TextProfile) -> float | None:
    either = p1.identifiers | p2.identifiers
    if not either:
        return None
    return len(p1.identifiers & p2.identifiers) / len(either)


SIGNALS: dict[str, Callable[[TextProfile, TextProfile], float | None]] = {
    "error_type": error_type_score,
    "common_substring": common_substring_score,
    "edit_distance": edit_distance_score,
    "key_phrase": key_phrase_score,
    "word_overlap": word_overlap_score,
    "identifier": identifier_score,
}


class TextSimilarity:
    """Weighted multi-signal similarity between two texts, in [0, 1]."""

    def __init__(self, weights: dict[str, float] | None = None):
        self.weights = dict(DEFAULT_WEIGHTS)
        if weights:
            unknown = set(weights) - set(SIGNALS)
            if unknown:
                raise ValueError(f"Unknown similarity signals: {sorted(unknown)}")
            self.weights.update(weights)

    def signals(self, text1: str, text2: str) -> dict[str, float | None]:
        """Per-signal scores; None marks a signal with no evidence on either side."""
        p1, p2 = text_profile(text1), text_profile(text2)
        scores = {}
        for name, signal in SIGNALS.items():
            value = signal(p1, p2)
            scores[name] = None if value is None else clamp(value, 0.0, 1.0)
        return scores

    def score(self, text1: str, text2: str) -> float:
        """Similarity of two texts.

        Identical texts (including two empty ones) score 1.0; an empty text
        scores 0.0 against any non-empty one.
        """
        if text1 == text2:
            return 1.0
        if not text1 or not text2:
            return 0.0

        weighted = 0.0
        total_weight = 0.0
        for name, value in self.signals(text1, text2).items():
            if value is None:
                continue
            weight = self.weights[name]
            weighted += weight * value
            total_weight += weight

        if total_weight == 0:
            return 0.0
        return min(weighted / total_weight, 1.0)


_default = TextSimilarity()


def similarity(pattern: str, content: str) -> float:
    """Similarity of ``pattern`` and ``content`` with the default weights."""
    return _default.score(pattern, content)
