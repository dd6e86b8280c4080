"""Error-type classification for free-text problem descriptions.

Maps mentions like "TypeError", "Type Error" or "TYPE ERROR" to a canonical
lowercase token ("type error"). The vocabulary is a static table so it can be
extended without touching the matching logic.
"""

from __future__ import annotations

import re
from typing import NamedTuple

# canonical token -> pattern matched against lower-cased text
ERROR_TYPE_VOCABULARY: dict[str, str] = {
    "type error": r"type\s*error",
    "reference error": r"reference\s*error",
    "syntax error": r"syntax\s*error",
    "range error": r"range\s*error",
    "eval error": r"eval\s*error",
    "uri error": r"uri\s*error",
}


class ErrorMention(NamedTuple):
    """An error type found in text: canonical token plus the spelling used."""

    token: str
    raw: str


def _compile(vocabulary: dict[str, str]) -> tuple[re.Pattern, dict[str, str]]:
    groups: dict[str, str] = {}
    parts = []
    for i, (token, pattern) in enumerate(vocabulary.items()):
        name = f"t{i}"
        groups[name] = token
        parts.append(f"(?P<{name}>{pattern})")
    return re.compile(r"\b(?:" + "|".join(parts) + r")\b"), groups


_ERROR_TYPE_RE, _GROUP_TOKENS = _compile(ERROR_TYPE_VOCABULARY)


def find_error_mention(text: str | None) -> ErrorMention | None:
    """Return the first error-type mention in ``text``, or None.

    The earliest match in the string wins, so "TypeError ... ReferenceError"
    classifies as "type error".
    """
    if not text:
        return None
    match = _ERROR_TYPE_RE.search(text.lower())
    if match is None:
        return None
    return ErrorMention(token=_GROUP_TOKENS[match.lastgroup], raw=match.group(0))


def extract_error_type(text: str | None) -> str | None:
    """Extract the canonical error-type token from ``text``."""
    mention = find_error_mention(text)
    return mention.token if mention else None
