"""Reading progress and time-left figures.

RULES:
- A "word" in raw text is a run of letters/digits, optionally joined by
  one apostrophe ("don't", "it’s")
- Token positions are clamped into range; empty input → 0
- Minute estimates round up and are at least 1 when anything remains
"""

from __future__ import annotations

import math
import re
from typing import List, Sequence

from rsvp_pacer.core.models import Token, TokenType

_WORD_RE = re.compile(r"[^\W_]+(?:['’][^\W_]+)?")


def count_words(text: str) -> int:
    if not text.strip():
        return 0
    return sum(1 for _ in _WORD_RE.finditer(text))


def count_word_tokens(tokens: Sequence[Token]) -> int:
    return sum(1 for t in tokens if t.type == TokenType.WORD)


def count_words_through_token(tokens: Sequence[Token], token_index: int) -> int:
    """Number of words up to and including token_index."""
    if not tokens:
        return 0
    clamped = min(len(tokens) - 1, max(0, token_index))
    return count_word_tokens(tokens[:clamped + 1])


def build_word_count_by_token(tokens: Sequence[Token]) -> List[int]:
    """Running word count: entry i is the number of words in tokens[0..i]."""
    counts: List[int] = []
    total = 0
    for token in tokens:
        if token.type == TokenType.WORD:
            total += 1
        counts.append(total)
    return counts


def word_index_for_token(word_count_by_token: Sequence[int], token_index: int) -> int:
    if not word_count_by_token:
        return 0
    clamped = min(len(word_count_by_token) - 1, max(0, token_index))
    return word_count_by_token[clamped]


def estimate_minutes_for_words(words_remaining: int, wpm: int) -> int:
    if words_remaining <= 0 or wpm <= 0:
        return 0
    return max(1, math.ceil(words_remaining / wpm))


def format_duration_minutes(minutes: int) -> str:
    """Compact label: "<1m", "45m", "2h", "1h 5m"."""
    if minutes <= 0:
        return "<1m"
    hours, mins = divmod(minutes, 60)
    if hours <= 0:
        return "{}m".format(mins)
    if mins == 0:
        return "{}h".format(hours)
    return "{}h {}m".format(hours, mins)
