"""Punctuation classification shared by the pause table and boundary detection.

WHY: A "." can end a sentence, sit inside "3.14", or close "Dr". A ","
can be a clause pause or the separator in "1,000". Pausing and rhythm
resets both depend on telling these apart, and they must agree: if the
pause table treats a dot as an abbreviation, the smoothing must not
treat it as a sentence end.

HOW: classify_punctuation() looks at the mark, the word before it, and
the token after it, and returns one PunctuationClass. Everything else
here (hard boundaries, rhythm boundaries) is derived from that class.

RULES:
- Decimal point: digits before AND a word containing digits after
- Thousands separator: all-digit word before AND exactly three digits after
- Abbreviation: title words always; known abbreviations, single
  letters, and short all-caps words only when what follows does not
  look like a new sentence
- Hard boundary: a sentence end (. ! ? …) or ";"
- Rhythm boundary: a hard boundary, ":", or a dash
"""

from __future__ import annotations

import enum
from typing import Optional, Sequence

from rsvp_pacer.core.models import Token, TokenType

SENTENCE_END_CHARS = frozenset(".!?…")
DASH_CHARS = frozenset("—–-")
BRACKET_CHARS = frozenset("()[]{}")
QUOTE_CHARS = frozenset(['"', "“", "”", "‘", "’"])
QUOTE_OR_BRACKET_CHARS = BRACKET_CHARS | QUOTE_CHARS
OPENING_CHARS = frozenset(["(", "[", "{", "“", "‘"])
CLOSING_CHARS = frozenset([")", "]", "}", "”", "’"])

TITLE_ABBREVIATIONS = frozenset([
    "mr", "mrs", "ms", "dr", "prof", "sr", "jr", "st", "rev", "fr",
])

KNOWN_ABBREVIATIONS = frozenset([
    "mr", "mrs", "ms", "dr", "prof", "sr", "jr", "st", "vs", "etc",
    "e.g", "i.e", "eg", "ie", "no", "vol", "fig", "al",
    "inc", "ltd", "dept", "est", "approx", "misc",
    "jan", "feb", "mar", "apr", "jun", "jul", "aug", "sep", "sept",
    "oct", "nov", "dec", "u.s", "u.k", "u.n",
])

# Words that, capitalised after a dot, usually begin a new sentence.
SENTENCE_STARTERS = frozenset([
    "i", "he", "she", "they", "we", "it", "the", "a", "an",
    "this", "that", "these", "those",
])


class PunctuationClass(str, enum.Enum):
    """What a punctuation mark is doing in its context."""

    SENTENCE_END = "sentence_end"
    DECIMAL = "decimal"
    ABBREVIATION = "abbreviation"
    THOUSANDS_SEPARATOR = "thousands_separator"
    MID = "mid"
    OPEN = "open"
    CLOSE = "close"
    OTHER = "other"


def _next_word_text(next_token: Optional[Token]) -> Optional[str]:
    if next_token is None or next_token.type != TokenType.WORD:
        return None
    return next_token.text


def is_decimal_point(prev_text: str, next_token: Optional[Token]) -> bool:
    if not any(ch.isdigit() for ch in prev_text):
        return False
    next_text = _next_word_text(next_token)
    return next_text is not None and any(ch.isdigit() for ch in next_text)


def is_thousands_separator(prev_text: str, next_token: Optional[Token]) -> bool:
    next_text = _next_word_text(next_token)
    if not prev_text or next_text is None:
        return False
    if not all(ch.isdigit() for ch in prev_text):
        return False
    return len(next_text) == 3 and next_text.isdigit()


def is_abbreviation_dot(prev_text: str, next_token: Optional[Token]) -> bool:
    """Decide whether a dot after prev_text abbreviates rather than ends.

    HOW: Title abbreviations ("Dr", "Mrs") always abbreviate. Known
    abbreviations, single letters, and all-caps words of up to three
    letters abbreviate only when the next word starts lowercase, is a
    single capital initial, or is capitalised but not a typical
    sentence starter. Without a following word nothing abbreviates.
    """
    raw = prev_text.strip()
    if not raw:
        return False
    next_text = _next_word_text(next_token)
    if next_text is None:
        return False

    normalized = raw.rstrip(".,;:").lower()
    if normalized in TITLE_ABBREVIATIONS:
        return True

    next_letters = [ch for ch in next_text if ch.isalpha()]
    next_first = next_letters[0] if next_letters else ""
    next_starts_lower = next_first.islower()
    next_starts_upper = next_first.isupper()
    next_is_initial = len(next_letters) == 1 and next_first.isupper()
    is_sentence_starter = next_text.lower() in SENTENCE_STARTERS
    follows_like_abbreviation = (
        next_starts_lower
        or (next_starts_upper and not is_sentence_starter)
        or next_is_initial
    )

    if normalized in KNOWN_ABBREVIATIONS:
        return follows_like_abbreviation

    prev_letters = [ch for ch in raw if ch.isalpha()]
    if len(prev_letters) == 1:
        return follows_like_abbreviation
    if len(prev_letters) <= 3 and all(ch.isupper() for ch in prev_letters):
        return follows_like_abbreviation
    return False


def classify_punctuation(
    token: Token,
    prev_word: Optional[Token],
    next_token: Optional[Token],
) -> PunctuationClass:
    """Classify a punctuation token in context.

    RULES:
    - "." → DECIMAL, ABBREVIATION, or SENTENCE_END (in that order)
    - "!", "?", "…" → SENTENCE_END
    - "," → THOUSANDS_SEPARATOR or MID
    - ";", ":", dashes, closing brackets → MID
    - Opening brackets and curly opening quotes → OPEN
    - Curly closing quotes → CLOSE
    - Anything else (straight quotes, currency, units) → OTHER
    """
    ch = token.first_char
    prev_text = prev_word.text if prev_word is not None else ""

    if ch == ".":
        if is_decimal_point(prev_text, next_token):
            return PunctuationClass.DECIMAL
        if is_abbreviation_dot(prev_text, next_token):
            return PunctuationClass.ABBREVIATION
        return PunctuationClass.SENTENCE_END
    if ch in SENTENCE_END_CHARS:
        return PunctuationClass.SENTENCE_END
    if ch == ",":
        if is_thousands_separator(prev_text, next_token):
            return PunctuationClass.THOUSANDS_SEPARATOR
        return PunctuationClass.MID
    if ch in (";", ":") or ch in DASH_CHARS or ch in (")", "]", "}"):
        return PunctuationClass.MID
    if ch in OPENING_CHARS:
        return PunctuationClass.OPEN
    if ch in CLOSING_CHARS:
        return PunctuationClass.CLOSE
    return PunctuationClass.OTHER


def is_hard_boundary_punctuation(
    token: Token,
    prev_word: Optional[Token],
    next_token: Optional[Token],
) -> bool:
    """True for marks that end a thought: real sentence ends and ";"."""
    if not token.first_char:
        return False
    if token.first_char == ";":
        return True
    return classify_punctuation(token, prev_word, next_token) == PunctuationClass.SENTENCE_END


def is_rhythm_boundary_punctuation(
    token: Token,
    prev_word: Optional[Token],
    next_token: Optional[Token],
) -> bool:
    """Hard boundaries plus ":" and dashes; these reset rhythm smoothing."""
    if is_hard_boundary_punctuation(token, prev_word, next_token):
        return True
    ch = token.first_char
    return ch == ":" or ch in DASH_CHARS


def is_hard_boundary(tokens: Sequence[Token], next_token: Optional[Token]) -> bool:
    """True if a frame's tokens contain a break or a rhythm boundary.

    Each punctuation mark is judged with the nearest word before it in
    the frame and the nearest word after it (or next_token when the
    frame has none).
    """
    for token in tokens:
        if token.is_break:
            return True

    for i, token in enumerate(tokens):
        if token.type != TokenType.PUNCTUATION:
            continue
        prev_word = None
        for candidate in reversed(tokens[:i]):
            if candidate.type == TokenType.WORD:
                prev_word = candidate
                break
        following = next_token
        for candidate in tokens[i + 1:]:
            if candidate.type == TokenType.WORD:
                following = candidate
                break
        if is_rhythm_boundary_punctuation(token, prev_word, following):
            return True
    return False
