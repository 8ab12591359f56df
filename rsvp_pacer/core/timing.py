"""Difficulty model: base word time, contextual multipliers, and pause table.

WHY: A reading unit's display time is the sum of small, independent
effects (word length, rarity, syllables, a sentence start, a proper
noun, a comma). Keeping each effect a separate pure function makes the
model tunable and lets tests pin each effect down in isolation.

HOW: Everything is expressed against the tempo (ms for an easy word).
Two derived speed figures scale the extras:
  speed_strength(tempo) — 0 at 200 ms/word (≈300 WPM), 1 at 57 ms/word
  pause_scale(tempo, config) — shrinks pauses at high speed, never
    below config.min_pause_scale
Punctuation pauses come from classify_punctuation() so the pause table
agrees with boundary detection.

RULES:
- Word time = tempo × length curve × complexity component
  + rarity extra + syllable extra; long words get a minimum; a trailing
  hyphen adds 25% of the tempo
- Every scaled pause is floored per class (sentence end 125, comma 70,
  semicolon 95, colon 85, dash 90, bracket 45, quote 35)
- Decimal points and thousands separators never pause
- Emphasis is capped at 1.25
- Exponents from config are clamped where they are used, and every
  word and break frame ends up in [MIN_FRAME_MS, MAX_FRAME_MS]
"""

from __future__ import annotations

import enum
import math
from typing import Optional, Sequence

from rsvp_pacer.core.linguistics import (
    SPEAKER_TAG_MULTIPLIER,
    is_clause_boundary,
    is_coordinating_conjunction,
    is_speaker_tag,
    is_speaker_verb,
)
from rsvp_pacer.core.models import RsvpConfig, Token, TokenType
from rsvp_pacer.core.punctuation import (
    BRACKET_CHARS,
    DASH_CHARS,
    QUOTE_CHARS,
    SENTENCE_END_CHARS,
    PunctuationClass,
    classify_punctuation,
    is_decimal_point,
    is_hard_boundary_punctuation,
    is_thousands_separator,
)
from rsvp_pacer.core.text import is_mid_sentence_punctuation

MIN_FRAME_MS = 40
MAX_FRAME_MS = 60_000
MIN_PARAGRAPH_BREAK_MS = 140.0
MIN_PAGE_BREAK_MS = 240.0
BASE_MS_PER_WORD_AT_300 = 200.0
MAX_LENGTH_EXPONENT = 8.0
MAX_PAUSE_SCALE_EXPONENT = 4.0
DEFAULT_CLAUSE_PAUSE_FACTOR = 1.25

TRANSITION_HOLD_BASE_MS = 6.0
TRANSITION_HOLD_EXTRA_MS = 10.0
EASY_PAIR_THRESHOLD = 0.72
DIALOGUE_ENTRY_BOOST = 0.06
NUMBER_EMPHASIS_BOOST = 0.12
PROPER_NOUN_BOOST = 0.08
ACRONYM_EMPHASIS_BOOST = 0.10
MAX_EMPHASIS_MULTIPLIER = 1.25
CLAUSE_LEAD_BOOST_MS = 20.0
SENTENCE_END_BREAK_BOOST_MS = 40.0
EMBEDDED_QUOTE_FACTOR = 0.45

GLUE_WORDS = frozenset([
    "a", "an", "the",
    "of", "to", "in", "on", "at", "by", "for", "with", "from",
    "and", "or", "but", "nor", "yet", "so",
    "as", "if", "than", "then", "that", "which", "who", "whom", "whose",
    "is", "are", "was", "were", "be", "been", "being",
    "not", "no",
])

TIGHT_PAIR_HINTS = frozenset([
    "to the", "in the", "of the", "on the", "at the", "for the",
    "to a", "in a", "of a", "on a", "at a", "for a",
    "to my", "in my", "of my", "on my", "at my",
    "to his", "to her", "to their",
    "as a", "as the", "as if", "as an",
])

_CLAUSE_LEAD_CHARS = frozenset([",", ";", ":"]) | DASH_CHARS


class BoundaryBefore(str, enum.Enum):
    """The strongest break between the previous unit and this one."""

    NONE = "none"
    SENTENCE = "sentence"
    PARAGRAPH = "paragraph"
    PAGE = "page"


_START_BOOST_EXTRA = {
    BoundaryBefore.NONE: 0.0,
    BoundaryBefore.SENTENCE: 0.10,
    BoundaryBefore.PARAGRAPH: 0.16,
    BoundaryBefore.PAGE: 0.22,
}


def _clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def _alnum_count(text: str) -> int:
    return sum(1 for ch in text if ch.isalnum())


def clamp_frame_ms(value: float) -> int:
    """Whole milliseconds within [MIN_FRAME_MS, MAX_FRAME_MS]; NaN falls to the floor."""
    if math.isnan(value):
        return MIN_FRAME_MS
    return int(_clamp(value, MIN_FRAME_MS, MAX_FRAME_MS))


# ---------------------------------------------------------------------------
# Speed-derived scales
# ---------------------------------------------------------------------------


def speed_strength(ms_per_word: float) -> float:
    """How fast the reader is going, from 0.0 (≤300 WPM) to 1.0 (≥1050 WPM)."""
    if ms_per_word <= 0:
        return 1.0
    speed_factor = _clamp(BASE_MS_PER_WORD_AT_300 / ms_per_word, 1.0, 3.5)
    return _clamp((speed_factor - 1.0) / 2.5, 0.0, 1.0)


def pause_scale(ms_per_word: float, config: RsvpConfig) -> float:
    """Multiplier for pauses: tempo/200 clamped to [0.12, 2.5], raised to the exponent."""
    ratio = _clamp(ms_per_word / BASE_MS_PER_WORD_AT_300, 0.12, 2.5)
    exponent = _clamp(config.pause_scale_exponent, 0.0, MAX_PAUSE_SCALE_EXPONENT)
    return max(config.min_pause_scale, ratio ** exponent)


def page_break_base_pause_ms(config: RsvpConfig) -> float:
    return max(config.paragraph_pause_ms * 1.75, config.sentence_end_pause_ms * 1.4)


# ---------------------------------------------------------------------------
# Per-word model
# ---------------------------------------------------------------------------


def word_duration_ms(word: Token, ms_per_word: float, config: RsvpConfig) -> float:
    """Base display time for one word before contextual multipliers.

    HOW: Letters beyond four stretch the tempo along a power curve;
    complexity above 1.0 adds a weighted share; rarity and extra
    syllables add flat milliseconds.
    """
    text = word.text
    letters = max(1, _alnum_count(text))

    x = max(0, letters - 4) / 10.0
    exponent = _clamp(config.length_exponent, 0.0, MAX_LENGTH_EXPONENT)
    length_curve = 1.0 + config.length_strength * (x ** exponent) if x > 0 else 1.0
    complexity_component = 1.0 + max(0.0, word.complexity_multiplier - 1.0) * config.complexity_strength
    rarity_extra = _clamp(1.0 - word.frequency_score, 0.0, 1.0) * config.rarity_extra_max_ms
    syllable_extra = max(0, word.syllable_count - 1) * config.syllable_extra_ms

    duration = ms_per_word * length_curve * complexity_component + rarity_extra + syllable_extra

    if letters >= config.long_word_chars:
        duration = max(duration, float(config.long_word_min_ms))

    # Split hyphenated parts get a micro-pause so the join is visible.
    if text.endswith("-"):
        duration += ms_per_word * 0.25

    return duration


def word_floor_ms(word: Token, config: RsvpConfig) -> int:
    if _alnum_count(word.text) >= config.long_word_chars:
        return config.long_word_min_ms
    return config.min_word_ms


def word_ease(word: Token) -> float:
    """How easy a word is, from 0.0 (hard) to 1.0 (trivial).

    Weighted difficulty: length 35%, syllables 25%, rarity 25%,
    complexity 15%.
    """
    letters = max(1, _alnum_count(word.text))
    length_score = _clamp(max(0, letters - 4) / 8.0, 0.0, 1.0)
    syllable_score = _clamp(max(0, word.syllable_count - 1) / 4.0, 0.0, 1.0)
    rarity_score = _clamp(1.0 - word.frequency_score, 0.0, 1.0)
    complexity_score = _clamp(word.complexity_multiplier - 1.0, 0.0, 1.0)

    difficulty = (
        length_score * 0.35
        + syllable_score * 0.25
        + rarity_score * 0.25
        + complexity_score * 0.15
    )
    return _clamp(1.0 - difficulty, 0.0, 1.0)


def frame_difficulty(words: Sequence[Token]) -> float:
    """Mean difficulty (1 - ease) of a unit's words, 0.0 when empty."""
    if not words:
        return 0.0
    total = sum(1.0 - word_ease(w) for w in words)
    return _clamp(total / len(words), 0.0, 1.0)


# ---------------------------------------------------------------------------
# Contextual multipliers
# ---------------------------------------------------------------------------


def start_boost_multiplier(ms_per_word: float, boundary_before: BoundaryBefore) -> float:
    return 1.0 + _START_BOOST_EXTRA[boundary_before] * speed_strength(ms_per_word)


def emphasis_multiplier(
    token: Token,
    is_first_word: bool,
    boundary_before: BoundaryBefore,
    strength: float,
) -> float:
    """Extra time for numbers, acronyms, and mid-sentence capitalised words.

    RULES:
    - A word with any digit → +12% × strength
    - 2-5 letters, all upper case → +10% × strength
    - Capitalised with lower-case letters, not at a sentence start
      → +8% × strength
    - Product clamped to [1.0, 1.25]
    """
    text = token.text
    if not text:
        return 1.0

    is_sentence_start = is_first_word and boundary_before != BoundaryBefore.NONE
    letters = [ch for ch in text if ch.isalpha()]
    has_digits = any(ch.isdigit() for ch in text)
    is_acronym = 2 <= len(letters) <= 5 and all(ch.isupper() for ch in letters)
    starts_upper = bool(letters) and letters[0].isupper()
    has_lower = any(ch.islower() for ch in letters)
    is_proper = starts_upper and has_lower and not is_sentence_start

    multiplier = 1.0
    if has_digits:
        multiplier *= 1.0 + NUMBER_EMPHASIS_BOOST * strength
    if is_acronym:
        multiplier *= 1.0 + ACRONYM_EMPHASIS_BOOST * strength
    if is_proper:
        multiplier *= 1.0 + PROPER_NOUN_BOOST * strength
    return _clamp(multiplier, 1.0, MAX_EMPHASIS_MULTIPLIER)


def terminal_word_multiplier(
    word_index: int,
    word: Token,
    frame_tokens: Sequence[Token],
    next_token: Optional[Token],
    strength: float,
) -> float:
    """Stretch a word that is immediately followed by closing punctuation.

    Hard boundaries add 10%, commas and dashes 6%, colons 7%, all scaled
    by speed strength. Numeric separators ("3.14", "1,000") add nothing.
    """
    punct_index = None
    for i in range(word_index + 1, len(frame_tokens)):
        kind = frame_tokens[i].type
        if kind == TokenType.WORD:
            return 1.0
        if kind == TokenType.PUNCTUATION:
            punct_index = i
            break
    if punct_index is None:
        return 1.0

    punct = frame_tokens[punct_index]
    ch = punct.first_char
    if not ch:
        return 1.0
    token_after = frame_tokens[punct_index + 1] if punct_index + 1 < len(frame_tokens) else next_token

    if ch == "," and is_thousands_separator(word.text, token_after):
        return 1.0
    if ch == "." and is_decimal_point(word.text, token_after):
        return 1.0

    if is_hard_boundary_punctuation(punct, word, token_after):
        extra = 0.10
    elif ch == ",":
        extra = 0.06
    elif ch == ":":
        extra = 0.07
    elif ch in DASH_CHARS:
        extra = 0.06
    else:
        extra = 0.0
    return 1.0 + extra * strength


def speaker_tag_multiplier(
    words_in_frame: Sequence[Token],
    prev_word: Optional[Token],
    next_word: Optional[Token],
    config: RsvpConfig,
) -> float:
    """Speed up short attributions like "he said" that sit outside quotes.

    HOW: Only frames of up to three non-dialogue words qualify, and only
    when a speech verb appears in the frame or right next to it. The
    frame is then tested as a speaker tag alone and together with its
    neighbouring words.
    """
    if not config.use_dialogue_detection:
        return 1.0
    if not words_in_frame or len(words_in_frame) > 3:
        return 1.0
    if any(w.is_dialogue for w in words_in_frame):
        return 1.0

    prev_text = prev_word.text if prev_word is not None else None
    next_text = next_word.text if next_word is not None else None
    has_speaker_verb = (
        any(is_speaker_verb(w.text) for w in words_in_frame)
        or (prev_text is not None and is_speaker_verb(prev_text))
        or (next_text is not None and is_speaker_verb(next_text))
    )
    if not has_speaker_verb:
        return 1.0

    frame_texts = [w.text for w in words_in_frame]
    candidates = []
    if len(frame_texts) == 1:
        current = frame_texts[0]
        if prev_text is not None:
            candidates.append([prev_text, current])
        if next_text is not None:
            candidates.append([current, next_text])
        if prev_text is not None and next_text is not None:
            candidates.append([prev_text, current, next_text])
    else:
        candidates.append(frame_texts)
        if prev_text is not None:
            candidates.append([prev_text] + frame_texts)
        if next_text is not None:
            candidates.append(frame_texts + [next_text])

    if any(is_speaker_tag(c) for c in candidates):
        return SPEAKER_TAG_MULTIPLIER
    return 1.0


def should_prefer_hold(prev: Token, next_word: Token) -> bool:
    """True for easy, tightly bound pairs such as "of the" or "is not"."""
    prev_lower = prev.text.lower()
    next_lower = next_word.text.lower()
    is_hinted = "{} {}".format(prev_lower, next_lower) in TIGHT_PAIR_HINTS
    glue_pair = (
        prev_lower in GLUE_WORDS
        and next_lower in GLUE_WORDS
        and len(prev.text) <= 4
        and len(next_word.text) <= 4
    )
    easy_pair = word_ease(prev) >= EASY_PAIR_THRESHOLD and word_ease(next_word) >= EASY_PAIR_THRESHOLD
    return easy_pair and (is_hinted or glue_pair)


def transition_hold_ms(
    frame_tokens: Sequence[Token],
    first_word: Optional[Token],
    next_word: Optional[Token],
    strength: float,
) -> float:
    """Small hold on a lone word that leads into a tight pair it could not chunk with."""
    if first_word is None or next_word is None:
        return 0.0
    if sum(1 for t in frame_tokens if t.type == TokenType.WORD) != 1:
        return 0.0
    if any(t.type == TokenType.PUNCTUATION for t in frame_tokens):
        return 0.0
    if not should_prefer_hold(first_word, next_word):
        return 0.0
    return max(0.0, TRANSITION_HOLD_BASE_MS + TRANSITION_HOLD_EXTRA_MS * strength)


def multi_word_penalty(word_count: int) -> float:
    if word_count <= 1:
        return 1.0
    if word_count == 2:
        return 1.12
    return 1.2


# ---------------------------------------------------------------------------
# Punctuation pauses
# ---------------------------------------------------------------------------


def is_clause_lead_punctuation(ch: str, next_token: Optional[Token]) -> bool:
    """A comma, semicolon, colon, or dash that introduces a clause word."""
    if ch not in _CLAUSE_LEAD_CHARS:
        return False
    if next_token is None or next_token.type != TokenType.WORD:
        return False
    next_lower = next_token.text.lower()
    return is_clause_boundary(next_lower) or is_coordinating_conjunction(next_lower)


def is_likely_sentence_continuation(next_token: Optional[Token]) -> bool:
    """A following word that starts lower case suggests the dot did not end anything."""
    if next_token is None or next_token.type != TokenType.WORD:
        return False
    first = next_token.first_char
    return first.islower()


def is_embedded_quote(ch: str, prev_word: Optional[Token], next_token: Optional[Token]) -> bool:
    """A quote mark glued to sentence punctuation or running straight into a word."""
    if ch not in QUOTE_CHARS:
        return False
    next_is_punct = next_token is not None and next_token.type == TokenType.PUNCTUATION
    if next_is_punct:
        next_ch = next_token.first_char
        if next_ch and (next_ch in SENTENCE_END_CHARS or is_mid_sentence_punctuation(next_ch)):
            return True
    return prev_word is not None and next_token is not None and next_token.type == TokenType.WORD


def punctuation_pause_ms(
    token: Token,
    prev_word: Optional[Token],
    next_token: Optional[Token],
    ms_per_word: float,
    config: RsvpConfig,
    scale: float,
) -> float:
    """Breath pause contributed by one punctuation token.

    HOW: classify the mark, look up its base pause and floor, adjust for
    context (sentence continuation, clause lead, break after a sentence
    end, embedded quote), then return max(base × scale, floor).
    """
    ch = token.first_char
    if not ch:
        return 0.0

    kind = classify_punctuation(token, prev_word, next_token)
    if kind in (PunctuationClass.DECIMAL, PunctuationClass.THOUSANDS_SEPARATOR):
        base, floor = 0.0, 0.0
    elif kind == PunctuationClass.ABBREVIATION:
        base, floor = config.comma_pause_ms * 0.35, 0.0
    elif kind == PunctuationClass.SENTENCE_END:
        base, floor = float(config.sentence_end_pause_ms), 125.0
    elif ch == ",":
        base, floor = float(config.comma_pause_ms), 70.0
    elif ch == ";":
        base, floor = float(config.semicolon_pause_ms), 95.0
    elif ch == ":":
        base, floor = float(config.colon_pause_ms), 85.0
    elif ch in DASH_CHARS:
        base, floor = float(config.dash_pause_ms), 90.0
    elif ch in BRACKET_CHARS:
        base, floor = float(config.parentheses_pause_ms), 45.0
    elif ch in QUOTE_CHARS:
        base, floor = float(config.quote_pause_ms), 35.0
    elif is_mid_sentence_punctuation(ch):
        base, floor = config.comma_pause_ms * 0.85, 0.0
    else:
        base, floor = 0.0, 0.0

    if ch == "." and kind == PunctuationClass.SENTENCE_END and is_likely_sentence_continuation(next_token):
        base = min(base, config.comma_pause_ms * 0.8)
        floor = min(floor, 80.0)

    strength = speed_strength(ms_per_word)
    if is_clause_lead_punctuation(ch, next_token):
        base += CLAUSE_LEAD_BOOST_MS * strength

    if kind == PunctuationClass.SENTENCE_END and next_token is not None and next_token.is_break:
        base += SENTENCE_END_BREAK_BOOST_MS * strength

    if is_embedded_quote(ch, prev_word, next_token):
        base *= EMBEDDED_QUOTE_FACTOR
        floor *= EMBEDDED_QUOTE_FACTOR

    return max(base * scale, floor)
