"""Small text and token helpers shared by the tokenizer, engine, and exporters.

WHY: Several stages need the same answers to simple questions: is this
character a sentence end, how should a token list read as prose, which
word does a raw position belong to. Keeping those answers in one place
stops the stages from drifting apart.

HOW: Stateless functions over strings and Token sequences. Nothing here
mutates its input; split_hyphenated_token() builds new tokens.

RULES:
- Sentence-ending characters: . ! ? …
- Mid-sentence characters: , ; : — – ) ] }
- Hyphenated words split into "part-" pieces, except numeric signs
  such as "-35c" or "-3.14"
- join_tokens_for_display() never puts a space before closing marks or
  after opening marks
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence

from rsvp_pacer.core.linguistics import complexity_multiplier, count_syllables, frequency_score
from rsvp_pacer.core.models import Token, TokenType
from rsvp_pacer.core.orp import calculate_orp_index

SENTENCE_ENDING_CHARS = frozenset(".!?…")
MID_SENTENCE_CHARS = frozenset(",;:—–)]}")

_OPENING_DISPLAY_CHARS = frozenset(['"', "“", "‘", "(", "[", "{"])
_CLOSING_DISPLAY_CHARS = frozenset([
    ".", ",", ";", ":", "!", "?", '"', "”", "’", ")", "]", "}", "—", "–", "…",
])
_DASH_JOINERS = frozenset(["—", "–"])

_INNER_WHITESPACE_RE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """Collapse runs of whitespace inside each line and trim the result.

    Line breaks are kept so blank-line paragraph separators survive.
    """
    lines = [_INNER_WHITESPACE_RE.sub(" ", line.strip()) for line in text.split("\n")]
    return "\n".join(lines).strip()


def is_sentence_ending_punctuation(char: str) -> bool:
    return char in SENTENCE_ENDING_CHARS


def is_mid_sentence_punctuation(char: str) -> bool:
    return char in MID_SENTENCE_CHARS


def split_hyphenated_token(token: Token) -> List[Token]:
    """Split a hyphenated word into display parts.

    WHY: "mother-in-law" is hard to take in at a glance, but three short
    pieces each read instantly. The hyphen stays on the preceding piece
    so the reader sees the word continues.

    RULES:
    - Only WORD tokens containing "-" are split
    - A leading "-" followed by a digit is a numeric sign: never split
    - Empty pieces ("pre-", "-ish", "a--b") are dropped; fewer than two
      pieces left means the word stays whole
    - Non-final parts end in "-"; ORP, syllables, frequency, and
      complexity are computed on the part without the hyphen
    - Only the final part keeps the clause-boundary flag; every part
      keeps the dialogue flag
    """
    if token.type != TokenType.WORD or "-" not in token.text:
        return [token]
    text = token.text
    if len(text) > 1 and text[0] == "-" and text[1].isdigit():
        return [token]

    parts = [part for part in text.split("-") if part]
    if len(parts) < 2:
        return [token]

    last = len(parts) - 1
    result: List[Token] = []
    for index, part in enumerate(parts):
        is_last = index == last
        result.append(
            Token(
                text=part if is_last else part + "-",
                type=TokenType.WORD,
                orp_index=calculate_orp_index(part),
                syllable_count=count_syllables(part),
                frequency_score=frequency_score(part),
                complexity_multiplier=complexity_multiplier(part),
                is_clause_boundary=token.is_clause_boundary if is_last else False,
                is_dialogue=token.is_dialogue,
            )
        )
    return result


def nearest_word_index(tokens: Sequence[Token], from_index: int) -> int:
    """Resolve a position to the nearest WORD token.

    The index is clamped into range first. The search moves outward one
    step at a time, checking ahead before behind. Returns 0 when the
    list is empty or holds no words.
    """
    if not tokens:
        return 0
    last = len(tokens) - 1
    clamped = min(last, max(0, from_index))
    if tokens[clamped].type == TokenType.WORD:
        return clamped

    for offset in range(1, last + 1):
        forward = clamped + offset
        if forward <= last and tokens[forward].type == TokenType.WORD:
            return forward
        backward = clamped - offset
        if backward >= 0 and tokens[backward].type == TokenType.WORD:
            return backward
    return 0


def _single_char_in(token: Optional[Token], chars: frozenset) -> bool:
    return (
        token is not None
        and token.type == TokenType.PUNCTUATION
        and len(token.text) == 1
        and token.text in chars
    )


def should_insert_space_before(token: Token, prev_token: Optional[Token], index_in_paragraph: int) -> bool:
    """Decide whether rendered prose needs a space before this token.

    RULES:
    - Never at the start of a paragraph
    - Never before a closing mark (. , ; : ! ? closing quotes/brackets, dashes, …)
    - Never after an opening quote or bracket
    - Never after a dash, unless the dash opened the paragraph
    """
    if index_in_paragraph == 0:
        return False
    if _single_char_in(token, _CLOSING_DISPLAY_CHARS):
        return False
    if _single_char_in(prev_token, _OPENING_DISPLAY_CHARS):
        return False
    if _single_char_in(prev_token, _DASH_JOINERS) and index_in_paragraph >= 2:
        return False
    return True


def join_tokens_for_display(tokens: Sequence[Token]) -> str:
    """Render tokens as readable prose on a single line.

    Break tokens restart the paragraph counter and emit nothing; callers
    that want visible paragraphs split the list on breaks first.
    """
    parts: List[str] = []
    index_in_paragraph = 0
    prev: Optional[Token] = None

    for token in tokens:
        if token.is_break:
            index_in_paragraph = 0
            prev = None
            continue
        if should_insert_space_before(token, prev, index_in_paragraph):
            parts.append(" ")
        parts.append(token.text)
        prev = token
        index_in_paragraph += 1

    return "".join(parts)
