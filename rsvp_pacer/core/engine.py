"""Pacing engine: token stream → timed reading frames.

WHY: Comprehension at high speed depends less on the average rate than
on how time is distributed. Function words can share a frame, long or
rare words need longer, punctuation needs a breath, and the cadence
must not jitter. This module turns annotated tokens into frames that
follow those rules.

HOW: generate_frames() expands hyphenated words, walks the stream with a
cursor, and for each position either emits a pause-only frame (for a
paragraph or page break) or builds a reading unit:
  pending opening punctuation + one word + optional second word
  + trailing closing punctuation
Each unit's duration combines the per-word difficulty model and the
punctuation pause table (core.timing), then passes through flow shaping
and rhythm smoothing (core.rhythm). Session ramps and blink separation
run over the finished list.

RULES:
- Deterministic: the same tokens, start index, and config always give
  the same frames
- Never raises; empty input or no words after start_index → []
- Every frame except blink frames lasts at least 40 ms
- original_token_index always indexes the caller's (unexpanded) list
- The caller's tokens are never modified; all state is per call
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Sequence

from rsvp_pacer.core.linguistics import clause_pause_factor, is_coordinating_conjunction
from rsvp_pacer.core.models import Frame, RsvpConfig, Token, TokenType
from rsvp_pacer.core.punctuation import (
    OPENING_CHARS,
    QUOTE_OR_BRACKET_CHARS,
    is_hard_boundary,
    is_hard_boundary_punctuation,
)
from rsvp_pacer.core.rhythm import FlowState, RhythmState, apply_blink_separation, apply_session_ramps
from rsvp_pacer.core.text import is_sentence_ending_punctuation, split_hyphenated_token
from rsvp_pacer.core.timing import (
    DEFAULT_CLAUSE_PAUSE_FACTOR,
    DIALOGUE_ENTRY_BOOST,
    GLUE_WORDS,
    MIN_PAGE_BREAK_MS,
    MIN_PARAGRAPH_BREAK_MS,
    BoundaryBefore,
    clamp_frame_ms,
    emphasis_multiplier,
    frame_difficulty,
    multi_word_penalty,
    page_break_base_pause_ms,
    pause_scale,
    punctuation_pause_ms,
    speaker_tag_multiplier,
    speed_strength,
    start_boost_multiplier,
    terminal_word_multiplier,
    transition_hold_ms,
    word_duration_ms,
    word_floor_ms,
)

logger = logging.getLogger(__name__)

PAGE_BREAK_MARKER = "• • •"
PARAGRAPH_BREAK_MARKER = " "


class ExpandedToken(NamedTuple):
    """A display token plus the index of the caller's token it came from."""

    token: Token
    original_index: int


class ContextSnapshot(NamedTuple):
    parenthetical_depth: int
    in_dialogue: bool


@dataclass
class ContextState:
    """Running context across the frame loop.

    Mutated only through consume(); snapshot() is taken before each
    unit so duration rules can ask what the context was before it.
    """

    parenthetical_depth: int = 0
    straight_quote_open: bool = False
    in_dialogue: bool = False

    def snapshot(self) -> ContextSnapshot:
        return ContextSnapshot(self.parenthetical_depth, self.in_dialogue)

    def consume(self, token: Token) -> None:
        if token.type == TokenType.WORD:
            if token.is_dialogue:
                self.in_dialogue = True
            return
        if token.type != TokenType.PUNCTUATION or not token.first_char:
            return

        ch = token.first_char
        if ch in ("(", "[", "{"):
            self.parenthetical_depth += 1
        elif ch in (")", "]", "}"):
            self.parenthetical_depth = max(0, self.parenthetical_depth - 1)
        elif ch == '"':
            self.straight_quote_open = not self.straight_quote_open
        self.in_dialogue = token.is_dialogue

    def is_opening(self, token: Token) -> bool:
        """True if the mark opens something; a straight quote opens only when none is open."""
        ch = token.first_char
        if not ch:
            return False
        if ch == '"':
            return not self.straight_quote_open
        return ch in OPENING_CHARS


class UnitBuild(NamedTuple):
    tokens: List[Token]
    original_index: int
    next_cursor: int


def expand_tokens(tokens: Sequence[Token]) -> List[ExpandedToken]:
    """Split hyphenated words, remembering each part's source index."""
    expanded: List[ExpandedToken] = []
    for index, token in enumerate(tokens):
        for part in split_hyphenated_token(token):
            expanded.append(ExpandedToken(part, index))
    return expanded


def find_first_word_cursor(expanded: Sequence[ExpandedToken], start: int) -> int:
    """Index of the first word at or after start, or len(expanded)."""
    cursor = max(0, start)
    while cursor < len(expanded) and expanded[cursor].token.type != TokenType.WORD:
        cursor += 1
    return cursor


def find_prev_word(expanded: Sequence[ExpandedToken], before_index: int) -> Optional[Token]:
    for cursor in range(min(before_index, len(expanded)) - 1, -1, -1):
        if expanded[cursor].token.type == TokenType.WORD:
            return expanded[cursor].token
    return None


def boundary_before(expanded: Sequence[ExpandedToken], word_cursor: int) -> BoundaryBefore:
    """Find the strongest break right before the word at word_cursor.

    Walks backward over quotes and brackets; a break token gives PAGE or
    PARAGRAPH, a hard-boundary mark gives SENTENCE, and anything else
    (a word, a comma) gives NONE.
    """
    if word_cursor <= 0 or word_cursor >= len(expanded):
        return BoundaryBefore.NONE
    word = expanded[word_cursor].token

    cursor = word_cursor - 1
    while cursor >= 0:
        token = expanded[cursor].token
        if token.type == TokenType.PAGE_BREAK:
            return BoundaryBefore.PAGE
        if token.type == TokenType.PARAGRAPH_BREAK:
            return BoundaryBefore.PARAGRAPH
        if token.type == TokenType.WORD:
            return BoundaryBefore.NONE
        if token.first_char in QUOTE_OR_BRACKET_CHARS:
            cursor -= 1
            continue
        prev_word = find_prev_word(expanded, cursor)
        if is_hard_boundary_punctuation(token, prev_word, word):
            return BoundaryBefore.SENTENCE
        return BoundaryBefore.NONE
    return BoundaryBefore.NONE


def is_phrase_chunk_candidate(prev: Token, next_word: Token) -> bool:
    """True if two words may share a frame.

    RULES:
    - Never across a clause starter or after a coordinating conjunction
    - Allowed when short (<= 4 then <= 7 chars) and either one is a
      glue word or both are common (frequency >= 0.7)
    """
    prev_lower = prev.text.lower()
    next_lower = next_word.text.lower()
    if prev.is_clause_boundary or next_word.is_clause_boundary:
        return False
    if is_coordinating_conjunction(prev_lower):
        return False

    glue = prev_lower in GLUE_WORDS or next_lower in GLUE_WORDS
    both_short = len(prev.text) <= 4 and len(next_word.text) <= 7
    both_common = prev.frequency_score >= 0.7 and next_word.frequency_score >= 0.7
    return (glue and both_short) or (both_short and both_common)


class PacingEngine:
    """Builds timed frames from a token stream.

    Stateless between calls; one instance can serve every thread.
    """

    def generate_frames(self, tokens: Sequence[Token], start_index: int, config: RsvpConfig) -> List[Frame]:
        """Generate frames starting at the first word at or after start_index.

        HOW:
        1. Expand hyphenated words; align the cursor on start_index
        2. Loop: breaks → pause frames; otherwise build a unit, time
           it, and skip stray trailing punctuation
        3. Apply session ramps, then blink separation
        """
        if not tokens:
            return []

        expanded = expand_tokens(tokens)
        cursor = next(
            (i for i, e in enumerate(expanded) if e.original_index >= start_index),
            len(expanded) - 1,
        )
        cursor = find_first_word_cursor(expanded, min(cursor, len(expanded) - 1))
        if cursor >= len(expanded):
            return []

        ms_per_word = float(max(1, config.tempo_ms_per_word))
        scale = pause_scale(ms_per_word, config)
        state = ContextState()
        rhythm = RhythmState(config.smoothing_alpha, config.max_speedup_factor, config.max_slowdown_factor)
        flow = FlowState()
        frames: List[Frame] = []

        while cursor < len(expanded):
            current = expanded[cursor].token
            if current.is_break:
                next_word_cursor = find_first_word_cursor(expanded, cursor + 1)
                if next_word_cursor >= len(expanded):
                    break
                frames.append(
                    Frame(
                        tokens=(_break_marker(current.type),),
                        duration_ms=_break_duration_ms(current, config, scale),
                        original_token_index=expanded[next_word_cursor].original_index,
                    )
                )
                rhythm.reset()
                flow.reset()
                cursor += 1
                continue

            context_before = state.snapshot()
            word_cursor = find_first_word_cursor(expanded, cursor)
            if word_cursor >= len(expanded):
                break
            boundary = boundary_before(expanded, word_cursor)

            unit = self._build_unit(expanded, cursor, config, state)
            next_cursor = unit.next_cursor
            prev_word = find_prev_word(expanded, cursor)
            next_token = expanded[next_cursor].token if next_cursor < len(expanded) else None
            following_cursor = find_first_word_cursor(expanded, next_cursor)
            next_word = expanded[following_cursor].token if following_cursor < len(expanded) else None

            duration = self._unit_duration_ms(
                unit.tokens, config, context_before, rhythm, flow,
                prev_word=prev_word,
                next_token=next_token,
                next_word=next_word,
                boundary=boundary,
            )
            frames.append(Frame(tokens=tuple(unit.tokens), duration_ms=duration, original_token_index=unit.original_index))

            cursor = next_cursor
            while cursor < len(expanded):
                token = expanded[cursor].token
                if token.type == TokenType.WORD or token.is_break:
                    break
                if token.type == TokenType.PUNCTUATION and state.is_opening(token):
                    break
                state.consume(token)
                cursor += 1

        frames = apply_session_ramps(frames, config)
        frames = apply_blink_separation(frames, config)
        logger.debug("Generated %d frames from %d tokens (start %d)", len(frames), len(tokens), start_index)
        return frames

    def _build_unit(
        self,
        expanded: Sequence[ExpandedToken],
        start_cursor: int,
        config: RsvpConfig,
        state: ContextState,
    ) -> UnitBuild:
        unit: List[Token] = []
        cursor = min(max(0, start_cursor), len(expanded) - 1)

        while cursor < len(expanded):
            token = expanded[cursor].token
            if token.type != TokenType.PUNCTUATION or not state.is_opening(token):
                break
            unit.append(token)
            state.consume(token)
            cursor += 1

        cursor = find_first_word_cursor(expanded, cursor)
        if cursor >= len(expanded):
            return UnitBuild(unit, start_cursor, cursor)
        first = expanded[cursor]
        unit.append(first.token)
        state.consume(first.token)
        cursor += 1

        if config.enable_phrase_chunking and cursor < len(expanded):
            candidate = expanded[cursor].token
            if candidate.type == TokenType.WORD:
                combined_chars = sum(len(t.text) for t in unit) + len(candidate.text)
                if combined_chars <= config.max_chars_per_unit and is_phrase_chunk_candidate(first.token, candidate):
                    unit.append(candidate)
                    state.consume(candidate)
                    cursor += 1

        # Closers (including those after a sentence end) stay with this unit;
        # anything that opens starts the next one.
        while cursor < len(expanded):
            token = expanded[cursor].token
            if token.type != TokenType.PUNCTUATION or state.is_opening(token):
                break
            unit.append(token)
            state.consume(token)
            cursor += 1

        return UnitBuild(unit, first.original_index, cursor)

    def _unit_duration_ms(
        self,
        frame_tokens: Sequence[Token],
        config: RsvpConfig,
        context_before: ContextSnapshot,
        rhythm: RhythmState,
        flow: FlowState,
        prev_word: Optional[Token],
        next_token: Optional[Token],
        next_word: Optional[Token],
        boundary: BoundaryBefore,
    ) -> int:
        ms_per_word = float(max(1, config.tempo_ms_per_word))
        strength = speed_strength(ms_per_word)
        scale = pause_scale(ms_per_word, config)
        words = [t for t in frame_tokens if t.type == TokenType.WORD]
        first_word_index = next((i for i, t in enumerate(frame_tokens) if t.type == TokenType.WORD), -1)

        start_boost = start_boost_multiplier(ms_per_word, boundary)
        clause_strength = min(2.0, max(0.0, (config.clause_pause_factor - 1.0) / (DEFAULT_CLAUSE_PAUSE_FACTOR - 1.0)))
        dialogue_entry = 1.0 + DIALOGUE_ENTRY_BOOST * strength
        speaker_tag = speaker_tag_multiplier(words, prev_word, next_word, config)

        duration = 0.0
        depth = context_before.parenthetical_depth
        in_dialogue = context_before.in_dialogue

        for index, token in enumerate(frame_tokens):
            if token.type == TokenType.PUNCTUATION:
                ch = token.first_char
                if ch in ("(", "[", "{"):
                    depth += 1
                elif ch in (")", "]", "}"):
                    depth = max(0, depth - 1)
                in_dialogue = token.is_dialogue
                continue
            if token.type != TokenType.WORD:
                continue

            is_first = index == first_word_index
            multiplier = 1.0
            if config.use_dialogue_detection and in_dialogue:
                multiplier *= config.dialogue_multiplier
            if depth > 0:
                multiplier *= config.parenthetical_multiplier
            if is_first:
                multiplier *= start_boost

            if config.use_clause_pausing:
                following_text = next(
                    (t.text for t in frame_tokens[index + 1:] if t.type == TokenType.WORD),
                    next_word.text if next_word is not None else None,
                )
                raw = clause_pause_factor(token.text, following_text)
                multiplier *= 1.0 + (raw - 1.0) * strength * clause_strength

            multiplier *= terminal_word_multiplier(index, token, frame_tokens, next_token, strength)
            multiplier *= emphasis_multiplier(token, is_first, boundary, strength)
            if config.use_dialogue_detection and not context_before.in_dialogue and is_first and token.is_dialogue:
                multiplier *= dialogue_entry
            multiplier *= speaker_tag

            word_ms = word_duration_ms(token, ms_per_word, config) * multiplier
            duration += max(word_ms, float(word_floor_ms(token, config)))
            if token.pause_after_ms > 0:
                duration += token.pause_after_ms * scale

        duration += transition_hold_ms(frame_tokens, words[0] if words else None, next_word, strength)
        duration *= multi_word_penalty(len(words))

        for index, token in enumerate(frame_tokens):
            if token.type != TokenType.PUNCTUATION:
                continue
            prev_in_frame = frame_tokens[index - 1] if index > 0 else None
            next_in_frame = frame_tokens[index + 1] if index + 1 < len(frame_tokens) else None
            if _should_skip_punctuation_pause(token, index, first_word_index, prev_in_frame, next_in_frame):
                continue
            prev_word_in_frame = next(
                (t for t in reversed(frame_tokens[:index]) if t.type == TokenType.WORD), None
            )
            next_word_in_frame = next(
                (t for t in frame_tokens[index + 1:] if t.type == TokenType.WORD), None
            )
            duration += punctuation_pause_ms(
                token,
                prev_word_in_frame if prev_word_in_frame is not None else prev_word,
                next_word_in_frame if next_word_in_frame is not None else next_token,
                ms_per_word,
                config,
                scale,
            )

        hard_boundary = is_hard_boundary(frame_tokens, next_token)
        duration *= flow.apply(frame_difficulty(words), strength, hard_boundary)
        smoothed = rhythm.apply(duration, hard_boundary)
        return clamp_frame_ms(smoothed)


def _should_skip_punctuation_pause(
    token: Token,
    index: int,
    first_word_index: int,
    prev_token: Optional[Token],
    next_token: Optional[Token],
) -> bool:
    """Suppress double-counted pauses inside one unit.

    RULES:
    - Opening marks before the first word never pause
    - A quote or bracket next to other punctuation ("!" + closing quote)
      does not pause on its own
    - A sentence end right after another sentence end ("?!") does not
      pause twice
    """
    ch = token.first_char
    if not ch:
        return True
    if index < first_word_index and (ch == '"' or ch in OPENING_CHARS):
        return True

    prev_is_punct = prev_token is not None and prev_token.type == TokenType.PUNCTUATION
    next_is_punct = next_token is not None and next_token.type == TokenType.PUNCTUATION
    if ch in QUOTE_OR_BRACKET_CHARS and (prev_is_punct or next_is_punct):
        return True

    prev_ch = prev_token.first_char if prev_token is not None else ""
    return is_sentence_ending_punctuation(ch) and is_sentence_ending_punctuation(prev_ch)


def _break_marker(kind: TokenType) -> Token:
    text = PAGE_BREAK_MARKER if kind == TokenType.PAGE_BREAK else PARAGRAPH_BREAK_MARKER
    return Token(text=text, type=TokenType.PUNCTUATION)


def _break_duration_ms(token: Token, config: RsvpConfig, scale: float) -> int:
    """Pause-only frame length for a paragraph or page break."""
    if token.type == TokenType.PAGE_BREAK:
        base = max(page_break_base_pause_ms(config) * scale, MIN_PAGE_BREAK_MS)
    else:
        base = max(config.paragraph_pause_ms * scale, MIN_PARAGRAPH_BREAK_MS)
    extra = max(0, token.pause_after_ms) * scale
    return clamp_frame_ms(base + extra)


def generate_frames(tokens: Sequence[Token], start_index: int, config: RsvpConfig) -> List[Frame]:
    """Module-level shortcut for PacingEngine().generate_frames()."""
    return PacingEngine().generate_frames(tokens, start_index, config)
