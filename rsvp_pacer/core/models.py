"""Data model for chapters, tokens, pacing configuration, and frames.

WHY: The tokenizer, engine, exporters, caches, and HTTP layer all pass
the same handful of values around. A single, well-typed set of
dataclasses keeps those contracts explicit and lets the engine treat
its inputs as read-only.

HOW: Five groups of types:
  Chapter / ChapterLink — input text supplied by a book source
  TokenType / Token     — one word, punctuation mark, or break marker
  RsvpConfig / BlinkMode — immutable pacing configuration
  Frame / FrameSet      — engine output units
  ReadingTimeline       — everything an exporter needs for one chapter

RULES:
- Token, RsvpConfig, and Frame are frozen; derive copies with
  dataclasses.replace()
- Break tokens use sentinel text: "\\n" for paragraphs, "\\f" for pages
- RsvpConfig is hashable so it can key caches directly
- Every RsvpConfig field has a documented default; the engine clamps
  derived values instead of trusting the config
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

CONFIG_VERSION = 2
"""Shape version of RsvpConfig; bump when fields are added or renamed."""

PARAGRAPH_BREAK_TEXT = "\n"
PAGE_BREAK_TEXT = "\f"


class TokenType(str, enum.Enum):
    """Kind of a token in the reading stream.

    Inherits from str so values serialize cleanly to JSON.
    """

    WORD = "word"
    PUNCTUATION = "punctuation"
    PARAGRAPH_BREAK = "paragraph_break"
    PAGE_BREAK = "page_break"


class BlinkMode(str, enum.Enum):
    """How the engine inserts micro-blank frames between words at high speed."""

    OFF = "off"
    SUBTLE = "subtle"
    ADAPTIVE = "adaptive"


@dataclass(frozen=True)
class Token:
    """One word, punctuation mark, or structural break.

    WHY: The engine needs more than raw text to pace a word: its
    syllables, how common it is, whether it opens a clause, and whether
    it sits inside quoted speech. The tokenizer computes these once so
    the engine only reads them.

    RULES:
    - text is non-empty; break tokens use the sentinel texts above
    - orp_index is None for anything that is not a word
    - pause_after_ms is an author/structural hint, never negative
    - frequency_score is in [0, 1]; complexity_multiplier in [0.8, 1.6]
    - link_chapter_index is set when the token is part of an internal link
    """

    text: str
    type: TokenType
    orp_index: Optional[int] = None
    pause_after_ms: int = 0
    syllable_count: int = 1
    frequency_score: float = 0.5
    complexity_multiplier: float = 1.0
    is_clause_boundary: bool = False
    is_dialogue: bool = False
    link_chapter_index: Optional[int] = None

    @property
    def is_word(self) -> bool:
        return self.type == TokenType.WORD

    @property
    def is_punctuation(self) -> bool:
        return self.type == TokenType.PUNCTUATION

    @property
    def is_break(self) -> bool:
        return self.type in (TokenType.PARAGRAPH_BREAK, TokenType.PAGE_BREAK)

    @property
    def first_char(self) -> str:
        """First character of the text, or "" for an empty token."""
        return self.text[:1]


@dataclass(frozen=True)
class ChapterLink:
    """A character range in plain_text that links to another chapter."""

    start_char: int
    end_char: int
    target_chapter_index: int


@dataclass
class Chapter:
    """A chapter as supplied by a book source.

    RULES:
    - plain_text is what gets tokenized
    - html_content is optional and only used for structural cues and
      inline chapter links
    """

    index: int
    title: Optional[str]
    html_content: str
    plain_text: str
    links: List[ChapterLink] = field(default_factory=list)


@dataclass(frozen=True)
class RsvpConfig:
    """Immutable pacing configuration.

    WHY: Pacing has many independent knobs (tempo, floors, difficulty
    weights, pause table, smoothing bounds, ramps). Grouping them into
    one value type makes a configuration easy to persist, compare, and
    use as a cache key.

    HOW: Fields are grouped the way the engine consumes them. The
    trailing legacy block is kept so older stored preferences round-trip;
    of those, only use_clause_pausing, use_dialogue_detection, and
    clause_pause_factor still influence the engine.

    RULES:
    - tempo_ms_per_word is the primary speed control; WPM is derived
    - Pause values are "breath" values shaped by the pause-scale law
    - Multipliers below 1.0 mean "faster"
    """

    # Tempo: milliseconds for a baseline, easy word.
    tempo_ms_per_word: int = 115

    # Word timing floors.
    min_word_ms: int = 45
    long_word_min_ms: int = 120
    long_word_chars: int = 10

    # Difficulty model.
    syllable_extra_ms: int = 16
    rarity_extra_max_ms: int = 65
    complexity_strength: float = 0.65

    # Length curve.
    length_strength: float = 0.9
    length_exponent: float = 1.35

    # Chunking into reading units.
    enable_phrase_chunking: bool = True
    max_words_per_unit: int = 2
    max_chars_per_unit: int = 14

    # Punctuation pauses (ms).
    comma_pause_ms: int = 95
    semicolon_pause_ms: int = 165
    colon_pause_ms: int = 150
    dash_pause_ms: int = 155
    parentheses_pause_ms: int = 120
    quote_pause_ms: int = 60
    sentence_end_pause_ms: int = 200
    paragraph_pause_ms: int = 240

    # Pause scaling at high speed.
    pause_scale_exponent: float = 0.6
    min_pause_scale: float = 0.6

    # Context shaping.
    parenthetical_multiplier: float = 1.12
    dialogue_multiplier: float = 0.97

    # Rhythm shaping.
    smoothing_alpha: float = 0.35
    max_speedup_factor: float = 1.25
    max_slowdown_factor: float = 1.45

    # ORP and session ramps.
    orp_enabled: bool = True
    start_delay_ms: int = 250
    end_delay_ms: int = 350
    ramp_up_frames: int = 5
    ramp_down_frames: int = 3

    blink_mode: BlinkMode = BlinkMode.OFF

    # Legacy / compat fields.
    base_wpm: int = 500
    words_per_frame: int = 1
    max_chunk_length: int = 10
    punctuation_pause_factor: float = 1.6
    long_word_multiplier: float = 1.2
    use_adaptive_timing: bool = True
    use_clause_pausing: bool = True
    use_dialogue_detection: bool = True
    complex_word_threshold: float = 1.3
    clause_pause_factor: float = 1.25


@dataclass(frozen=True)
class Frame:
    """One timed display unit produced by the engine.

    RULES:
    - tokens holds the words and punctuation shown together; pause-only
      frames hold a single marker punctuation token
    - duration_ms is at least 40 ms for every non-blink frame
    - original_token_index points into the caller's (unexpanded) token
      list and is used to resume a reading position
    """

    tokens: Tuple[Token, ...]
    duration_ms: int
    original_token_index: int = 0

    @property
    def words(self) -> List[Token]:
        return [t for t in self.tokens if t.type == TokenType.WORD]

    @property
    def has_word(self) -> bool:
        return any(t.type == TokenType.WORD for t in self.tokens)

    @property
    def text(self) -> str:
        """Display text of the frame: tokens joined without spaces before punctuation."""
        parts: List[str] = []
        for token in self.tokens:
            if parts and token.type == TokenType.WORD and parts[-1] not in ("(", "[", "{", "“", "‘", '"'):
                parts.append(" ")
            parts.append(token.text)
        return "".join(parts)


@dataclass
class FrameSet:
    """Frames for a whole chapter plus the tempo they were built with."""

    frames: List[Frame]
    base_tempo_ms: int


@dataclass
class ReadingTimeline:
    """Everything an exporter needs to describe one paced chapter.

    RULES:
    - frames are already sliced to the requested start position
    - tokens are the full chapter token list (frames index into it)
    - estimated_wpm is the steady-state estimate for the config used
    """

    title: str
    chapter_index: int
    tokens: List[Token]
    frames: List[Frame]
    tempo_ms_per_word: int
    estimated_wpm: int

    @property
    def total_duration_ms(self) -> int:
        return sum(f.duration_ms for f in self.frames)

    @property
    def word_count(self) -> int:
        return sum(1 for t in self.tokens if t.type == TokenType.WORD)
