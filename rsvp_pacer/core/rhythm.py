"""Temporal shaping: rhythm smoothing, flow, session ramps, and blink frames.

WHY: Raw unit durations jump around ("a" then "extraordinarily"), which
makes fast reading feel jittery. Readers also need a moment to lock on
when a session starts and a gentle landing when it ends, and at very
high speed consecutive words blur together without a tiny blank.

HOW:
  RhythmState — exponential moving average of durations with a clamp
    on how fast the cadence may speed up or slow down
  FlowState — tracks average difficulty and returns a gentle multiplier
    (slower when text gets harder than it has been)
  apply_session_ramps() — stretches the first and last few frames
  apply_blink_separation() — borrows 16-22 ms from eligible word frames
    and inserts a blank frame carrying exactly that time

RULES:
- Both smoothers reset at hard boundaries and at paragraph/page breaks
- Ramps and blinks return new lists; input frames are never mutated
- Blink separation conserves the total duration exactly
- Blink frames are the only frames allowed below 40 ms
"""

from __future__ import annotations

import math
from dataclasses import replace
from typing import List, Optional, Sequence

from rsvp_pacer.core.models import BlinkMode, Frame, RsvpConfig, Token, TokenType
from rsvp_pacer.core.punctuation import is_hard_boundary
from rsvp_pacer.core.text import is_mid_sentence_punctuation
from rsvp_pacer.core.timing import (
    MIN_FRAME_MS,
    clamp_frame_ms,
    should_prefer_hold,
    speed_strength,
    word_ease,
    word_floor_ms,
)

FLOW_EMA_ALPHA = 0.22
FLOW_MAX_BOOST = 0.08
FLOW_MAX_SLOWDOWN = 0.10
FLOW_STRENGTH = 0.16

MIN_BLINK_MS = 16
MAX_BLINK_MS = 22
BLINK_EXTRA_MS = 6.0
BLINK_START_STRENGTH = 0.35
ADAPTIVE_EASE_THRESHOLD = 0.7

RAMP_UP_START = 1.35
RAMP_DOWN_END = 1.25

BLINK_TEXT = " "


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class RhythmState:
    """Exponential smoothing of unit durations with jitter clamps.

    RULES:
    - alpha is clamped to [0, 1]; speed-up and slow-down factors to >= 1
    - On a boundary the raw value is returned and becomes the new average
    - The first value after a reset passes through unchanged
    - Otherwise the mixed value is clamped to
      [previous / max_speedup, previous × max_slowdown]
    """

    def __init__(self, smoothing_alpha: float, max_speedup_factor: float, max_slowdown_factor: float):
        self.smoothing_alpha = min(1.0, max(0.0, smoothing_alpha))
        self.max_speedup_factor = max(1.0, max_speedup_factor)
        self.max_slowdown_factor = max(1.0, max_slowdown_factor)
        self._ema: Optional[float] = None

    def apply(self, raw_ms: float, is_boundary: bool) -> float:
        if is_boundary or self._ema is None:
            self._ema = raw_ms
            return raw_ms

        prev = self._ema
        mixed = prev + self.smoothing_alpha * (raw_ms - prev)
        smoothed = min(prev * self.max_slowdown_factor, max(prev / self.max_speedup_factor, mixed))
        self._ema = smoothed
        return smoothed

    def reset(self) -> None:
        self._ema = None


class FlowState:
    """Difficulty tracker that eases the pace when text gets harder.

    The multiplier is 1 + (difficulty - average) × strength × speed,
    clamped to [1 - max_slowdown, 1 + max_boost]. Boundaries restart the
    average at the current difficulty and return a neutral 1.0.
    """

    def __init__(
        self,
        alpha: float = FLOW_EMA_ALPHA,
        max_boost: float = FLOW_MAX_BOOST,
        max_slowdown: float = FLOW_MAX_SLOWDOWN,
        strength: float = FLOW_STRENGTH,
    ):
        self.alpha = alpha
        self.max_boost = max_boost
        self.max_slowdown = max_slowdown
        self.strength = strength
        self._ema: Optional[float] = None

    def apply(self, difficulty: float, speed: float, is_boundary: bool) -> float:
        if is_boundary:
            self._ema = difficulty
            return 1.0

        prev = self._ema if self._ema is not None else difficulty
        delta = difficulty - prev
        multiplier = 1.0 + delta * self.strength * speed
        multiplier = min(1.0 + self.max_boost, max(1.0 - self.max_slowdown, multiplier))

        self._ema = prev + self.alpha * (difficulty - prev)
        return multiplier

    def reset(self) -> None:
        self._ema = None


def apply_session_ramps(frames: Sequence[Frame], config: RsvpConfig) -> List[Frame]:
    """Stretch the opening and closing frames and add start/end delays.

    HOW: The first min(ramp_up_frames, n // 2) frames are scaled from
    1.35 down toward 1.0; the last min(ramp_down_frames, n // 2) frames
    from 1.0 up toward 1.25. Scaled durations are truncated to whole
    milliseconds. The start delay lands on the first frame and the end
    delay on the last; negative delays count as zero and every result
    stays within the frame bounds.
    """
    result = list(frames)
    if not result:
        return result

    total = len(result)
    ramp_up = max(0, min(config.ramp_up_frames, total // 2))
    for i in range(ramp_up):
        progress = i / max(1, ramp_up)
        multiplier = RAMP_UP_START - (RAMP_UP_START - 1.0) * progress
        result[i] = replace(result[i], duration_ms=clamp_frame_ms(result[i].duration_ms * multiplier))

    result[0] = replace(result[0], duration_ms=clamp_frame_ms(result[0].duration_ms + max(0, config.start_delay_ms)))

    ramp_down = max(0, min(config.ramp_down_frames, total // 2))
    start = total - ramp_down
    for i in range(start, total):
        progress = (i - start) / max(1, ramp_down)
        multiplier = 1.0 + (RAMP_DOWN_END - 1.0) * progress
        result[i] = replace(result[i], duration_ms=clamp_frame_ms(result[i].duration_ms * multiplier))

    result[-1] = replace(result[-1], duration_ms=clamp_frame_ms(result[-1].duration_ms + max(0, config.end_delay_ms)))
    return result


def _first_word(tokens: Sequence[Token]) -> Optional[Token]:
    for token in tokens:
        if token.type == TokenType.WORD:
            return token
    return None


def _blink_punctuation_factor(tokens: Sequence[Token]) -> float:
    for token in tokens:
        if token.type == TokenType.PUNCTUATION and token.first_char and is_mid_sentence_punctuation(token.first_char):
            return 0.55
    return 1.0


def target_blink_ms(ms_per_word: float) -> Optional[int]:
    """Blink length for a tempo, or None when the tempo is too slow to blink."""
    strength = speed_strength(ms_per_word)
    if strength < BLINK_START_STRENGTH:
        return None
    normalized = min(1.0, max(0.0, (strength - BLINK_START_STRENGTH) / (1.0 - BLINK_START_STRENGTH)))
    eased = normalized * normalized
    return min(MAX_BLINK_MS, max(MIN_BLINK_MS, round_half_up(MIN_BLINK_MS + BLINK_EXTRA_MS * eased)))


def apply_blink_separation(frames: Sequence[Frame], config: RsvpConfig) -> List[Frame]:
    """Insert short blank frames between consecutive word frames at high speed.

    WHY: Above roughly 600 WPM successive words visually fuse. A blank of
    a couple of screen refreshes separates them without slowing the
    reader, because the blank's time is taken from the word before it.

    RULES:
    - Needs BlinkMode other than OFF, at least two frames, and speed
      strength >= 0.35
    - Only between two frames that both show a word; never across a hard
      boundary or inside a tight "hold" pair
    - SUBTLE weighs the blink by punctuation (0.55 with a mid-sentence
      mark); ADAPTIVE additionally requires an average ease >= 0.7
    - The donor frame keeps at least max(word floor, 40 ms); a blink
      shorter than 16 ms is not inserted
    """
    result = list(frames)
    if len(result) < 2 or config.blink_mode == BlinkMode.OFF:
        return result

    target = target_blink_ms(float(config.tempo_ms_per_word))
    if target is None:
        return result

    blink_token = Token(text=BLINK_TEXT, type=TokenType.PUNCTUATION)
    output: List[Frame] = []

    for i, frame in enumerate(result):
        next_frame = result[i + 1] if i + 1 < len(result) else None
        first_word = _first_word(frame.tokens)
        next_word = _first_word(next_frame.tokens) if next_frame is not None else None
        if first_word is None or next_word is None:
            output.append(frame)
            continue

        has_punctuation = any(t.type == TokenType.PUNCTUATION for t in frame.tokens)
        if not has_punctuation and should_prefer_hold(first_word, next_word):
            output.append(frame)
            continue
        if is_hard_boundary(frame.tokens, next_word):
            output.append(frame)
            continue

        floor = max(word_floor_ms(first_word, config), MIN_FRAME_MS)
        max_blink = max(0, frame.duration_ms - floor)
        punctuation_factor = _blink_punctuation_factor(frame.tokens)
        if config.blink_mode == BlinkMode.ADAPTIVE:
            ease = (word_ease(first_word) + word_ease(next_word)) * 0.5
            weight = punctuation_factor if ease >= ADAPTIVE_EASE_THRESHOLD else 0.0
        else:
            weight = punctuation_factor

        blink = min(round_half_up(target * weight), max_blink)
        if blink >= MIN_BLINK_MS:
            output.append(replace(frame, duration_ms=max(MIN_FRAME_MS, frame.duration_ms - blink)))
            output.append(
                Frame(
                    tokens=(blink_token,),
                    duration_ms=blink,
                    original_token_index=frame.original_token_index,
                )
            )
            continue
        output.append(frame)

    return output
