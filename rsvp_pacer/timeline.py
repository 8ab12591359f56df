"""Assemble a ReadingTimeline for exporters and API responses.

WHY: The CLI and the HTTP API both turn "chapter + config + start
position" into the same bundle of tokens, frames, and totals. Doing it
in one place keeps their numbers identical.

HOW: Frames either come straight from the engine for the requested
start, or from a whole-chapter FrameSet (the frame cache) that is
sliced at the first frame covering the start word.

RULES:
- start_index is clamped and resolved to the nearest word first
- Slicing keeps every frame whose original_token_index is at or after
  that word
- estimated_wpm always comes from estimate_wpm(config)
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from rsvp_pacer.core.engine import PacingEngine
from rsvp_pacer.core.models import Frame, ReadingTimeline, RsvpConfig, Token
from rsvp_pacer.core.pace import estimate_wpm
from rsvp_pacer.core.text import nearest_word_index


def slice_frames(frames: Sequence[Frame], tokens: Sequence[Token], start_index: int) -> List[Frame]:
    """Frames from a whole-chapter set that start at or after start_index."""
    if not frames or not tokens:
        return list(frames)
    word_index = nearest_word_index(tokens, start_index)
    for position, frame in enumerate(frames):
        if frame.original_token_index >= word_index:
            return list(frames[position:])
    return []


def build_timeline(
    tokens: List[Token],
    config: RsvpConfig,
    start_index: int = 0,
    title: Optional[str] = None,
    chapter_index: int = 0,
    frames: Optional[Sequence[Frame]] = None,
    engine: Optional[PacingEngine] = None,
) -> ReadingTimeline:
    """Bundle tokens and paced frames for one chapter.

    Args:
        frames: A whole-chapter frame list to slice; when omitted the
                engine paces from start_index directly.
    """
    if frames is None:
        paced = (engine or PacingEngine()).generate_frames(tokens, start_index, config)
    else:
        paced = slice_frames(frames, tokens, start_index)

    return ReadingTimeline(
        title=title or "",
        chapter_index=max(0, chapter_index),
        tokens=tokens,
        frames=paced,
        tempo_ms_per_word=max(1, config.tempo_ms_per_word),
        estimated_wpm=estimate_wpm(config),
    )
