"""Abstract base exporter and output container.

WHY: A paced chapter can be handed to other tools as a JSON timeline, a
readable text file, or subtitle cues. The CLI and the HTTP API should
drive all of them through one interface and never special-case a format.

HOW: BaseExporter is an ABC with a ``name`` property and an ``export()``
method. ExportOutput bundles a file suffix with its content and MIME
type. frame_kind() and frame_offsets() are shared helpers for exporters
that walk the frame list on a time axis.

RULES:
- Subclasses MUST implement ``name`` (human-readable) and ``export()``
- ``export()`` returns a list; single-file exporters return one item
- ``suffix`` starts with a hyphen, e.g. ``"-timeline.json"``
- The caller prepends the source filename stem
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Union

from rsvp_pacer.core.models import Frame, ReadingTimeline
from rsvp_pacer.core.timing import MIN_FRAME_MS

FRAME_KIND_WORD = "word"
FRAME_KIND_BREAK = "break"
FRAME_KIND_BLINK = "blink"


@dataclass
class ExportOutput:
    """One output file produced by an exporter.

    Attributes:
        suffix: Appended to the source stem,
                e.g. ``"-timeline.json"`` → ``"chapter-timeline.json"``.
        content: File content as a string (JSON, SRT, plain text).
        media_type: MIME type, e.g. ``"application/json"``.
    """

    suffix: str
    content: Union[str, bytes]
    media_type: str


def frame_kind(frame: Frame) -> str:
    """Classify a frame as "word", "break" or "blink".

    Blink frames are the only wordless frames shorter than the frame
    floor; paragraph and page pauses are always longer.
    """
    if frame.has_word:
        return FRAME_KIND_WORD
    if frame.duration_ms < MIN_FRAME_MS:
        return FRAME_KIND_BLINK
    return FRAME_KIND_BREAK


def frame_offsets(frames: List[Frame]) -> List[int]:
    """Start time of every frame in ms, relative to the first frame."""
    offsets: List[int] = []
    elapsed = 0
    for frame in frames:
        offsets.append(elapsed)
        elapsed += frame.duration_ms
    return offsets


class BaseExporter(ABC):
    """Abstract base for all timeline exporters.

    To add a new export format:
    1. Create a new file in exporters/
    2. Subclass BaseExporter
    3. Implement export() and name
    4. Register it in EXPORTERS in exporters/__init__.py
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable format name, e.g. 'Frame timeline JSON'."""

    @abstractmethod
    def export(self, timeline: ReadingTimeline) -> List[ExportOutput]:
        """Render a paced chapter into one or more output files.

        Args:
            timeline: Tokens, frames, and pacing metadata for one chapter.

        Returns:
            List of ExportOutput objects.
        """
