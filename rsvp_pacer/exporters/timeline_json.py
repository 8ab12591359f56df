"""Frame timeline JSON exporter.

WHY: Players, tests, and analysis notebooks want the paced frames as
data: when each frame starts, how long it stays, what it shows, and
where the pivot letter sits.

HOW: Walks the frames with running start offsets, classifies each as
word/break/blink, computes the ORP of the frame's first word, and wraps
everything with chapter totals. The document is validated with
jsonschema against frame_timeline.schema.json before it is returned.

RULES:
- start_ms of frame i is the sum of durations of frames 0..i-1
- orp_index is null for frames without a word
- token_index is the frame's original_token_index
- Output suffix: "-timeline.json"
- Validate before returning; raise on failure
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import jsonschema

from rsvp_pacer.core.models import ReadingTimeline
from rsvp_pacer.core.orp import calculate_orp_index
from rsvp_pacer.exporters.base import BaseExporter, ExportOutput, frame_kind, frame_offsets

TIMELINE_VERSION = 1

_SCHEMA_PATH = Path(__file__).resolve().parent / "frame_timeline.schema.json"

_CACHED_SCHEMA: Optional[Dict[str, Any]] = None


def _get_schema() -> Dict[str, Any]:
    """Load and cache the frame timeline schema."""
    global _CACHED_SCHEMA
    if _CACHED_SCHEMA is None:
        with open(_SCHEMA_PATH, encoding="utf-8") as f:
            _CACHED_SCHEMA = json.load(f)
    return _CACHED_SCHEMA


def build_timeline_document(timeline: ReadingTimeline) -> Dict[str, Any]:
    """The timeline as a plain dict, before validation."""
    frames: List[Dict[str, Any]] = []
    for index, (frame, start_ms) in enumerate(zip(timeline.frames, frame_offsets(timeline.frames))):
        words = frame.words
        frames.append({
            "index": index,
            "start_ms": start_ms,
            "duration_ms": frame.duration_ms,
            "kind": frame_kind(frame),
            "text": frame.text,
            "orp_index": calculate_orp_index(words[0].text) if words else None,
            "token_index": frame.original_token_index,
        })

    return {
        "version": TIMELINE_VERSION,
        "title": timeline.title,
        "chapter_index": timeline.chapter_index,
        "tempo_ms_per_word": timeline.tempo_ms_per_word,
        "estimated_wpm": timeline.estimated_wpm,
        "word_count": timeline.word_count,
        "frame_count": len(frames),
        "total_duration_ms": timeline.total_duration_ms,
        "frames": frames,
    }


class TimelineJsonExporter(BaseExporter):
    """Schema-validated JSON list of timed frames."""

    @property
    def name(self) -> str:
        return "Frame timeline JSON"

    def export(self, timeline: ReadingTimeline) -> List[ExportOutput]:
        """Render the frames as a JSON timeline.

        Raises:
            jsonschema.ValidationError: If the document does not conform
                to the frame timeline schema.
        """
        document = build_timeline_document(timeline)
        jsonschema.validate(instance=document, schema=_get_schema())

        return [
            ExportOutput(
                suffix="-timeline.json",
                content=json.dumps(document, indent=2, ensure_ascii=False),
                media_type="application/json",
            )
        ]
