"""SRT cue exporter: one subtitle cue per displayed word frame.

WHY: Any video player can play an SRT file over a blank clip, which
makes a paced chapter easy to preview or record without a reader app.

HOW: Frame start offsets are accumulated from durations. Every word
frame becomes a cue from its start to its start plus duration; break
and blink frames only advance the clock.

RULES:
- Cue indices are 1-based and contiguous
- Timestamps are HH:MM:SS,mmm computed from integer milliseconds
- Cues never overlap because frames are consecutive
- Output suffix: "-rsvp.srt"
- Media type: "application/x-subrip"
"""

from __future__ import annotations

from typing import List

from rsvp_pacer.core.models import ReadingTimeline
from rsvp_pacer.exporters.base import (
    FRAME_KIND_WORD,
    BaseExporter,
    ExportOutput,
    frame_kind,
    frame_offsets,
)


def ms_to_srt_time(ms: int) -> str:
    """Convert milliseconds to SRT timestamp format: HH:MM:SS,mmm"""
    ms = max(0, int(ms))
    hours, rest = divmod(ms, 3600000)
    minutes, rest = divmod(rest, 60000)
    secs, millis = divmod(rest, 1000)
    return "{:02d}:{:02d}:{:02d},{:03d}".format(hours, minutes, secs, millis)


def generate_srt(timeline: ReadingTimeline) -> str:
    lines: List[str] = []
    cue = 0
    for frame, start in zip(timeline.frames, frame_offsets(timeline.frames)):
        if frame_kind(frame) != FRAME_KIND_WORD:
            continue
        cue += 1
        lines.append(str(cue))
        lines.append("{} --> {}".format(ms_to_srt_time(start), ms_to_srt_time(start + frame.duration_ms)))
        lines.append(frame.text)
        lines.append("")
    return "\n".join(lines)


class SrtCueExporter(BaseExporter):

    @property
    def name(self) -> str:
        return "SRT cues"

    def export(self, timeline: ReadingTimeline) -> List[ExportOutput]:
        return [
            ExportOutput(
                suffix="-rsvp.srt",
                content=generate_srt(timeline),
                media_type="application/x-subrip",
            )
        ]
