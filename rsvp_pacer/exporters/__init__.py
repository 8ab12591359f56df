"""Exporter registry.

WHY: The CLI and API look exporters up by key. A central dict keeps that
lookup in one place: create the exporter class, import it here, add one
line.

HOW: EXPORTERS maps string keys to exporter *classes* (not instances).
Callers instantiate as needed: ``exporter = EXPORTERS["srt_cues"]()``.

RULES:
- Keys are snake_case identifiers (used in CLI flags and URL paths)
- Values are BaseExporter subclasses
- Every exporter listed here must be importable without side effects
"""

from __future__ import annotations

from typing import Dict, Type

from rsvp_pacer.exporters.base import BaseExporter
from rsvp_pacer.exporters.plain_text import PlainTextExporter
from rsvp_pacer.exporters.srt_cues import SrtCueExporter
from rsvp_pacer.exporters.timeline_json import TimelineJsonExporter

EXPORTERS: Dict[str, Type[BaseExporter]] = {
    "timeline_json": TimelineJsonExporter,
    "plain_text": PlainTextExporter,
    "srt_cues": SrtCueExporter,
}
