"""Plain text reader exporter.

WHY: A quick way to check what the tokenizer kept: the chapter rendered
back as prose, one paragraph per block, with no timing at all.

HOW: Splits the full token list at paragraph and page breaks, renders
each run with join_tokens_for_display(), and separates runs with a blank
line.

RULES:
- Empty runs (consecutive breaks) produce nothing
- Page breaks render like paragraph breaks
- Output ends with a single newline; empty chapters give ""
- Output suffix: "-reader.txt"
- Media type: "text/plain"
"""

from __future__ import annotations

from typing import List, Sequence

from rsvp_pacer.core.models import ReadingTimeline, Token
from rsvp_pacer.core.text import join_tokens_for_display
from rsvp_pacer.exporters.base import BaseExporter, ExportOutput


def split_paragraphs(tokens: Sequence[Token]) -> List[List[Token]]:
    paragraphs: List[List[Token]] = []
    current: List[Token] = []
    for token in tokens:
        if token.is_break:
            if current:
                paragraphs.append(current)
            current = []
        else:
            current.append(token)
    if current:
        paragraphs.append(current)
    return paragraphs


def render_text(tokens: Sequence[Token]) -> str:
    rendered = [join_tokens_for_display(p) for p in split_paragraphs(tokens)]
    rendered = [p for p in rendered if p.strip()]
    if not rendered:
        return ""
    return "\n\n".join(rendered) + "\n"


class PlainTextExporter(BaseExporter):

    @property
    def name(self) -> str:
        return "Plain text"

    def export(self, timeline: ReadingTimeline) -> List[ExportOutput]:
        return [
            ExportOutput(
                suffix="-reader.txt",
                content=render_text(timeline.tokens),
                media_type="text/plain",
            )
        ]
