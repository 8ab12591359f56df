"""Shared test fixtures for the rsvp_pacer test suite.

WHY: Most test modules need the same small chapters, a tokenizer, and a
"steady" pacing config without session ramps so frame durations can be
compared directly.

RULES:
- Sample text is plain English with commas, a semicolon, dialogue, and
  a paragraph break so every pipeline stage has something to do
- steady_config has ramps and start/end delays switched off
"""

from dataclasses import replace
from typing import List

import pytest

from rsvp_pacer.core.models import Chapter, RsvpConfig, Token
from rsvp_pacer.core.tokenizer import Tokenizer

SAMPLE_TEXT = (
    "The old house stood at the end of the lane, quiet and grey. "
    "Nobody had lived there for years; the windows were dark.\n\n"
    "\"Are you coming?\" she asked. He nodded and followed her inside."
)


def make_chapter(text: str, html: str = "", index: int = 0, title: str = "Test") -> Chapter:
    return Chapter(index=index, title=title, html_content=html, plain_text=text)


def tokenize_text(text: str, html: str = "") -> List[Token]:
    return Tokenizer().tokenize(make_chapter(text, html))


@pytest.fixture
def chapter_factory():
    """Build a Chapter from literal text (and optional HTML)."""
    return make_chapter


@pytest.fixture
def tokenize():
    """Tokenize literal text with a fresh Tokenizer."""
    return tokenize_text


@pytest.fixture
def sample_chapter() -> Chapter:
    return make_chapter(SAMPLE_TEXT, title="The House")


@pytest.fixture
def sample_tokens() -> List[Token]:
    return tokenize_text(SAMPLE_TEXT)


@pytest.fixture
def steady_config() -> RsvpConfig:
    return replace(RsvpConfig(), start_delay_ms=0, end_delay_ms=0, ramp_up_frames=0, ramp_down_frames=0)
