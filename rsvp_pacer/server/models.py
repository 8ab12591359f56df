"""Pydantic request/response models for the HTTP API.

WHY: The FastAPI endpoints need typed schemas for request validation,
response serialization, and automatic OpenAPI documentation.

HOW: Each endpoint pair (request + response) has its own model. Pacing
preferences travel as a flat mapping of stable preference keys (the
same keys preferences.dump_rsvp_config() writes), so clients can store
and send back exactly what they received from /config/defaults.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Preference values are validated by preferences.load_rsvp_config(),
  not here; a bad value becomes a 422 in the endpoint
- Python 3.9+ compatible (no PEP 604 unions, use Optional from typing)
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class ChapterInput(BaseModel):
    """One chapter sent by the client, as plain text and/or HTML.

    RULES:
    - When text is empty and html is given, text is derived from html
    - html enables structural cues and internal chapter links
    """

    title: Optional[str] = Field(default=None, description="Chapter title.")
    text: str = Field(default="", description="Plain text of the chapter.")
    html: Optional[str] = Field(
        default=None,
        description="Optional XHTML/HTML markup of the chapter.",
    )

    model_config = {"json_schema_extra": {
        "examples": [
            {
                "title": "Chapter 1",
                "text": "It was a bright cold day in April. \"Hello,\" she said.",
                "html": None,
            }
        ]
    }}


class TokenizeRequest(BaseModel):
    chapter: ChapterInput = Field(description="Chapter to tokenize.")


class FramesRequest(BaseModel):
    """Pace a single chapter from a start position."""

    chapter: ChapterInput = Field(description="Chapter to pace.")
    start_index: int = Field(
        default=0,
        description="Token index to start from; resolved to the nearest word.",
    )
    preferences: Dict[str, Any] = Field(
        default_factory=dict,
        description="Pacing preferences by stable key. Missing keys use defaults.",
    )


class EstimateRequest(BaseModel):
    preferences: Dict[str, Any] = Field(
        default_factory=dict,
        description="Pacing preferences by stable key (legacy base_wpm is accepted).",
    )


class BookFramesRequest(BaseModel):
    """Pace a stored chapter from a start position."""

    start_index: int = Field(
        default=0,
        description="Token index to start from; resolved to the nearest word.",
    )
    preferences: Dict[str, Any] = Field(
        default_factory=dict,
        description="Pacing preferences by stable key. Missing keys use defaults.",
    )


class BookCreateRequest(BaseModel):
    title: str = Field(description="Book title.")
    chapters: List[ChapterInput] = Field(
        description="Chapters in reading order; indices are assigned 0..n-1.",
        min_length=1,
    )


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class TokenModel(BaseModel):
    """One token of the reading stream."""

    text: str = Field(description="Token text; break tokens use \"\\n\" or \"\\f\".")
    type: str = Field(description="word, punctuation, paragraph_break, or page_break.")
    orp_index: Optional[int] = Field(default=None, description="Pivot character index for words.")
    pause_after_ms: int = Field(description="Structural pause hint after this token.")
    syllable_count: int = Field(description="Estimated syllables.")
    frequency_score: float = Field(description="Word familiarity in [0, 1].")
    complexity_multiplier: float = Field(description="Difficulty multiplier in [0.8, 1.6].")
    is_clause_boundary: bool = Field(description="Token ends a clause.")
    is_dialogue: bool = Field(description="Token sits inside quoted speech.")
    link_chapter_index: Optional[int] = Field(
        default=None,
        description="Target chapter when the token is part of an internal link.",
    )


class TokenizeResponse(BaseModel):
    tokens: List[TokenModel] = Field(description="Token stream in reading order.")
    token_count: int = Field(description="Number of tokens.")
    word_count: int = Field(description="Number of word tokens.")


class FrameModel(BaseModel):
    """One timed display frame."""

    index: int = Field(description="Position in the returned frame list.")
    start_ms: int = Field(description="Offset from the first returned frame.")
    duration_ms: int = Field(description="How long the frame is shown.")
    kind: str = Field(description="word, break, or blink.")
    text: str = Field(description="Display text.")
    orp_index: Optional[int] = Field(
        default=None,
        description="Pivot character index of the first word, null without a word.",
    )
    token_index: int = Field(description="Index of the source token, for resuming.")


class FramesResponse(BaseModel):
    frames: List[FrameModel] = Field(description="Frames in display order.")
    frame_count: int = Field(description="Number of frames.")
    total_duration_ms: int = Field(description="Sum of frame durations.")
    tempo_ms_per_word: int = Field(description="Canonical tempo used.")
    estimated_wpm: int = Field(description="Steady-state words per minute for this config.")

    model_config = {"json_schema_extra": {
        "examples": [
            {
                "frames": [
                    {
                        "index": 0,
                        "start_ms": 0,
                        "duration_ms": 420,
                        "kind": "word",
                        "text": "It",
                        "orp_index": 0,
                        "token_index": 0,
                    }
                ],
                "frame_count": 1,
                "total_duration_ms": 420,
                "tempo_ms_per_word": 115,
                "estimated_wpm": 322,
            }
        ]
    }}


class EstimateResponse(BaseModel):
    estimated_wpm: int = Field(description="Steady-state words per minute.")
    tempo_ms_per_word: int = Field(description="Canonical tempo after legacy migration.")
    preferences: Dict[str, Any] = Field(description="Canonical preferences by stable key.")


class ConfigDefaultsResponse(BaseModel):
    config_version: int = Field(description="Shape version of the pacing configuration.")
    preferences: Dict[str, Any] = Field(description="Default preferences by stable key.")
    estimated_wpm: int = Field(description="Estimated words per minute of the defaults.")


class ChapterSummary(BaseModel):
    index: int = Field(description="Chapter index within the book.")
    title: Optional[str] = Field(default=None, description="Chapter title.")
    word_count: int = Field(description="Words in the chapter's plain text.")


class BookResponse(BaseModel):
    """A stored book."""

    id: str = Field(description="Unique book identifier (UUID).")
    title: str = Field(description="Book title.")
    created_at: float = Field(description="Creation timestamp (Unix epoch seconds).")
    chapters: List[ChapterSummary] = Field(description="Chapters in reading order.")

    model_config = {"json_schema_extra": {
        "examples": [
            {
                "id": "550e8400e29b41d4a716446655440000",
                "title": "A Short Book",
                "created_at": 1739959200.0,
                "chapters": [
                    {"index": 0, "title": "Chapter 1", "word_count": 1834},
                    {"index": 1, "title": "Chapter 2", "word_count": 2210},
                ],
            }
        ]
    }}


class ChapterTokensResponse(TokenizeResponse):
    book_id: str = Field(description="Book the chapter belongs to.")
    chapter_index: int = Field(description="Chapter index.")


class FormatInfo(BaseModel):
    """Description of an available export format."""

    key: str = Field(description="Format identifier used in API requests.")
    name: str = Field(description="Human-readable format name.")
    suffix: str = Field(description="File suffix produced (e.g. '-timeline.json').")


class ErrorResponse(BaseModel):
    """Standard error response body.

    RULES:
    - detail is always a human-readable error message
    """

    detail: str = Field(description="Human-readable error description.")


class HealthResponse(BaseModel):
    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})
