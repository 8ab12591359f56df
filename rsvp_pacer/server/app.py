"""FastAPI application exposing tokenization, pacing, and a book library.

WHY: Reader front ends (web, desktop, scripts) need the pacing pipeline
without embedding Python. An HTTP API with OpenAPI docs lets them send a
chapter and get frames back, or upload a whole book once and page
through it with server-side caching.

HOW: Stateless endpoints (/tokenize, /frames, /estimate, /export) run
the pipeline on the chapter in the request body. Library endpoints store
books in a BookStore and serve chapters through ChapterTokenCache (with
next-chapter prefetch) and FrameCache. A lifespan task expires idle
books every five minutes and drops their cached data.

RULES:
- All endpoints have OpenAPI summaries and descriptions
- Error responses use a consistent ErrorResponse schema
- Unknown book or chapter → 404; invalid preferences → 422;
  unknown export format → 400; library full → 429
- Pipeline endpoints are plain ``def`` so FastAPI runs them in its
  thread pool instead of blocking the event loop
"""

from __future__ import annotations

import asyncio
import logging
import re
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Mapping

from fastapi import FastAPI, HTTPException
from fastapi.responses import Response

from rsvp_pacer import __version__, config
from rsvp_pacer.cache import ChapterTokenCache, FrameCache
from rsvp_pacer.core.metrics import count_word_tokens, count_words
from rsvp_pacer.core.models import CONFIG_VERSION, Chapter, ReadingTimeline, RsvpConfig, Token
from rsvp_pacer.core.pace import estimate_wpm
from rsvp_pacer.core.tokenizer import Tokenizer
from rsvp_pacer.exporters import EXPORTERS
from rsvp_pacer.exporters.timeline_json import build_timeline_document
from rsvp_pacer.preferences import dump_rsvp_config, load_rsvp_config
from rsvp_pacer.server.library import Book, BookStore, ChapterNotFoundError
from rsvp_pacer.server.models import (
    BookCreateRequest,
    BookFramesRequest,
    BookResponse,
    ChapterInput,
    ChapterSummary,
    ChapterTokensResponse,
    ConfigDefaultsResponse,
    ErrorResponse,
    EstimateRequest,
    EstimateResponse,
    FormatInfo,
    FrameModel,
    FramesRequest,
    FramesResponse,
    HealthResponse,
    TokenizeRequest,
    TokenizeResponse,
    TokenModel,
)
from rsvp_pacer.sources import chapter_from_text
from rsvp_pacer.timeline import build_timeline

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App, library, and caches
# ---------------------------------------------------------------------------

book_store = BookStore(ttl_seconds=config.LIBRARY_TTL_SECONDS, max_books=config.MAX_BOOKS)
token_cache = ChapterTokenCache(
    loader=book_store.load_chapter,
    max_entries=config.TOKEN_CACHE_SIZE,
    prefetch=config.PREFETCH_NEXT_CHAPTER,
)
frame_cache = FrameCache(token_cache, max_entries=config.FRAME_CACHE_SIZE)

_tokenizer = Tokenizer()

_FILENAME_UNSAFE_RE = re.compile(r"[^\w\-]+")


def _forget_book(book_id: str) -> None:
    token_cache.invalidate_book(book_id)
    frame_cache.invalidate_book(book_id)


async def _periodic_cleanup() -> None:
    """Expire idle books every 5 minutes."""
    while True:
        await asyncio.sleep(300)
        for book_id in book_store.cleanup_expired():
            _forget_book(book_id)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start periodic cleanup on startup, cancel on shutdown."""
    task = asyncio.create_task(_periodic_cleanup())
    yield
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    token_cache.clear()
    frame_cache.clear()


app = FastAPI(
    lifespan=lifespan,
    title="RSVP Pacer API",
    description=(
        "REST API for RSVP speed reading: tokenize chapters, generate "
        "timed display frames with natural rhythm, estimate reading speed, "
        "and export timelines. Upload a book to page through chapters with "
        "server-side caching."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _config_from_preferences(prefs: Mapping[str, Any]) -> RsvpConfig:
    """Parse preferences or raise a 422 naming the bad key."""
    try:
        return load_rsvp_config(prefs)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))


def _chapter_from_input(chapter: ChapterInput, index: int = 0) -> Chapter:
    return chapter_from_text(chapter.text, html=chapter.html, index=index, title=chapter.title)


def _token_to_model(token: Token) -> TokenModel:
    return TokenModel(
        text=token.text,
        type=token.type.value,
        orp_index=token.orp_index,
        pause_after_ms=token.pause_after_ms,
        syllable_count=token.syllable_count,
        frequency_score=token.frequency_score,
        complexity_multiplier=token.complexity_multiplier,
        is_clause_boundary=token.is_clause_boundary,
        is_dialogue=token.is_dialogue,
        link_chapter_index=token.link_chapter_index,
    )


def _timeline_to_response(timeline: ReadingTimeline) -> FramesResponse:
    document = build_timeline_document(timeline)
    return FramesResponse(
        frames=[FrameModel(**frame) for frame in document["frames"]],
        frame_count=document["frame_count"],
        total_duration_ms=document["total_duration_ms"],
        tempo_ms_per_word=document["tempo_ms_per_word"],
        estimated_wpm=document["estimated_wpm"],
    )


def _book_to_response(book: Book) -> BookResponse:
    return BookResponse(
        id=book.id,
        title=book.title,
        created_at=book.created_at,
        chapters=[
            ChapterSummary(index=c.index, title=c.title, word_count=count_words(c.plain_text))
            for c in book.chapters
        ],
    )


def _require_book(book_id: str) -> Book:
    book = book_store.get_book(book_id)
    if book is None:
        raise HTTPException(status_code=404, detail="Book not found: {}".format(book_id))
    return book


def _require_chapter(book: Book, chapter_index: int) -> Chapter:
    if chapter_index < 0 or chapter_index >= len(book.chapters):
        raise HTTPException(
            status_code=404,
            detail="Chapter {} not found (book has {} chapters).".format(
                chapter_index, len(book.chapters)
            ),
        )
    return book.chapters[chapter_index]


def _download_stem(title: str) -> str:
    stem = _FILENAME_UNSAFE_RE.sub("-", title.strip()).strip("-").lower()
    return stem or "chapter"


# ---------------------------------------------------------------------------
# Endpoints: Pipeline
# ---------------------------------------------------------------------------


@app.post(
    "/tokenize",
    response_model=TokenizeResponse,
    tags=["pipeline"],
    summary="Tokenize a chapter",
    description=(
        "Split a chapter into words, punctuation, and paragraph/page breaks "
        "with per-word linguistic metadata (syllables, frequency, clause "
        "boundaries, dialogue)."
    ),
)
def tokenize_chapter(request: TokenizeRequest) -> TokenizeResponse:
    tokens = _tokenizer.tokenize(_chapter_from_input(request.chapter))
    return TokenizeResponse(
        tokens=[_token_to_model(t) for t in tokens],
        token_count=len(tokens),
        word_count=count_word_tokens(tokens),
    )


@app.post(
    "/frames",
    response_model=FramesResponse,
    tags=["pipeline"],
    summary="Generate timed frames for a chapter",
    description=(
        "Tokenize the chapter and pace it from start_index with the given "
        "preferences. Returns frames with start offsets, durations, and the "
        "estimated reading speed."
    ),
    responses={
        422: {"model": ErrorResponse, "description": "Invalid preferences"},
    },
)
def generate_frames(request: FramesRequest) -> FramesResponse:
    rsvp_config = _config_from_preferences(request.preferences)
    chapter = _chapter_from_input(request.chapter)
    tokens = _tokenizer.tokenize(chapter)
    timeline = build_timeline(tokens, rsvp_config, request.start_index, title=chapter.title)
    return _timeline_to_response(timeline)


@app.post(
    "/estimate",
    response_model=EstimateResponse,
    tags=["pipeline"],
    summary="Estimate words per minute",
    description=(
        "Run the pacing engine over a fixed sample passage and report the "
        "resulting words per minute. Legacy base_wpm preferences are "
        "migrated to tempo first."
    ),
    responses={
        422: {"model": ErrorResponse, "description": "Invalid preferences"},
    },
)
def estimate(request: EstimateRequest) -> EstimateResponse:
    rsvp_config = _config_from_preferences(request.preferences)
    return EstimateResponse(
        estimated_wpm=estimate_wpm(rsvp_config),
        tempo_ms_per_word=rsvp_config.tempo_ms_per_word,
        preferences=dump_rsvp_config(rsvp_config),
    )


@app.post(
    "/export/{format_key}",
    tags=["pipeline"],
    summary="Export a paced chapter",
    description=(
        "Pace the chapter and return one exporter's output as a file "
        "download. See GET /formats for available keys."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Unknown export format"},
        422: {"model": ErrorResponse, "description": "Invalid preferences"},
    },
)
def export_chapter(format_key: str, request: FramesRequest) -> Response:
    if format_key not in EXPORTERS:
        raise HTTPException(
            status_code=400,
            detail="Unknown export format '{}'. Available: {}".format(
                format_key, ", ".join(sorted(EXPORTERS.keys()))
            ),
        )
    rsvp_config = _config_from_preferences(request.preferences)
    chapter = _chapter_from_input(request.chapter)
    tokens = _tokenizer.tokenize(chapter)
    timeline = build_timeline(tokens, rsvp_config, request.start_index, title=chapter.title)

    output = EXPORTERS[format_key]().export(timeline)[0]
    filename = "{}{}".format(_download_stem(timeline.title), output.suffix)
    return Response(
        content=output.content,
        media_type=output.media_type,
        headers={"Content-Disposition": 'attachment; filename="{}"'.format(filename)},
    )


# ---------------------------------------------------------------------------
# Endpoints: Library
# ---------------------------------------------------------------------------


@app.post(
    "/books",
    response_model=BookResponse,
    status_code=201,
    tags=["library"],
    summary="Upload a book",
    description=(
        "Store a book's chapters in the in-memory library. Idle books "
        "expire after the configured TTL."
    ),
    responses={
        429: {"model": ErrorResponse, "description": "Library is full"},
    },
)
async def create_book(request: BookCreateRequest) -> BookResponse:
    chapters = [_chapter_from_input(c, index=i) for i, c in enumerate(request.chapters)]
    try:
        book = book_store.create_book(title=request.title, chapters=chapters)
    except ValueError as exc:
        raise HTTPException(status_code=429, detail=str(exc))
    return _book_to_response(book)


@app.get(
    "/books/{book_id}",
    response_model=BookResponse,
    tags=["library"],
    summary="Get a stored book",
    responses={
        404: {"model": ErrorResponse, "description": "Book not found"},
    },
)
async def get_book(book_id: str) -> BookResponse:
    return _book_to_response(_require_book(book_id))


@app.get(
    "/books/{book_id}/chapters/{chapter_index}/tokens",
    response_model=ChapterTokensResponse,
    tags=["library"],
    summary="Get a chapter's tokens",
    description=(
        "Tokens are cached per chapter; each request also pre-tokenizes "
        "the next chapter in the background."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "Book or chapter not found"},
    },
)
def get_chapter_tokens(book_id: str, chapter_index: int) -> ChapterTokensResponse:
    _require_chapter(_require_book(book_id), chapter_index)
    try:
        tokens = token_cache.get_tokens(book_id, chapter_index)
    except ChapterNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return ChapterTokensResponse(
        book_id=book_id,
        chapter_index=chapter_index,
        tokens=[_token_to_model(t) for t in tokens],
        token_count=len(tokens),
        word_count=count_word_tokens(tokens),
    )


@app.post(
    "/books/{book_id}/chapters/{chapter_index}/frames",
    response_model=FramesResponse,
    tags=["library"],
    summary="Get a chapter's frames",
    description=(
        "Whole-chapter frame sets are cached per preferences and sliced at "
        "start_index. The next chapter's frames are prepared in the background."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "Book or chapter not found"},
        422: {"model": ErrorResponse, "description": "Invalid preferences"},
    },
)
def get_chapter_frames(book_id: str, chapter_index: int, request: BookFramesRequest) -> FramesResponse:
    chapter = _require_chapter(_require_book(book_id), chapter_index)
    rsvp_config = _config_from_preferences(request.preferences)
    try:
        tokens = token_cache.get_tokens(book_id, chapter_index)
        frame_set = frame_cache.get_frames(book_id, chapter_index, rsvp_config)
    except ChapterNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))

    timeline = build_timeline(
        tokens,
        rsvp_config,
        request.start_index,
        title=chapter.title,
        chapter_index=chapter_index,
        frames=frame_set.frames,
    )
    frame_cache.prefetch(book_id, chapter_index + 1, rsvp_config)
    return _timeline_to_response(timeline)


@app.delete(
    "/books/{book_id}",
    status_code=204,
    tags=["library"],
    summary="Delete a stored book",
    description="Remove a book from the library and drop its cached tokens and frames.",
    responses={
        404: {"model": ErrorResponse, "description": "Book not found"},
    },
)
async def delete_book(book_id: str) -> Response:
    if not book_store.delete_book(book_id):
        raise HTTPException(status_code=404, detail="Book not found: {}".format(book_id))
    _forget_book(book_id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Endpoints: Formats, config, health
# ---------------------------------------------------------------------------


@app.get(
    "/formats",
    response_model=List[FormatInfo],
    tags=["formats"],
    summary="List available export formats",
    description="Returns all export formats with their keys, names, and file suffixes.",
)
async def list_formats() -> List[FormatInfo]:
    empty = ReadingTimeline(
        title="",
        chapter_index=0,
        tokens=[],
        frames=[],
        tempo_ms_per_word=1,
        estimated_wpm=1,
    )
    result = []
    for key, exporter_cls in sorted(EXPORTERS.items()):
        exporter = exporter_cls()
        outputs = exporter.export(empty)
        result.append(FormatInfo(
            key=key,
            name=exporter.name,
            suffix=outputs[0].suffix if outputs else "",
        ))
    return result


@app.get(
    "/config/defaults",
    response_model=ConfigDefaultsResponse,
    tags=["config"],
    summary="Default pacing preferences",
    description="The default configuration by stable preference key, with its estimated speed.",
)
def config_defaults() -> ConfigDefaultsResponse:
    defaults = RsvpConfig()
    prefs: Dict[str, Any] = dump_rsvp_config(defaults)
    return ConfigDefaultsResponse(
        config_version=CONFIG_VERSION,
        preferences=prefs,
        estimated_wpm=estimate_wpm(defaults),
    )


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
    description="Liveness and readiness check for load balancers and orchestrators.",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


def run_api():
    """Entry point for the rsvp-api console script."""
    import uvicorn
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
    uvicorn.run(app, host=config.API_HOST, port=config.API_PORT)
