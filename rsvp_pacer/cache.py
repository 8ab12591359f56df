"""Chapter token and frame-set caches for interactive readers.

WHY: A reader flips between chapters and tweaks settings. Tokenizing a
long chapter and pacing it both take noticeable time, and repeating
that work on every request wastes it. Pre-tokenizing the next chapter
in the background also makes "next chapter" feel instant.

HOW: Two small LRU caches built on OrderedDict and a threading.Lock.
  ChapterTokenCache — (book_id, chapter_index) → tokens; tokenization
    runs on a single-worker executor; each lookup schedules a
    best-effort prefetch of the next chapter
  FrameCache — (book_id, chapter_index, config) → FrameSet; frames are
    always built from token 0; concurrent requests for the same key
    share one in-flight future

RULES:
- The lock is held only around dictionary access, never around
  tokenization or pacing
- Prefetch failures (usually "no such chapter") are logged at DEBUG and
  swallowed; foreground failures propagate to the caller
- Concurrent builds of the same key may race; the last writer wins
- clear() never cancels in-flight frame builds; callers blocked on one
  still get its result, which is then cached
- close() waits for queued background work and shuts the executors down
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, Tuple

from rsvp_pacer.core.engine import PacingEngine
from rsvp_pacer.core.models import Chapter, FrameSet, RsvpConfig, Token
from rsvp_pacer.core.tokenizer import Tokenizer

logger = logging.getLogger(__name__)

ChapterLoader = Callable[[str, int], Chapter]
"""Returns the chapter for (book_id, chapter_index); raises when it does not exist."""

TokenKey = Tuple[str, int]
FrameKey = Tuple[str, int, RsvpConfig]


class ChapterTokenCache:
    """LRU cache of tokenized chapters with next-chapter prefetch."""

    def __init__(
        self,
        loader: ChapterLoader,
        max_entries: int = 10,
        prefetch: bool = True,
        tokenizer: Optional[Tokenizer] = None,
    ):
        self._loader = loader
        self._max_entries = max(1, max_entries)
        self._prefetch_enabled = prefetch
        self._tokenizer = tokenizer or Tokenizer()
        self._entries: "OrderedDict[TokenKey, List[Token]]" = OrderedDict()
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="rsvp-tokenize")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: TokenKey) -> bool:
        with self._lock:
            return key in self._entries

    def get_tokens(self, book_id: str, chapter_index: int, chapter: Optional[Chapter] = None) -> List[Token]:
        """Tokens for a chapter, tokenizing (and caching) on a miss.

        Args:
            chapter: Optional already-loaded chapter; skips the loader.

        Raises:
            Whatever the loader raises for a missing chapter.
        """
        key = (book_id, chapter_index)
        tokens = self._lookup(key)
        if tokens is not None:
            logger.debug("Token cache hit: %s", key)
        else:
            logger.debug("Token cache miss: %s", key)
            resolved = chapter if chapter is not None else self._loader(book_id, chapter_index)
            tokens = self._executor.submit(self._tokenizer.tokenize, resolved).result()
            self._store(key, tokens)

        if self._prefetch_enabled:
            self.prefetch(book_id, chapter_index + 1)
        return tokens

    def prefetch(self, book_id: str, chapter_index: int) -> Optional[Future]:
        """Queue background tokenization of a chapter; None if already cached."""
        key = (book_id, chapter_index)
        if key in self:
            return None
        try:
            return self._executor.submit(self._prefetch_task, key)
        except RuntimeError:
            # Executor already shut down.
            return None

    def _prefetch_task(self, key: TokenKey) -> None:
        if key in self:
            return
        try:
            chapter = self._loader(*key)
            tokens = self._tokenizer.tokenize(chapter)
        except Exception as exc:
            logger.debug("Prefetch skipped for %s: %s", key, exc)
            return
        self._store(key, tokens)
        logger.debug("Prefetched %s (%d tokens)", key, len(tokens))

    def _lookup(self, key: TokenKey) -> Optional[List[Token]]:
        with self._lock:
            tokens = self._entries.get(key)
            if tokens is not None:
                self._entries.move_to_end(key)
            return tokens

    def _store(self, key: TokenKey, tokens: List[Token]) -> None:
        with self._lock:
            self._entries[key] = tokens
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Token cache evicted %s", evicted)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def invalidate_book(self, book_id: str) -> None:
        """Drop every cached chapter of one book."""
        with self._lock:
            for key in [k for k in self._entries if k[0] == book_id]:
                del self._entries[key]

    def close(self) -> None:
        self._executor.shutdown(wait=True)


class FrameCache:
    """LRU cache of whole-chapter frame sets keyed by config.

    Frame sets are built from the first token so any start position can
    be served by slicing; FrameSet.base_tempo_ms records the tempo used.
    """

    def __init__(
        self,
        token_cache: ChapterTokenCache,
        engine: Optional[PacingEngine] = None,
        max_entries: int = 6,
    ):
        self._token_cache = token_cache
        self._engine = engine or PacingEngine()
        self._max_entries = max(1, max_entries)
        self._entries: "OrderedDict[FrameKey, FrameSet]" = OrderedDict()
        self._in_flight: Dict[FrameKey, Future] = {}
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="rsvp-frames")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_frames(self, book_id: str, chapter_index: int, config: RsvpConfig) -> FrameSet:
        """Frame set for a chapter and config, building it on a miss."""
        key = (book_id, chapter_index, config)
        with self._lock:
            cached = self._entries.get(key)
            if cached is not None:
                self._entries.move_to_end(key)
                logger.debug("Frame cache hit: %s/%s", book_id, chapter_index)
                return cached
        return self._ensure(key).result()

    def prefetch(self, book_id: str, chapter_index: int, config: RsvpConfig) -> Optional[Future]:
        """Fire-and-forget build; errors are logged, never raised."""
        key = (book_id, chapter_index, config)
        with self._lock:
            if key in self._entries:
                return None
        future = self._ensure(key)
        future.add_done_callback(_log_prefetch_failure)
        return future

    def _ensure(self, key: FrameKey) -> Future:
        with self._lock:
            cached = self._entries.get(key)
            if cached is not None:
                done: Future = Future()
                done.set_result(cached)
                return done
            pending = self._in_flight.get(key)
            if pending is not None and not pending.done():
                return pending
            future = self._executor.submit(self._build, key)
            self._in_flight[key] = future
            return future

    def _build(self, key: FrameKey) -> FrameSet:
        book_id, chapter_index, config = key
        try:
            tokens = self._token_cache.get_tokens(book_id, chapter_index)
            frames = self._engine.generate_frames(tokens, 0, config)
            frame_set = FrameSet(frames=frames, base_tempo_ms=config.tempo_ms_per_word)
        except Exception:
            with self._lock:
                self._in_flight.pop(key, None)
            raise

        with self._lock:
            self._entries[key] = frame_set
            self._entries.move_to_end(key)
            self._in_flight.pop(key, None)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)
        logger.debug("Built %d frames for %s/%s", len(frames), book_id, chapter_index)
        return frame_set

    def clear(self) -> None:
        """Drop cached frame sets; in-flight builds still finish for their waiters."""
        with self._lock:
            self._entries.clear()

    def invalidate_book(self, book_id: str) -> None:
        with self._lock:
            for key in [k for k in self._entries if k[0] == book_id]:
                del self._entries[key]

    def close(self) -> None:
        self._executor.shutdown(wait=True)


def _log_prefetch_failure(future: Future) -> None:
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.debug("Frame prefetch failed: %s", error)
