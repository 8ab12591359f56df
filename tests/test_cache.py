"""Tests for the chapter token cache and the frame-set cache.

WHY: The caches sit between the HTTP layer and the expensive stages.
A wrong key or a lost prefetch silently serves stale or missing data.

RULES:
- Background work is awaited through the returned futures or close(),
  never with sleeps
- Every cache created here is closed by its fixture
"""

import threading
from dataclasses import replace

import pytest

from rsvp_pacer.cache import ChapterTokenCache, FrameCache
from rsvp_pacer.core.engine import PacingEngine
from rsvp_pacer.core.tokenizer import Tokenizer
from rsvp_pacer.server.library import BookStore, ChapterNotFoundError


class CountingLoader:
    """Chapter loader backed by a BookStore that records every call."""

    def __init__(self, store):
        self.store = store
        self.calls = []

    def __call__(self, book_id, chapter_index):
        self.calls.append((book_id, chapter_index))
        return self.store.load_chapter(book_id, chapter_index)


class GatedLoader(CountingLoader):
    """Blocks every load until the gate opens."""

    def __init__(self, store):
        super().__init__(store)
        self.gate = threading.Event()

    def __call__(self, book_id, chapter_index):
        self.gate.wait(timeout=5)
        return super().__call__(book_id, chapter_index)


@pytest.fixture
def book(chapter_factory):
    store = BookStore()
    created = store.create_book("Book", [
        chapter_factory("First chapter, short."),
        chapter_factory("Second chapter here."),
        chapter_factory("Third and last."),
    ])
    return store, created.id


@pytest.fixture
def loader(book):
    return CountingLoader(book[0])


@pytest.fixture
def token_cache(loader):
    cache = ChapterTokenCache(loader, max_entries=2, prefetch=False)
    yield cache
    cache.close()


@pytest.fixture
def frame_cache(token_cache):
    cache = FrameCache(token_cache, max_entries=2)
    yield cache
    cache.close()


class TestChapterTokenCache:

    def test_miss_then_hit(self, token_cache, loader, book):
        _, book_id = book
        first = token_cache.get_tokens(book_id, 0)
        second = token_cache.get_tokens(book_id, 0)
        assert first is second
        assert loader.calls == [(book_id, 0)]
        assert (book_id, 0) in token_cache
        assert len(token_cache) == 1

    def test_tokens_match_tokenizer(self, token_cache, book):
        store, book_id = book
        expected = Tokenizer().tokenize(store.load_chapter(book_id, 1))
        assert token_cache.get_tokens(book_id, 1) == expected

    def test_supplied_chapter_skips_loader(self, token_cache, loader, chapter_factory):
        tokens = token_cache.get_tokens("adhoc", 0, chapter=chapter_factory("Hello there."))
        assert [t.text for t in tokens] == ["Hello", "there", "."]
        assert loader.calls == []

    def test_missing_chapter_raises(self, token_cache, book):
        _, book_id = book
        with pytest.raises(ChapterNotFoundError):
            token_cache.get_tokens(book_id, 5)

    def test_lru_eviction(self, token_cache, book):
        _, book_id = book
        token_cache.get_tokens(book_id, 0)
        token_cache.get_tokens(book_id, 1)
        token_cache.get_tokens(book_id, 0)
        token_cache.get_tokens(book_id, 2)
        assert (book_id, 0) in token_cache
        assert (book_id, 1) not in token_cache
        assert (book_id, 2) in token_cache

    def test_invalidate_and_clear(self, token_cache, book, chapter_factory):
        _, book_id = book
        token_cache.get_tokens(book_id, 0)
        token_cache.get_tokens("other", 0, chapter=chapter_factory("Other."))
        token_cache.invalidate_book(book_id)
        assert (book_id, 0) not in token_cache
        assert ("other", 0) in token_cache
        token_cache.clear()
        assert len(token_cache) == 0


class TestPrefetch:
    """Next-chapter tokenization in the background."""

    def test_lookup_prefetches_next_chapter(self, loader, book):
        _, book_id = book
        cache = ChapterTokenCache(loader, prefetch=True)
        cache.get_tokens(book_id, 0)
        cache.close()
        assert (book_id, 1) in cache
        assert (book_id, 2) not in cache

    def test_prefetch_cached_returns_none(self, token_cache, book):
        _, book_id = book
        token_cache.get_tokens(book_id, 0)
        assert token_cache.prefetch(book_id, 0) is None

    def test_prefetch_failure_is_swallowed(self, token_cache, book):
        _, book_id = book
        future = token_cache.prefetch(book_id, 9)
        assert future.result() is None
        assert (book_id, 9) not in token_cache

    def test_prefetch_after_close(self, loader, book):
        _, book_id = book
        cache = ChapterTokenCache(loader, prefetch=False)
        cache.close()
        assert cache.prefetch(book_id, 0) is None


class TestFrameCache:

    def test_builds_from_first_token(self, frame_cache, token_cache, book, steady_config):
        _, book_id = book
        frame_set = frame_cache.get_frames(book_id, 0, steady_config)
        tokens = token_cache.get_tokens(book_id, 0)
        assert frame_set.frames == PacingEngine().generate_frames(tokens, 0, steady_config)
        assert frame_set.base_tempo_ms == steady_config.tempo_ms_per_word

    def test_hit_returns_same_set(self, frame_cache, book, steady_config):
        _, book_id = book
        first = frame_cache.get_frames(book_id, 0, steady_config)
        assert frame_cache.get_frames(book_id, 0, steady_config) is first
        assert len(frame_cache) == 1

    def test_config_is_part_of_key(self, frame_cache, book, steady_config):
        _, book_id = book
        slow = frame_cache.get_frames(book_id, 0, steady_config)
        fast = frame_cache.get_frames(book_id, 0, replace(steady_config, tempo_ms_per_word=60))
        assert slow is not fast
        assert len(frame_cache) == 2

    def test_missing_chapter_raises_every_time(self, frame_cache, book, steady_config):
        _, book_id = book
        for _ in range(2):
            with pytest.raises(ChapterNotFoundError):
                frame_cache.get_frames(book_id, 7, steady_config)
        assert len(frame_cache) == 0

    def test_prefetch(self, frame_cache, book, steady_config):
        _, book_id = book
        future = frame_cache.prefetch(book_id, 1, steady_config)
        frame_set = future.result()
        assert frame_cache.get_frames(book_id, 1, steady_config) is frame_set
        assert frame_cache.prefetch(book_id, 1, steady_config) is None

    def test_prefetch_failure_not_raised_to_caller(self, frame_cache, book, steady_config):
        _, book_id = book
        future = frame_cache.prefetch(book_id, 42, steady_config)
        assert isinstance(future.exception(), ChapterNotFoundError)

    def test_invalidate_and_clear(self, frame_cache, book, steady_config):
        _, book_id = book
        frame_cache.get_frames(book_id, 0, steady_config)
        frame_cache.invalidate_book(book_id)
        assert len(frame_cache) == 0
        frame_cache.get_frames(book_id, 0, steady_config)
        frame_cache.clear()
        assert len(frame_cache) == 0

    def test_clear_lets_queued_builds_finish(self, book, steady_config):
        store, book_id = book
        loader = GatedLoader(store)
        tokens = ChapterTokenCache(loader, prefetch=False)
        frames = FrameCache(tokens)
        try:
            running = frames.prefetch(book_id, 0, steady_config)
            queued = frames.prefetch(book_id, 1, steady_config)
            frames.clear()
            loader.gate.set()
            assert running.result(timeout=5).frames
            assert queued.result(timeout=5).frames
            assert not queued.cancelled()
        finally:
            loader.gate.set()
            frames.close()
            tokens.close()
