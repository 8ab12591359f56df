"""Tests for BookStore CRUD, limits, and TTL cleanup.

RULES:
- Tests use fresh BookStore instances, never the API singleton
- Time-based tests edit timestamps instead of sleeping
"""

import threading
import time

import pytest

from rsvp_pacer.server.library import BookStore, ChapterNotFoundError


@pytest.fixture
def store():
    return BookStore(ttl_seconds=60, max_books=3)


@pytest.fixture
def chapters(chapter_factory):
    return [
        chapter_factory("First chapter.", index=7, title="One"),
        chapter_factory("Second chapter.", index=9, title="Two"),
    ]


class TestCreateAndGet:

    def test_create_assigns_id_and_indices(self, store, chapters):
        book = store.create_book("Book", chapters)
        assert len(book.id) == 32
        assert [c.index for c in book.chapters] == [0, 1]
        assert book.created_at == book.last_accessed_at

    def test_get_book(self, store, chapters):
        book = store.create_book("Book", chapters)
        assert store.get_book(book.id) is book
        assert store.get_book("missing") is None

    def test_get_bumps_access_time(self, store, chapters):
        book = store.create_book("Book", chapters)
        book.last_accessed_at = 0.0
        store.get_book(book.id)
        assert book.last_accessed_at > 0.0

    def test_max_books(self, store, chapters):
        for _ in range(3):
            store.create_book("Book", chapters)
        with pytest.raises(ValueError, match="Maximum number of books"):
            store.create_book("One too many", chapters)

    def test_list_books_oldest_first(self, store, chapters):
        first = store.create_book("First", chapters)
        second = store.create_book("Second", chapters)
        first.created_at, second.created_at = 200.0, 100.0
        assert store.list_books() == [second, first]

    def test_concurrent_creates_respect_limit(self, chapters):
        store = BookStore(max_books=10)
        errors = []

        def create():
            try:
                store.create_book("Book", chapters)
            except ValueError as exc:
                errors.append(exc)

        threads = [threading.Thread(target=create) for _ in range(15)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(store.list_books()) == 10
        assert len(errors) == 5


class TestLoadChapter:

    def test_load(self, store, chapters):
        book = store.create_book("Book", chapters)
        assert store.load_chapter(book.id, 1).plain_text == "Second chapter."

    def test_unknown_book(self, store):
        with pytest.raises(ChapterNotFoundError, match="Book not found"):
            store.load_chapter("missing", 0)

    @pytest.mark.parametrize("index", [-1, 2])
    def test_out_of_range(self, store, chapters, index):
        book = store.create_book("Book", chapters)
        with pytest.raises(LookupError):
            store.load_chapter(book.id, index)


class TestDeleteAndCleanup:

    def test_delete(self, store, chapters):
        book = store.create_book("Book", chapters)
        assert store.delete_book(book.id) is True
        assert store.delete_book(book.id) is False
        assert store.get_book(book.id) is None

    def test_cleanup_removes_idle_books(self, store, chapters):
        idle = store.create_book("Idle", chapters)
        active = store.create_book("Active", chapters)
        idle.last_accessed_at = time.time() - 120

        assert store.cleanup_expired() == [idle.id]
        assert store.get_book(idle.id) is None
        assert store.get_book(active.id) is active

    def test_cleanup_nothing_expired(self, store, chapters):
        store.create_book("Book", chapters)
        assert store.cleanup_expired() == []
