"""In-memory book library with TTL cleanup.

WHY: Interactive clients upload a book once and then ask for tokens and
frames chapter by chapter. The chapter caches need a loader keyed by
(book_id, chapter_index), and something has to own the chapters between
requests. An in-memory store is sufficient for a single-user reader
service with no persistence requirements.

HOW: Two components work together:
  Book      — dataclass holding the title, chapters, and access times
  BookStore — thread-safe dict-based store with create/get/list/delete,
              a chapter loader for ChapterTokenCache, and TTL cleanup

RULES:
- All store mutations are protected by threading.Lock
- Book IDs are UUID4 hex strings generated at creation time
- Creating a book past max_books raises ValueError
- TTL is measured from last access, so books being read never expire
- load_chapter() raises ChapterNotFoundError for unknown books or
  out-of-range indices; get_book() returns None instead
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional

from rsvp_pacer.core.models import Chapter

logger = logging.getLogger(__name__)

# Default time-to-live for idle books (seconds)
DEFAULT_TTL_SECONDS = 3600


class ChapterNotFoundError(LookupError):
    """The requested book or chapter is not in the library."""


@dataclass
class Book:
    """A book held by the library.

    RULES:
    - chapters are re-indexed 0..n-1 in upload order on creation
    - last_accessed_at is bumped by every get_book() and load_chapter()
    """

    id: str
    title: str
    chapters: List[Chapter]
    created_at: float
    last_accessed_at: float


class BookStore:
    """Thread-safe in-memory store for uploaded books."""

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_books: int = 50,
    ) -> None:
        self._books: Dict[str, Book] = {}
        self._lock = threading.Lock()
        self._ttl_seconds = ttl_seconds
        self.max_books = max_books

    def create_book(self, title: str, chapters: List[Chapter]) -> Book:
        """Store a new book and return it.

        Raises:
            ValueError: The library already holds max_books books.
        """
        for index, chapter in enumerate(chapters):
            chapter.index = index

        with self._lock:
            if len(self._books) >= self.max_books:
                raise ValueError(
                    "Maximum number of books ({}) reached".format(self.max_books)
                )

            book_id = uuid.uuid4().hex
            now = time.time()
            book = Book(
                id=book_id,
                title=title,
                chapters=list(chapters),
                created_at=now,
                last_accessed_at=now,
            )
            self._books[book_id] = book

        logger.info("Created book %s (%d chapters)", book_id, len(chapters))
        return book

    def get_book(self, book_id: str) -> Optional[Book]:
        with self._lock:
            book = self._books.get(book_id)
            if book is not None:
                book.last_accessed_at = time.time()
            return book

    def list_books(self) -> List[Book]:
        """All books, oldest first."""
        with self._lock:
            return sorted(self._books.values(), key=lambda b: b.created_at)

    def load_chapter(self, book_id: str, chapter_index: int) -> Chapter:
        """Chapter loader for ChapterTokenCache.

        Raises:
            ChapterNotFoundError: Unknown book or index out of range.
        """
        book = self.get_book(book_id)
        if book is None:
            raise ChapterNotFoundError("Book not found: {}".format(book_id))
        if chapter_index < 0 or chapter_index >= len(book.chapters):
            raise ChapterNotFoundError(
                "Chapter {} not found in book {} ({} chapters)".format(
                    chapter_index, book_id, len(book.chapters)
                )
            )
        return book.chapters[chapter_index]

    def delete_book(self, book_id: str) -> bool:
        """Remove a book; True if it existed."""
        with self._lock:
            book = self._books.pop(book_id, None)

        if book is None:
            return False
        logger.info("Deleted book %s", book_id)
        return True

    def cleanup_expired(self) -> List[str]:
        """Remove books idle for longer than the TTL.

        Returns:
            IDs of the removed books, so callers can drop cached data.
        """
        now = time.time()
        expired: List[Book] = []

        with self._lock:
            for book_id, book in list(self._books.items()):
                if now - book.last_accessed_at > self._ttl_seconds:
                    expired.append(self._books.pop(book_id))

        for book in expired:
            logger.info("Expired book %s (idle %.0fs)", book.id, now - book.last_accessed_at)

        return [book.id for book in expired]
