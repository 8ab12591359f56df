"""Tests for the FastAPI application.

WHY: Validates every endpoint: happy paths, error mapping (400, 404,
422, 429), and the library's cache wiring. Uses FastAPI TestClient for
synchronous in-process testing.

HOW: Pipeline endpoints get small literal chapters. Library tests upload
a book through the API, then page through it. Module-level store and
caches are reset around every test.

RULES:
- All tests use the FastAPI TestClient (synchronous)
- Each test is independent; the book store and caches start empty
- Error bodies always carry a string "detail" for our own errors
"""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from rsvp_pacer import __version__
from rsvp_pacer.exporters import EXPORTERS
from rsvp_pacer.server.app import app, book_store, frame_cache, token_cache


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_library():
    """Clear books and caches before and after each test."""
    book_store._books.clear()
    token_cache.clear()
    frame_cache.clear()
    yield
    book_store._books.clear()
    token_cache.clear()
    frame_cache.clear()


@pytest.fixture
def client():
    return TestClient(app)


BOOK = {
    "title": "Book",
    "chapters": [
        {"title": "One", "text": "First chapter here."},
        {"title": "Two", "text": "Second one, \"quoted\" and done."},
    ],
}


def _create_book(client) -> str:
    resp = client.post("/books", json=BOOK)
    assert resp.status_code == 201
    return resp.json()["id"]


# ---------------------------------------------------------------------------
# Pipeline endpoints
# ---------------------------------------------------------------------------


class TestTokenize:

    def test_plain_text(self, client):
        resp = client.post("/tokenize", json={"chapter": {"text": "Hello, world."}})
        assert resp.status_code == 200
        data = resp.json()
        assert data["token_count"] == 4
        assert data["word_count"] == 2
        assert [t["type"] for t in data["tokens"]] == ["word", "punctuation", "word", "punctuation"]
        assert data["tokens"][0]["orp_index"] == 1
        assert data["tokens"][1]["orp_index"] is None

    def test_html_only(self, client):
        resp = client.post("/tokenize", json={"chapter": {"html": "<p>Hi there.</p>"}})
        assert resp.status_code == 200
        assert resp.json()["word_count"] == 2

    def test_missing_chapter(self, client):
        assert client.post("/tokenize", json={}).status_code == 422


class TestFrames:
    """POST /frames."""

    def test_frames_are_consistent(self, client):
        resp = client.post("/frames", json={"chapter": {"text": "One, two three.\n\nFour five."}})
        assert resp.status_code == 200
        data = resp.json()
        frames = data["frames"]
        assert data["frame_count"] == len(frames)
        assert frames[0]["start_ms"] == 0
        assert data["total_duration_ms"] == sum(f["duration_ms"] for f in frames)
        assert {f["kind"] for f in frames} == {"word", "break"}
        assert data["tempo_ms_per_word"] == 115
        assert data["estimated_wpm"] >= 1

    def test_start_index(self, client):
        resp = client.post("/frames", json={"chapter": {"text": "Hello, world."}, "start_index": 2})
        frames = resp.json()["frames"]
        assert frames[0]["text"].startswith("world")
        assert frames[0]["token_index"] == 2

    def test_preferences_applied(self, client):
        slow = client.post("/frames", json={
            "chapter": {"text": "Some words to read."},
            "preferences": {"tempo_ms_per_word": 250},
        }).json()
        fast = client.post("/frames", json={
            "chapter": {"text": "Some words to read."},
            "preferences": {"tempo_ms_per_word": 60},
        }).json()
        assert slow["total_duration_ms"] > fast["total_duration_ms"]

    def test_invalid_preference(self, client):
        resp = client.post("/frames", json={
            "chapter": {"text": "Hello."},
            "preferences": {"blink_mode": "sometimes"},
        })
        assert resp.status_code == 422
        assert "blink_mode" in resp.json()["detail"]


class TestEstimate:

    def test_legacy_wpm_migrated(self, client):
        resp = client.post("/estimate", json={"preferences": {"base_wpm": 300}})
        assert resp.status_code == 200
        data = resp.json()
        assert data["tempo_ms_per_word"] == 200
        assert data["preferences"]["tempo_ms_per_word"] == 200
        assert "base_wpm" not in data["preferences"]
        assert data["estimated_wpm"] >= 1

    def test_defaults(self, client):
        data = client.post("/estimate", json={}).json()
        assert data["tempo_ms_per_word"] == 115


class TestExport:

    def test_timeline_json_download(self, client):
        resp = client.post("/export/timeline_json", json={"chapter": {"title": "My Chapter", "text": "Hi there."}})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("application/json")
        assert resp.headers["content-disposition"] == 'attachment; filename="my-chapter-timeline.json"'
        document = json.loads(resp.content)
        assert document["title"] == "My Chapter"
        assert document["word_count"] == 2

    def test_untitled_srt(self, client):
        resp = client.post("/export/srt_cues", json={"chapter": {"text": "Hi there."}})
        assert resp.status_code == 200
        assert resp.headers["content-disposition"] == 'attachment; filename="chapter-rsvp.srt"'
        assert resp.text.startswith("1\n00:00:00,000 --> ")

    def test_unknown_format(self, client):
        resp = client.post("/export/docx", json={"chapter": {"text": "Hi."}})
        assert resp.status_code == 400
        assert "docx" in resp.json()["detail"]


# ---------------------------------------------------------------------------
# Library endpoints
# ---------------------------------------------------------------------------


class TestBooks:

    def test_create_and_get(self, client):
        resp = client.post("/books", json=BOOK)
        assert resp.status_code == 201
        data = resp.json()
        assert data["title"] == "Book"
        assert [c["index"] for c in data["chapters"]] == [0, 1]
        assert [c["word_count"] for c in data["chapters"]] == [3, 5]

        fetched = client.get("/books/{}".format(data["id"]))
        assert fetched.status_code == 200
        assert fetched.json() == data

    def test_no_chapters(self, client):
        assert client.post("/books", json={"title": "Empty", "chapters": []}).status_code == 422

    def test_library_full(self, client, monkeypatch):
        monkeypatch.setattr(book_store, "max_books", 1)
        _create_book(client)
        resp = client.post("/books", json=BOOK)
        assert resp.status_code == 429
        assert "Maximum number of books" in resp.json()["detail"]

    def test_unknown_book(self, client):
        assert client.get("/books/nope").status_code == 404

    def test_delete(self, client):
        book_id = _create_book(client)
        client.get("/books/{}/chapters/0/tokens".format(book_id))
        assert client.delete("/books/{}".format(book_id)).status_code == 204
        assert (book_id, 0) not in token_cache
        assert client.get("/books/{}".format(book_id)).status_code == 404
        assert client.delete("/books/{}".format(book_id)).status_code == 404


class TestChapterTokens:

    def test_tokens(self, client):
        book_id = _create_book(client)
        resp = client.get("/books/{}/chapters/0/tokens".format(book_id))
        assert resp.status_code == 200
        data = resp.json()
        assert data["book_id"] == book_id
        assert data["chapter_index"] == 0
        assert data["word_count"] == 3
        assert (book_id, 0) in token_cache

    def test_chapter_out_of_range(self, client):
        book_id = _create_book(client)
        assert client.get("/books/{}/chapters/5/tokens".format(book_id)).status_code == 404

    def test_unknown_book(self, client):
        assert client.get("/books/nope/chapters/0/tokens").status_code == 404


class TestChapterFrames:
    """Cached frame sets, sliced at the requested start."""

    def test_matches_stateless_frames(self, client):
        book_id = _create_book(client)
        cached = client.post("/books/{}/chapters/1/frames".format(book_id), json={})
        direct = client.post("/frames", json={"chapter": BOOK["chapters"][1]})
        assert cached.status_code == 200
        assert cached.json() == direct.json()

    def test_start_index_slices(self, client):
        book_id = _create_book(client)
        sliced = client.post("/books/{}/chapters/0/frames".format(book_id), json={"start_index": 1}).json()
        assert sliced["frames"][0]["text"] == "chapter"
        assert sliced["frames"][0]["start_ms"] == 0
        assert all(f["token_index"] >= 1 for f in sliced["frames"])

    def test_invalid_preference(self, client):
        book_id = _create_book(client)
        resp = client.post(
            "/books/{}/chapters/0/frames".format(book_id),
            json={"preferences": {"tempo_ms_per_word": "quick"}},
        )
        assert resp.status_code == 422

    def test_unknown_chapter(self, client):
        book_id = _create_book(client)
        assert client.post("/books/{}/chapters/9/frames".format(book_id), json={}).status_code == 404


# ---------------------------------------------------------------------------
# Formats, config, health
# ---------------------------------------------------------------------------


class TestMetadataEndpoints:

    def test_formats(self, client):
        resp = client.get("/formats")
        assert resp.status_code == 200
        data = resp.json()
        assert [f["key"] for f in data] == sorted(EXPORTERS)
        suffixes = {f["key"]: f["suffix"] for f in data}
        assert suffixes["timeline_json"] == "-timeline.json"
        assert suffixes["srt_cues"] == "-rsvp.srt"
        assert suffixes["plain_text"] == "-reader.txt"

    def test_config_defaults(self, client):
        data = client.get("/config/defaults").json()
        assert data["config_version"] >= 1
        assert data["preferences"]["tempo_ms_per_word"] == 115
        assert data["preferences"]["rhythm_smoothing_alpha"] == 0.35
        assert data["estimated_wpm"] >= 1

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "version": __version__}
