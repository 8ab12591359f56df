"""Tests for chapter tokenization.

WHY: Every later stage trusts the token stream: word annotations drive
timing, breaks drive pauses, and dialogue flags drive cadence.

RULES:
- Tests tokenize small literal chapters, never files
- Link tests use the rsvp://chapter/N anchor scheme
"""

from rsvp_pacer.core.models import ChapterLink, TokenType
from rsvp_pacer.core.tokenizer import (
    BLOCKQUOTE_BEFORE_MS,
    HEADING_AFTER_MS,
    HEADING_BEFORE_MS,
    LIST_END_AFTER_MS,
    BlockCue,
    Tokenizer,
    extract_block_cues,
    extract_link_text,
    is_page_number_text,
    normalize_epub_symbols,
    structural_pause_ms,
)


def _texts(tokens):
    return [t.text for t in tokens]


class TestBasicTokenization:

    def test_empty_and_blank_text(self, tokenize):
        assert tokenize("") == []
        assert tokenize("   \n\n  ") == []

    def test_words_and_punctuation(self, tokenize):
        tokens = tokenize("Hello, world.")
        assert _texts(tokens) == ["Hello", ",", "world", "."]
        assert [t.type for t in tokens] == [
            TokenType.WORD, TokenType.PUNCTUATION, TokenType.WORD, TokenType.PUNCTUATION,
        ]

    def test_word_annotations(self, tokenize):
        word = tokenize("because")[0]
        assert word.orp_index == 3
        assert word.frequency_score == 1.0
        assert word.is_clause_boundary
        assert word.syllable_count >= 1

    def test_contractions_and_hyphens_stay_whole(self, tokenize):
        assert _texts(tokenize("don't self-aware")) == ["don't", "self-aware"]

    def test_numbers_with_separators_and_units(self, tokenize):
        assert _texts(tokenize("It was 3.14 and 1,000 at 20°C or 50%.")) == [
            "It", "was", "3.14", "and", "1,000", "at", "20°C", "or", "50%", ".",
        ]

    def test_ascii_ellipsis_and_double_hyphen(self, tokenize):
        assert _texts(tokenize("Wait... no--yes")) == ["Wait", "…", "no", "—", "yes"]

    def test_deterministic(self, sample_chapter):
        tokenizer = Tokenizer()
        assert tokenizer.tokenize(sample_chapter) == tokenizer.tokenize(sample_chapter)


class TestBreaks:
    """Paragraph and page breaks between blocks."""

    def test_paragraph_break_between_paragraphs(self, tokenize):
        tokens = tokenize("One.\n\nTwo.")
        assert _texts(tokens) == ["One", ".", "\n", "Two", "."]
        assert tokens[2].type == TokenType.PARAGRAPH_BREAK

    def test_scene_break_row_becomes_page_break(self, tokenize):
        tokens = tokenize("One.\n\n* * *\n\nTwo.")
        assert [t.type for t in tokens] == [
            TokenType.WORD, TokenType.PUNCTUATION, TokenType.PAGE_BREAK, TokenType.WORD, TokenType.PUNCTUATION,
        ]

    def test_form_feed_becomes_page_break(self, tokenize):
        tokens = tokenize("One.\fTwo.")
        assert [t.type for t in tokens].count(TokenType.PAGE_BREAK) == 1
        assert TokenType.PARAGRAPH_BREAK not in [t.type for t in tokens]

    def test_heading_adds_structural_pause(self, chapter_factory):
        html = "<h1>Title</h1><p>Body text.</p>"
        tokens = Tokenizer().tokenize(chapter_factory("Title\n\nBody text.", html))
        paragraph_break = [t for t in tokens if t.type == TokenType.PARAGRAPH_BREAK][0]
        assert paragraph_break.pause_after_ms == HEADING_AFTER_MS


class TestDialogue:

    def test_straight_quotes_mark_dialogue(self, tokenize):
        tokens = tokenize('"Hi," she said.')
        by_text = {t.text: t for t in tokens if t.type == TokenType.WORD}
        assert by_text["Hi"].is_dialogue
        assert not by_text["she"].is_dialogue
        assert not by_text["said"].is_dialogue

    def test_dialogue_state_is_fresh_per_call(self, chapter_factory):
        tokenizer = Tokenizer()
        tokenizer.tokenize(chapter_factory('"Unclosed quote'))
        tokens = tokenizer.tokenize(chapter_factory("Plain words"))
        assert not any(t.is_dialogue for t in tokens)


class TestNormalization:

    def test_epub_symbols(self):
        assert normalize_epub_symbols("a\u00a0b") == "a b"
        assert normalize_epub_symbols("20 Â° C") == "20°C"
        assert normalize_epub_symbols("it was - 35c") == "it was -35c"
        assert normalize_epub_symbols("50 %") == "50%"

    def test_page_number_text(self):
        assert is_page_number_text(" 42 ")
        assert is_page_number_text("xiv")
        assert not is_page_number_text("")
        assert not is_page_number_text("Chapter 4")


class TestStructuralCues:

    def test_extract_block_cues(self):
        cues = extract_block_cues("<h2>A</h2><p>B <em>c</em></p><li>d</li><blockquote>e</blockquote>")
        assert [c.kind for c in cues] == ["heading", "paragraph", "list_item", "blockquote"]
        assert cues[1].has_emphasis

    def test_empty_html_has_no_cues(self):
        assert extract_block_cues("") == []

    def test_structural_pause(self):
        paragraph = BlockCue("paragraph")
        assert structural_pause_ms(paragraph, BlockCue("paragraph")) == 0
        assert structural_pause_ms(paragraph, BlockCue("heading")) == HEADING_BEFORE_MS
        assert structural_pause_ms(paragraph, BlockCue("blockquote")) == BLOCKQUOTE_BEFORE_MS
        assert structural_pause_ms(BlockCue("list_item"), paragraph) == LIST_END_AFTER_MS
        assert structural_pause_ms(BlockCue("list_item"), BlockCue("list_item")) == 0


class TestLinks:
    """Internal chapter links from offsets and from anchors."""

    def test_links_by_character_offsets(self, chapter_factory):
        chapter = chapter_factory("See the notes here.")
        chapter.links = [ChapterLink(start_char=4, end_char=13, target_chapter_index=3)]
        tokens = Tokenizer().tokenize(chapter)
        linked = [t.text for t in tokens if t.link_chapter_index == 3]
        assert linked == ["the", "notes"]

    def test_links_from_anchor_html(self, chapter_factory):
        html = '<p>See <a href="rsvp://chapter/5">the notes</a> here.</p>'
        tokens = Tokenizer().tokenize(chapter_factory("See the notes here.", html))
        linked = [t.text for t in tokens if t.link_chapter_index == 5]
        assert linked == ["the", "notes"]

    def test_standalone_page_numbers_dropped_with_links(self, chapter_factory):
        html = '<p><a href="rsvp://chapter/1">Next</a></p>'
        tokens = Tokenizer().tokenize(chapter_factory("Start here\n12\nNext", html))
        assert "12" not in _texts(tokens)

    def test_extract_link_text(self):
        assert extract_link_text("<span>the</span>  <b>notes</b>") == "the notes"
