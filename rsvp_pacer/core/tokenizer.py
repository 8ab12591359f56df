"""Chapter text → annotated token stream.

WHY: Ebook text is messy. It carries odd spaces, ASCII stand-ins for
ellipses and dashes, mojibake degree signs, scene-break glyph rows, and
printed page numbers. The engine needs a clean, annotated token list in
which every word already knows its pivot letter, syllables, frequency,
and whether it sits in quoted speech.

HOW: Normalize the plain text, split it into paragraphs on blank lines,
and scan each paragraph with one compound regex. Words are annotated via
core.linguistics and core.orp; punctuation drives a DialogueState.
Structural pauses between paragraphs come from HTML block cues, and
internal chapter links are attached from Chapter.links offsets and from
anchors using the private link scheme.

RULES:
- tokenize() is deterministic and restartable; dialogue state is
  created fresh for each call
- Empty or whitespace-only text → []
- "..." → "…" and "--" → "—" before scanning
- Regex priority: numeric+unit, separated numerics, words (with
  internal apostrophes or hyphens), single punctuation characters
- A PARAGRAPH_BREAK sits between adjacent paragraphs unless either side
  is a page break; a page-break paragraph becomes one PAGE_BREAK token
- Link assignment: first match wins, at most 1000 anchors per chapter
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence

from bs4 import BeautifulSoup

from rsvp_pacer.core.linguistics import (
    DialogueState,
    complexity_multiplier,
    count_syllables,
    frequency_score,
    is_clause_boundary,
)
from rsvp_pacer.core.models import (
    PAGE_BREAK_TEXT,
    PARAGRAPH_BREAK_TEXT,
    Chapter,
    ChapterLink,
    Token,
    TokenType,
)
from rsvp_pacer.core.orp import calculate_orp_index
from rsvp_pacer.core.text import normalize_whitespace

logger = logging.getLogger(__name__)

LINK_SCHEME = "rsvp://chapter/"
"""Href prefix marking a link to another chapter of the same book."""

MAX_LINKS_PER_CHAPTER = 1000
MAX_LINK_TEXT_HTML_CHARS = 1200

# Structural pauses (ms) added to the paragraph break after / before a block.
HEADING_BEFORE_MS = 140
HEADING_AFTER_MS = 220
BLOCKQUOTE_BEFORE_MS = 90
BLOCKQUOTE_AFTER_MS = 140
PREFORMATTED_BEFORE_MS = 110
PREFORMATTED_AFTER_MS = 160
LIST_END_AFTER_MS = 120
EMPHASIS_AFTER_MS = 60

# Apostrophes are deliberately absent: they only occur inside words.
PUNCTUATION = frozenset(
    ".,;:!?" + '"' + "“”„" + "—–…" + "()[]{}" + "-−" + "°º℃℉" + "%" + "$€£¥"
)
OPENING_QUOTES = frozenset(['"', "“", "‘"])
CLOSING_QUOTES = frozenset(['"', "”", "’"])

_DASHES = "-−–—‐‑‒﹣－"

_TOKEN_RE = re.compile(
    # Numeric + unit: "20°C", "-35c", "20℃", "50%"
    r"[" + _DASHES + r"]?\d+(?:[.,]\d+)?(?:[℃℉]|%|[°º]?[cCfFkK](?![a-zA-Z]))"
    # Decimals and thousands: "3.14", "1,000,000", "-2.5"
    r"|[" + _DASHES + r"]?\d+(?:[.,]\d+)+"
    # Words with contractions or internal hyphens: "don't", "self-aware"
    r"|\w+(?:['’‘]\w+|-\w+)*"
    # Single punctuation characters
    r"|[.,;:!?“”„\"‘’—–…()\[\]{}\-−°º%$€£¥℃℉]"
)

# Scene-break rows: "***", "* * *", "---", "— —", "• • •", "___", ...
_PAGE_BREAK_RE = re.compile(
    r"^\s*(?:(?:\*\s*){3,}|(?:-\s*){3,}|(?:_\s*){3,}|(?:~\s*){3,}"
    r"|(?:—\s*){2,}|(?:–\s*){2,}|(?:•\s*){3,}|(?:·\s*){3,})\s*$"
)
_PAGE_BREAK_ROW = "* * *"
_PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")
_ROMAN_NUMERAL_RE = re.compile(r"^[ivxlcdm]+$", re.IGNORECASE)

_ODD_SPACES_RE = re.compile(r"[\u00A0\u2007\u202F\u2009\u200A\u200B]")
_ELLIPSIS_RE = re.compile(r"\.{3,}")
_DOUBLE_HYPHEN_RE = re.compile(r"(?<!-)--(?!-)")
_DETACHED_MINUS_RE = re.compile(r"(^|[^\w])[" + _DASHES + r"]\s*(\d)")
_DEGREE_UNIT_RE = re.compile(r"(\d)\s*[°º]\s*([cCfFkK])")
_DEGREE_SIGN_RE = re.compile(r"(\d)\s*([℃℉])")
_PERCENT_RE = re.compile(r"(\d)\s*%")

_SCRIPT_STYLE_RE = re.compile(r"<(script|style)[^>]*>[\s\S]*?</\1>", re.IGNORECASE)
_BLOCK_TAG_RE = re.compile(r"<\s*(h[1-6]|li|blockquote|pre|p|div|br)\b[^>]*>", re.IGNORECASE)
_EMPHASIS_RE = re.compile(r"<\s*(em|i)\b", re.IGNORECASE)
_ANCHOR_OPEN_RE = re.compile(
    r"<a\b[^>]*href\s*=\s*['\"]" + re.escape(LINK_SCHEME) + r"(\d+)['\"][^>]*>",
    re.IGNORECASE,
)
_ANCHOR_CLOSE = "</a>"


@dataclass(frozen=True)
class BlockCue:
    """Block-level HTML element kind for one paragraph, plus emphasis."""

    kind: str
    has_emphasis: bool = False


_PARAGRAPH_CUE = BlockCue("paragraph")


class Tokenizer:
    """Turns a Chapter into an ordered list of annotated tokens.

    The instance holds no state between calls, so one tokenizer can be
    shared by every chapter of a book (or every thread of a cache).
    """

    def tokenize(self, chapter: Chapter) -> List[Token]:
        """Tokenize a chapter's plain text.

        HOW:
        1. Strip printed page numbers when the HTML carries internal links
        2. Normalize whitespace and EPUB artifacts
        3. Split into paragraphs and scan each one
        4. Insert paragraph/page breaks with structural pauses
        5. Attach internal chapter links
        """
        text = chapter.plain_text
        if LINK_SCHEME in chapter.html_content.lower():
            text = _strip_standalone_page_numbers(text)

        # Form feeds would be collapsed by whitespace normalization.
        text = text.replace(PAGE_BREAK_TEXT, "\n\n" + _PAGE_BREAK_ROW + "\n\n")
        normalized = normalize_whitespace(text)
        if not normalized:
            return []

        cleaned = normalize_epub_symbols(normalized)
        block_cues = extract_block_cues(chapter.html_content)
        dialogue = DialogueState()

        paragraphs = [p.strip() for p in _PARAGRAPH_SPLIT_RE.split(cleaned)]
        paragraphs = [p for p in paragraphs if p]

        tokens: List[Token] = []
        last = len(paragraphs) - 1
        for index, paragraph in enumerate(paragraphs):
            page_break = _is_page_break_paragraph(paragraph)
            if page_break:
                tokens.append(Token(text=PAGE_BREAK_TEXT, type=TokenType.PAGE_BREAK))
            else:
                tokens.extend(self._tokenize_paragraph(paragraph, dialogue))

            if index == last or page_break or _is_page_break_paragraph(paragraphs[index + 1]):
                continue
            current_cue = block_cues[index] if index < len(block_cues) else _PARAGRAPH_CUE
            next_cue = block_cues[index + 1] if index + 1 < len(block_cues) else None
            tokens.append(
                Token(
                    text=PARAGRAPH_BREAK_TEXT,
                    type=TokenType.PARAGRAPH_BREAK,
                    pause_after_ms=structural_pause_ms(current_cue, next_cue),
                )
            )

        if chapter.links:
            _apply_links_by_char_positions(tokens, chapter.links)
        _apply_links_from_html(tokens, chapter.html_content)

        logger.debug(
            "Tokenized chapter %s: %d paragraphs, %d tokens",
            chapter.index, len(paragraphs), len(tokens),
        )
        return tokens

    def _tokenize_paragraph(self, paragraph: str, dialogue: DialogueState) -> List[Token]:
        tokens: List[Token] = []
        for match in _TOKEN_RE.finditer(paragraph):
            part = match.group()
            if not part:
                continue
            if len(part) == 1 and (part in PUNCTUATION or part in OPENING_QUOTES or part in CLOSING_QUOTES):
                in_dialogue = dialogue.observe_quote(part)
                tokens.append(Token(text=part, type=TokenType.PUNCTUATION, is_dialogue=in_dialogue))
            else:
                tokens.append(make_word_token(part, is_dialogue=dialogue.in_dialogue))
        return tokens


def make_word_token(text: str, is_dialogue: bool = False) -> Token:
    """Build a WORD token with every linguistic annotation filled in."""
    return Token(
        text=text,
        type=TokenType.WORD,
        orp_index=calculate_orp_index(text),
        syllable_count=count_syllables(text),
        frequency_score=frequency_score(text),
        complexity_multiplier=complexity_multiplier(text),
        is_clause_boundary=is_clause_boundary(text),
        is_dialogue=is_dialogue,
    )


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def normalize_epub_symbols(text: str) -> str:
    """Repair common EPUB artifacts so the token regex sees clean input.

    RULES:
    - Non-breaking and zero-width spaces → " "
    - "..." (or longer) → "…"; an isolated "--" → "—"
    - "Â°" / "Âº" mojibake → "°" / "º"
    - A dash detached from a number (" - 35c") collapses to "-35c"
    - "20 ° C" → "20°C", "20 ℃" → "20℃", "50 %" → "50%"
    """
    text = _ODD_SPACES_RE.sub(" ", text)
    text = _ELLIPSIS_RE.sub("…", text)
    text = _DOUBLE_HYPHEN_RE.sub("—", text)
    text = text.replace("Â°", "°").replace("Âº", "º")
    text = _DETACHED_MINUS_RE.sub(r"\1-\2", text)
    text = _DEGREE_UNIT_RE.sub(r"\1°\2", text)
    text = _DEGREE_SIGN_RE.sub(r"\1\2", text)
    text = _PERCENT_RE.sub(r"\1%", text)
    return text


def is_page_number_text(text: str) -> bool:
    """True for bare page numbers: all digits or a roman numeral."""
    trimmed = text.strip()
    if not trimmed:
        return False
    if trimmed.isdigit():
        return True
    return bool(_ROMAN_NUMERAL_RE.match(trimmed))


def _strip_standalone_page_numbers(text: str) -> str:
    lines = [line for line in text.split("\n") if not is_page_number_text(line)]
    return "\n".join(lines)


def _is_page_break_paragraph(paragraph: str) -> bool:
    if not paragraph.strip():
        return False
    return paragraph == PAGE_BREAK_TEXT or bool(_PAGE_BREAK_RE.match(paragraph))


# ---------------------------------------------------------------------------
# Structural cues
# ---------------------------------------------------------------------------


def extract_block_cues(html: str) -> List[BlockCue]:
    """One cue per block-level opening tag, in document order.

    Cues are matched to paragraphs by position, so the list is only a
    hint: missing entries default to a plain paragraph.
    """
    if not html.strip():
        return []
    cleaned = _SCRIPT_STYLE_RE.sub("", html)
    matches = list(_BLOCK_TAG_RE.finditer(cleaned))

    cues: List[BlockCue] = []
    for i, match in enumerate(matches):
        tag = match.group(1).lower()
        end = matches[i + 1].start() if i + 1 < len(matches) else len(cleaned)
        content = cleaned[match.start():end]
        if tag.startswith("h"):
            kind = "heading"
        elif tag == "li":
            kind = "list_item"
        elif tag == "blockquote":
            kind = "blockquote"
        elif tag == "pre":
            kind = "preformatted"
        else:
            kind = "paragraph"
        cues.append(BlockCue(kind, bool(_EMPHASIS_RE.search(content))))
    return cues


def structural_pause_ms(current: BlockCue, next_cue: Optional[BlockCue]) -> int:
    """Extra pause for the paragraph break between two blocks."""
    extra = 0
    if current.kind == "heading":
        extra += HEADING_AFTER_MS
    elif current.kind == "blockquote":
        extra += BLOCKQUOTE_AFTER_MS
    elif current.kind == "preformatted":
        extra += PREFORMATTED_AFTER_MS
    elif current.kind == "list_item" and (next_cue is None or next_cue.kind != "list_item"):
        extra += LIST_END_AFTER_MS

    if current.has_emphasis:
        extra += EMPHASIS_AFTER_MS

    next_kind = next_cue.kind if next_cue is not None else None
    if next_kind == "heading":
        extra += HEADING_BEFORE_MS
    elif next_kind == "blockquote":
        extra += BLOCKQUOTE_BEFORE_MS
    elif next_kind == "preformatted":
        extra += PREFORMATTED_BEFORE_MS

    return max(0, extra)


# ---------------------------------------------------------------------------
# Internal links
# ---------------------------------------------------------------------------


def _apply_links_by_char_positions(tokens: List[Token], links: Sequence[ChapterLink]) -> None:
    """Tag tokens whose start offset falls inside a link range.

    Offsets are reconstructed by walking the token texts and adding one
    separator character between two consecutive words.
    """
    ordered = sorted(links, key=lambda link: link.start_char)
    link_index = 0
    char_pos = 0
    last = len(tokens) - 1

    for index, token in enumerate(tokens):
        token_start = char_pos
        while link_index < len(ordered) and token_start >= ordered[link_index].end_char:
            link_index += 1
        current = ordered[link_index] if link_index < len(ordered) else None

        char_pos = token_start + len(token.text)
        if index < last and token.is_word and tokens[index + 1].is_word:
            char_pos += 1

        if (
            current is not None
            and current.start_char <= token_start < current.end_char
            and token.link_chapter_index is None
        ):
            tokens[index] = replace(token, link_chapter_index=current.target_chapter_index)


def extract_link_text(inner_html: str) -> str:
    """Visible text of an anchor's inner HTML, whitespace-collapsed."""
    text = BeautifulSoup(inner_html, "html.parser").get_text(" ")
    return " ".join(text.split())


def _find_token_sequence(texts: Sequence[str], sequence: Sequence[str], start: int) -> int:
    if not sequence or not texts:
        return -1
    last_start = len(texts) - len(sequence)
    for i in range(max(0, start), last_start + 1):
        if list(texts[i:i + len(sequence)]) == list(sequence):
            return i
    return -1


def _apply_links_from_html(tokens: List[Token], html: str) -> None:
    """Tag token runs matching the text of rsvp://chapter/N anchors.

    Anchors are processed in document order and matched forward from the
    end of the previous match, so repeated phrases link in sequence.
    """
    if LINK_SCHEME not in html.lower():
        return

    matchable = [i for i, t in enumerate(tokens) if t.is_word or t.is_punctuation]
    if not matchable:
        return
    texts = [tokens[i].text for i in matchable]

    scan = 0
    cursor = 0
    processed = 0
    lower_html = html.lower()
    while scan < len(html) and processed < MAX_LINKS_PER_CHAPTER and cursor < len(texts):
        match = _ANCHOR_OPEN_RE.search(html, scan)
        if match is None:
            break
        chapter_index = int(match.group(1))
        content_start = match.end()
        if content_start >= len(html):
            break
        processed += 1

        close_index = lower_html.find(_ANCHOR_CLOSE, content_start)
        if close_index == -1:
            scan = content_start
            continue
        scan = close_index + len(_ANCHOR_CLOSE)

        inner_length = close_index - content_start
        if inner_length <= 0 or inner_length > MAX_LINK_TEXT_HTML_CHARS:
            continue
        link_text = extract_link_text(html[content_start:close_index])
        if not link_text or is_page_number_text(link_text):
            continue

        normalized = normalize_epub_symbols(normalize_whitespace(link_text))
        link_parts = [m.group() for m in _TOKEN_RE.finditer(normalized) if m.group().strip()]
        if not link_parts:
            continue

        found = _find_token_sequence(texts, link_parts, cursor)
        if found < 0:
            continue
        for offset in range(len(link_parts)):
            token_index = matchable[found + offset]
            token = tokens[token_index]
            if token.link_chapter_index is None:
                tokens[token_index] = replace(token, link_chapter_index=chapter_index)
        cursor = found + len(link_parts)
