"""Load a single chapter from a text or HTML file.

WHY: The CLI and the HTTP API both need a Chapter without pulling in a
full ebook container parser. Plain text and (X)HTML cover the common
cases: a pasted article, an exported chapter, a saved web page.

HOW: Text files are read as UTF-8. HTML is parsed with BeautifulSoup:
scripts and styles are dropped, <br> becomes a newline, block elements
are separated by blank lines so the tokenizer sees paragraphs, and the
raw markup is kept as html_content for structural cues and links.

RULES:
- .txt / .md / .text → plain text, html_content is ""
- .html / .htm / .xhtml → parsed as above
- Anything else raises ValueError naming the suffix
- Title: <title>, then the first heading, then the file stem
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from bs4 import BeautifulSoup

from rsvp_pacer.core.models import Chapter

logger = logging.getLogger(__name__)

TEXT_SUFFIXES = (".txt", ".md", ".text")
HTML_SUFFIXES = (".html", ".htm", ".xhtml")

BLOCK_TAGS = ["p", "div", "h1", "h2", "h3", "h4", "h5", "h6", "li", "blockquote", "pre"]

_TRAILING_SPACE_RE = re.compile(r"[ \t]+\n")
_EXTRA_BLANK_LINES_RE = re.compile(r"\n{3,}")


def html_to_text(html: str) -> str:
    """Readable plain text for an HTML document, paragraphs separated by blank lines."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all(["script", "style", "title"]):
        tag.decompose()
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for tag in soup.find_all(BLOCK_TAGS):
        if not tag.find_parent(BLOCK_TAGS):
            tag.insert_before("\n\n")
            tag.insert_after("\n\n")

    text = soup.get_text(separator="")
    text = _TRAILING_SPACE_RE.sub("\n", text)
    return _EXTRA_BLANK_LINES_RE.sub("\n\n", text).strip()


def html_title(html: str) -> Optional[str]:
    soup = BeautifulSoup(html, "html.parser")
    if soup.title and soup.title.get_text(strip=True):
        return soup.title.get_text(strip=True)
    heading = soup.find(["h1", "h2", "h3"])
    if heading is not None and heading.get_text(strip=True):
        return heading.get_text(strip=True)
    return None


def chapter_from_text(
    text: str,
    html: Optional[str] = None,
    index: int = 0,
    title: Optional[str] = None,
) -> Chapter:
    """Build a Chapter in memory.

    When html is given and text is empty, the plain text is derived from
    the markup.
    """
    html_content = html or ""
    plain_text = text
    if not plain_text.strip() and html_content:
        plain_text = html_to_text(html_content)
    if title is None and html_content:
        title = html_title(html_content)
    return Chapter(index=index, title=title, html_content=html_content, plain_text=plain_text)


def load_chapter(path: Path, index: int = 0) -> Chapter:
    """Read a .txt or .html file into a Chapter.

    Raises:
        FileNotFoundError: The path does not exist.
        ValueError: The file type is not supported.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError("Input file not found: {}".format(path))

    suffix = path.suffix.lower()
    if suffix in TEXT_SUFFIXES:
        text = path.read_text(encoding="utf-8")
        logger.debug("Loaded text chapter %s (%d chars)", path.name, len(text))
        return Chapter(index=index, title=path.stem, html_content="", plain_text=text)

    if suffix in HTML_SUFFIXES:
        html = path.read_text(encoding="utf-8")
        chapter = chapter_from_text("", html=html, index=index)
        if not chapter.title:
            chapter.title = path.stem
        logger.debug("Loaded HTML chapter %s (%d chars of text)", path.name, len(chapter.plain_text))
        return chapter

    raise ValueError(
        "Unsupported input type '{}'. Use one of: {}".format(
            suffix or "(none)", ", ".join(TEXT_SUFFIXES + HTML_SUFFIXES)
        )
    )
