"""
Chapter HTML Parser - structured extraction from chapter documents.

Walks the document once in order, collecting headings, paragraphs, code
blocks, images and links. Each heading opens a section that receives the
paragraphs and code blocks following it until the next heading.
"""

from __future__ import annotations

import logging
import re

from bs4 import BeautifulSoup, Tag

from orm_discovery.domain.entities import (
    CodeBlock,
    Heading,
    ImageRef,
    LinkRef,
    ParsedChapter,
    Section,
)
from orm_discovery.shared.exceptions import ParseError

logger = logging.getLogger(__name__)

HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
CODE_CLASSES = frozenset({"highlight", "code"})
LANGUAGE_PATTERN = re.compile(r"(?:language-|highlight-)(\w+)")
CAPTION_MARKERS = ("example", "listing")


def _classes(tag: Tag) -> list[str]:
    value = tag.get("class") or []
    return [value] if isinstance(value, str) else list(value)


def _attr(tag: Tag, name: str) -> str:
    value = tag.get(name)
    if isinstance(value, list):
        return " ".join(value)
    return (value or "").strip()


def _language(tag: Tag) -> str:
    candidates = [tag]
    inner = tag.find("code") if tag.name == "pre" else None
    if isinstance(inner, Tag):
        candidates.append(inner)
    for candidate in candidates:
        match = LANGUAGE_PATTERN.search(" ".join(_classes(candidate)))
        if match:
            return match.group(1)
    return ""


def _caption(tag: Tag) -> str:
    """Captions follow the block, either as its sibling or its wrapper's sibling."""
    holders = [tag, tag.parent] if isinstance(tag.parent, Tag) else [tag]
    for holder in holders:
        sibling = holder.find_next_sibling()
        if sibling is None:
            continue
        if sibling.name == "p" or "caption" in _classes(sibling):
            text = sibling.get_text().strip()
            if any(marker in text.lower() for marker in CAPTION_MARKERS):
                return text
    return ""


def _is_code_block(tag: Tag) -> bool:
    if tag.name == "pre":
        return True
    if tag.find_parent("pre") is not None:
        return False
    classes = _classes(tag)
    return bool(CODE_CLASSES.intersection(classes)) or any(LANGUAGE_PATTERN.search(c) for c in classes)


def _link_type(href: str) -> str:
    if href.startswith(("http://", "https://")):
        return "external"
    if href.startswith("#"):
        return "anchor"
    return "internal"


def _title(soup: BeautifulSoup) -> str:
    for candidate in (soup.title, soup.find("h1")):
        if isinstance(candidate, Tag):
            text = candidate.get_text().strip()
            if text:
                return text
    return ""


def parse_chapter_html(html: str) -> ParsedChapter:
    """
    Parse a chapter document into a ParsedChapter.

    Raises:
        ParseError: If the document cannot be parsed at all.
    """
    try:
        soup = BeautifulSoup(html, "html.parser")
    except (TypeError, ValueError) as e:
        raise ParseError(f"Chapter HTML could not be parsed: {e}") from e

    chapter = ParsedChapter(title=_title(soup))
    current: Section | None = None

    for tag in soup.find_all([*HEADING_TAGS, "p", "pre", "code", "img", "a"]):
        name = tag.name
        if name in HEADING_TAGS:
            text = tag.get_text().strip()
            if not text:
                continue
            heading = Heading(level=int(name[1]), text=text, id=_attr(tag, "id"))
            chapter.headings.append(heading)
            current = Section(heading=heading)
            chapter.sections.append(current)

        elif name == "p":
            text = tag.get_text().strip()
            if text:
                chapter.paragraphs.append(text)
                if current is not None:
                    current.paragraphs.append(text)

        elif name in ("pre", "code"):
            if not _is_code_block(tag):
                continue
            code = tag.get_text().strip()
            if not code:
                continue
            block = CodeBlock(code=code, language=_language(tag), caption=_caption(tag))
            chapter.code_blocks.append(block)
            if current is not None:
                current.code_blocks.append(block)

        elif name == "img":
            src = _attr(tag, "src")
            if src:
                chapter.images.append(ImageRef(src=src, alt=_attr(tag, "alt")))

        elif name == "a":
            href = _attr(tag, "href")
            text = tag.get_text().strip()
            if href and text:
                chapter.links.append(LinkRef(href=href, text=text, type=_link_type(href)))

    logger.debug(
        f"Parsed chapter: {len(chapter.headings)} headings, {len(chapter.paragraphs)} paragraphs, "
        f"{len(chapter.code_blocks)} code blocks"
    )
    return chapter
