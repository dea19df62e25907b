from __future__ import annotations

import html
import logging
import re
from pathlib import Path
from typing import Callable, Optional, Union

from lxml import etree as LXML_ET
from lxml import html as lxml_html

from .config import DEFAULTS, IngestDefaults
from .container import Container, open_container
from .models import ChapterReference

logger = logging.getLogger("folio.chapters")

XML_PROLOG_RE = re.compile(r"<\?xml[^>]*\?>", flags=re.IGNORECASE)
DOCTYPE_RE = re.compile(r"<!DOCTYPE[^>]*>", flags=re.IGNORECASE)
HTML_EMPTY_RE = re.compile(r"<html\b[^>]*/>", flags=re.IGNORECASE)
HTML_OPEN_RE = re.compile(r"<html\b[^>]*>", flags=re.IGNORECASE)
HTML_CLOSE_RE = re.compile(r"</html\s*>", flags=re.IGNORECASE)
HEAD_RE = re.compile(r"<head\b[^>]*>.*?</head\s*>", flags=re.IGNORECASE | re.DOTALL)
EMPTY_HEAD_RE = re.compile(r"<head\b[^>]*/>", flags=re.IGNORECASE)
TITLE_RE = re.compile(r"<title\b[^>]*>.*?</title\s*>", flags=re.IGNORECASE | re.DOTALL)
META_LINK_RE = re.compile(r"<(?:meta|link)\b[^>]*>", flags=re.IGNORECASE)


def strip_xml_prolog(markup: str) -> str:
    return XML_PROLOG_RE.sub("", markup)


def strip_doctype(markup: str) -> str:
    return DOCTYPE_RE.sub("", markup)


def replace_root_tag(markup: str) -> str:
    markup = HTML_EMPTY_RE.sub("<div></div>", markup)
    return HTML_CLOSE_RE.sub("</div>", HTML_OPEN_RE.sub("<div>", markup))


def strip_head(markup: str) -> str:
    return EMPTY_HEAD_RE.sub("", HEAD_RE.sub("", markup))


def strip_stray_titles(markup: str) -> str:
    return TITLE_RE.sub("", markup)


def strip_meta_and_links(markup: str) -> str:
    return META_LINK_RE.sub("", markup)


SANITIZE_STEPS: tuple[Callable[[str], str], ...] = (
    strip_xml_prolog,
    strip_doctype,
    replace_root_tag,
    strip_head,
    strip_stray_titles,
    strip_meta_and_links,
)


def sanitize_chapter_markup(markup: str) -> str:
    for step in SANITIZE_STEPS:
        markup = step(markup)
    return markup.strip()


def _extract_title_from_html(html_text: str) -> Optional[str]:
    for pattern in (r"<title[^>]*>(.*?)</title>", r"<h1[^>]*>(.*?)</h1>", r"<h2[^>]*>(.*?)</h2>"):
        match = re.search(pattern, html_text, flags=re.IGNORECASE | re.DOTALL)
        if match:
            text = re.sub(r"<[^>]+>", "", match.group(1))
            text = " ".join(html.unescape(text).split())
            if text:
                return text
    return None


def plain_text(markup: str) -> str:
    try:
        root = lxml_html.fromstring(markup)
    except (LXML_ET.ParserError, ValueError):
        return ""
    return " ".join(root.text_content().split())


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    cut = text[:limit]
    if " " in cut:
        cut = cut.rsplit(" ", 1)[0]
    return f"{cut.rstrip()}…"


def extract_preview_text(container: Container, limit: int) -> Optional[str]:
    """Plain text from the first chapter that has any, cut to ``limit`` characters."""
    if limit <= 0:
        return None
    for entry in container.markup_entries():
        text = plain_text(sanitize_chapter_markup(container.text(entry.name)))
        if text:
            return _truncate(text, limit)
    return None


def chapter_count(path: Union[str, Path]) -> int:
    with open_container(path) as container:
        return max(1, len(container.markup_entries()))


def reading_progress(current_chapter: int, total_chapters: int) -> int:
    """Percentage of the book reached at 1-based ``current_chapter``."""
    if total_chapters <= 0:
        return 0
    percent = int(current_chapter * 100 / total_chapters + 0.5)
    return max(0, min(100, percent))


def _chapter_from_container(
    container: Container, chapter_index: int, defaults: IngestDefaults
) -> ChapterReference:
    entries = container.markup_entries()
    fallback_title = defaults.chapter_title_for(chapter_index + 1)
    if chapter_index < 0 or chapter_index >= len(entries):
        return ChapterReference(
            chapter_index=chapter_index,
            title=fallback_title,
            sanitized_content=defaults.chapter_not_found,
            total_chapters=len(entries),
            is_placeholder=True,
        )

    raw = container.text(entries[chapter_index].name)
    content = sanitize_chapter_markup(raw)
    is_placeholder = not content.strip()
    return ChapterReference(
        chapter_index=chapter_index,
        title=_extract_title_from_html(raw) or fallback_title,
        sanitized_content=defaults.chapter_empty if is_placeholder else content,
        total_chapters=len(entries),
        is_placeholder=is_placeholder,
    )


def get_chapter(
    path: Union[str, Path], chapter_index: int, defaults: IngestDefaults = DEFAULTS
) -> ChapterReference:
    """Sanitized markup of the chapter at 0-based ``chapter_index``.

    Chapters are the markup-content entries sorted by entry name. A missing
    chapter, or one that cannot be read, comes back as a placeholder
    reference; only ContainerOpenError is raised.
    """
    with open_container(path) as container:
        try:
            return _chapter_from_container(container, chapter_index, defaults)
        except Exception:
            logger.exception("failed to load chapter %s from %s", chapter_index, container.path)
            return ChapterReference(
                chapter_index=chapter_index,
                title=defaults.chapter_title_for(chapter_index + 1),
                sanitized_content=defaults.chapter_error,
                is_placeholder=True,
            )
