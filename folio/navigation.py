from __future__ import annotations

import html
import logging
import re
from pathlib import PurePosixPath
from typing import Optional

from lxml import etree as LXML_ET

from .config import DEFAULTS, NAV_SELECTION_RANKED, IngestDefaults
from .container import NCX_SUFFIX, Container, is_navigation_name, xml_root_from_bytes
from .models import KIND_MARKUP, KIND_NAVIGATION, TocEntry

logger = logging.getLogger("folio.navigation")

NAV_LABEL_RE = re.compile(
    r"<(?:[\w.-]+:)?navLabel\b[^>]*>\s*<(?:[\w.-]+:)?text\b[^>]*>([^<]+)</(?:[\w.-]+:)?text\s*>",
    flags=re.IGNORECASE,
)


def _tag_local_name(tag: object) -> str:
    if not tag or not isinstance(tag, str):
        return ""
    if "}" in tag:
        return tag.split("}", 1)[1]
    return tag


def _node_text(node: Optional[LXML_ET._Element]) -> Optional[str]:
    if node is None:
        return None
    text = " ".join("".join(node.itertext()).split())
    return text or None


def _candidate_rank(name: str) -> int:
    lowered = name.lower()
    if lowered.endswith(NCX_SUFFIX):
        return 0
    if PurePosixPath(lowered).stem == "nav":
        return 1
    return 2


def select_navigation(container: Container, mode: str = "first") -> Optional[str]:
    candidates = [entry.name for entry in container.entries_of_kind(KIND_NAVIGATION)]
    if not candidates:
        return None
    if mode == NAV_SELECTION_RANKED:
        candidates = sorted(candidates, key=_candidate_rank)
    return candidates[0]


def _ncx_rows(root: LXML_ET._Element) -> list[tuple[str, str]]:
    rows: list[tuple[str, str]] = []
    for point in root.xpath(".//*[local-name()='navPoint']"):  # noqa: S320
        label = point.xpath("./*[local-name()='navLabel']/*[local-name()='text'][1]")  # noqa: S320
        if not label:
            continue
        content = point.xpath("./*[local-name()='content'][@src][1]")  # noqa: S320
        href = str(content[0].attrib.get("src") or "").strip() if content else ""
        rows.append((_node_text(label[0]) or "", href))
    return rows


def _nav_document_rows(name: str, root: LXML_ET._Element) -> list[tuple[str, str]]:
    links: list[LXML_ET._Element] = []
    # Outermost <nav> only; nested ones are covered by their parent's links.
    outer_navs = root.xpath(".//*[local-name()='nav'][not(ancestor::*[local-name()='nav'])]")  # noqa: S320
    for nav in outer_navs:
        nav_type = ""
        for key, value in nav.attrib.items():
            if _tag_local_name(key) == "type":
                nav_type = str(value or "").strip().lower()
                break
        if nav_type and nav_type != "toc":
            continue
        links.extend(nav.xpath(".//*[local-name()='a'][@href]"))  # noqa: S320
    if not links and not outer_navs and is_navigation_name(name):
        links = root.xpath(".//*[local-name()='a'][@href]")  # noqa: S320
    return [(_node_text(link) or "", str(link.attrib.get("href") or "").strip()) for link in links]


def _scan_labels(text: str) -> list[tuple[str, str]]:
    return [(html.unescape(match.group(1)).strip(), "") for match in NAV_LABEL_RE.finditer(text)]


def parse_navigation_document(name: str, raw: bytes, defaults: IngestDefaults = DEFAULTS) -> list[TocEntry]:
    """Turn one navigation document into numbered rows, in document order."""
    rows: list[tuple[str, str]] = []
    root = xml_root_from_bytes(raw)
    if root is not None:
        is_ncx = name.lower().endswith(NCX_SUFFIX) or _tag_local_name(root.tag) == "ncx"
        rows = _ncx_rows(root) if is_ncx else _nav_document_rows(name, root)
    if not rows:
        rows = _scan_labels(raw.decode("utf-8", errors="replace"))
    return [
        TocEntry(title=title or defaults.chapter_title_for(number), chapter_number=number, href=href)
        for number, (title, href) in enumerate(rows, start=1)
    ]


def synthetic_toc(count: int, defaults: IngestDefaults = DEFAULTS) -> list[TocEntry]:
    return [
        TocEntry(title=defaults.chapter_title_for(number), chapter_number=number)
        for number in range(1, max(1, count) + 1)
    ]


def extract_table_of_contents(
    container: Container, mode: str = "first", defaults: IngestDefaults = DEFAULTS
) -> list[TocEntry]:
    """Chapter rows from the selected navigation document.

    Falls back to one ``Chapter {n}`` row per markup-content entry, and to a
    single row when there is no content at all; never returns an empty list.
    """
    name = select_navigation(container, mode)
    rows: list[TocEntry] = []
    if name is not None:
        try:
            rows = parse_navigation_document(name, container.read(name), defaults)
        except Exception:
            logger.warning("could not parse navigation document %s in %s", name, container.path, exc_info=True)
            rows = []
    if rows:
        return rows
    return synthetic_toc(len(container.entries_of_kind(KIND_MARKUP)), defaults)
