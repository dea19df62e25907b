from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

KIND_DESCRIPTOR = "descriptor"
KIND_NAVIGATION = "navigation"
KIND_MARKUP = "markup-content"
KIND_IMAGE = "image"
KIND_OTHER = "other"


@dataclass(frozen=True)
class Entry:
    name: str
    kind: str
    size: int = 0


@dataclass
class TocEntry:
    title: str
    chapter_number: int
    href: str = ""


@dataclass
class MetadataBundle:
    title: str
    author: str
    description: str
    language: str
    publisher: str
    publish_date: str
    cover_image_path: Optional[str] = None
    table_of_contents: list[TocEntry] = field(default_factory=list)
    total_chapters: int = 0
    extracted_preview_text: str = ""


@dataclass
class ChapterReference:
    chapter_index: int
    title: str
    sanitized_content: str
    total_chapters: int = 0
    is_placeholder: bool = False


@dataclass
class Bookmark:
    chapter: int
    position: str = ""
    note: str = ""
    created_at: str = ""


def toc_entry_to_dict(entry: TocEntry) -> dict:
    return {
        "title": entry.title,
        "chapter": entry.chapter_number,
        "href": entry.href,
    }


def toc_entry_from_dict(data: dict) -> TocEntry:
    return TocEntry(
        title=str(data.get("title") or ""),
        chapter_number=int(data.get("chapter") or 0),
        href=str(data.get("href") or ""),
    )


def bundle_to_dict(bundle: MetadataBundle) -> dict:
    return {
        "title": bundle.title,
        "author": bundle.author,
        "description": bundle.description,
        "language": bundle.language,
        "publisher": bundle.publisher,
        "publish_date": bundle.publish_date,
        "cover_image": bundle.cover_image_path,
        "table_of_contents": [toc_entry_to_dict(entry) for entry in bundle.table_of_contents],
        "total_chapters": bundle.total_chapters,
        "extracted_text": bundle.extracted_preview_text,
    }


def bundle_from_dict(data: dict) -> MetadataBundle:
    toc = [toc_entry_from_dict(item) for item in data.get("table_of_contents", [])]
    return MetadataBundle(
        title=data.get("title", ""),
        author=data.get("author", ""),
        description=data.get("description", ""),
        language=data.get("language", ""),
        publisher=data.get("publisher", ""),
        publish_date=data.get("publish_date", ""),
        cover_image_path=data.get("cover_image"),
        table_of_contents=toc,
        total_chapters=int(data.get("total_chapters", len(toc))),
        extracted_preview_text=data.get("extracted_text", ""),
    )


def chapter_to_dict(chapter: ChapterReference) -> dict:
    return {
        "chapter_index": chapter.chapter_index,
        "title": chapter.title,
        "content": chapter.sanitized_content,
        "total_chapters": chapter.total_chapters,
        "placeholder": chapter.is_placeholder,
    }


def bookmark_to_dict(bookmark: Bookmark) -> dict:
    return {
        "chapter": bookmark.chapter,
        "position": bookmark.position,
        "note": bookmark.note,
        "created_at": bookmark.created_at,
    }


def bookmark_from_dict(data: dict) -> Bookmark:
    return Bookmark(
        chapter=data.get("chapter", 0),
        position=data.get("position") or "",
        note=data.get("note") or "",
        created_at=data.get("created_at") or "",
    )
