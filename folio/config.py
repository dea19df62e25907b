from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

NAV_SELECTION_FIRST = "first"
NAV_SELECTION_RANKED = "ranked"
NAV_SELECTION_MODES = (NAV_SELECTION_FIRST, NAV_SELECTION_RANKED)

DEFAULT_COVER_URL_PREFIX = "/uploads/covers"
DEFAULT_PREVIEW_CHARS = 500
MAX_PREVIEW_CHARS = 10_000


@dataclass(frozen=True)
class IngestDefaults:
    title: str
    author: str
    description: str
    fallback_description: str
    language: str
    publisher: str
    preview_text: str
    fallback_preview_text: str
    chapter_title: str
    chapter_not_found: str
    chapter_empty: str
    chapter_error: str

    def chapter_title_for(self, number: int) -> str:
        return self.chapter_title.format(n=number)


DEFAULTS = IngestDefaults(
    title="Untitled Book",
    author="Unknown Author",
    description="EPUB book uploaded successfully.",
    fallback_description="EPUB file uploaded. Metadata extraction was limited.",
    language="en",
    publisher="",
    preview_text="Start reading to view content.",
    fallback_preview_text="Content available when reading.",
    chapter_title="Chapter {n}",
    chapter_not_found="<p>Chapter not found.</p>",
    chapter_empty="<p>Chapter content could not be loaded.</p>",
    chapter_error="<p>Error loading chapter content.</p>",
)


def read_env(name: str, default: Optional[str] = None) -> Optional[str]:
    """Return ``name`` from the environment, or the contents of the file named by ``name_FILE``."""
    value = os.getenv(name)
    if value not in {None, ""}:
        return value

    file_var = os.getenv(f"{name}_FILE")
    if not file_var:
        return default
    try:
        content = Path(file_var).read_text(encoding="utf-8")
    except OSError:
        return default
    content = content.rstrip("\r\n")
    return content or default


def _clamp_int(value: object, minimum: int, maximum: int, default: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return max(minimum, min(maximum, parsed))


@dataclass(frozen=True)
class EngineConfig:
    covers_dir: Optional[Path] = None
    cover_url_prefix: str = DEFAULT_COVER_URL_PREFIX
    nav_selection: str = NAV_SELECTION_FIRST
    preview_chars: int = DEFAULT_PREVIEW_CHARS

    @classmethod
    def from_env(cls) -> "EngineConfig":
        covers = read_env("FOLIO_COVERS_DIR")
        prefix = read_env("FOLIO_COVER_URL_PREFIX", DEFAULT_COVER_URL_PREFIX) or DEFAULT_COVER_URL_PREFIX
        selection = (read_env("FOLIO_NAV_SELECTION", NAV_SELECTION_FIRST) or "").strip().lower()
        if selection not in NAV_SELECTION_MODES:
            selection = NAV_SELECTION_FIRST
        preview = _clamp_int(read_env("FOLIO_PREVIEW_CHARS"), 0, MAX_PREVIEW_CHARS, DEFAULT_PREVIEW_CHARS)
        return cls(
            covers_dir=Path(covers) if covers else None,
            cover_url_prefix=prefix.rstrip("/") or DEFAULT_COVER_URL_PREFIX,
            nav_selection=selection,
            preview_chars=preview,
        )

    def covers_dir_for(self, container_path: Path) -> Path:
        if self.covers_dir is not None:
            return self.covers_dir
        return container_path.parent / "covers"
