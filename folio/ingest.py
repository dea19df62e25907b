from __future__ import annotations

import datetime as dt
import logging
import re
from pathlib import Path
from typing import Optional, Union

from .chapters import extract_preview_text
from .config import DEFAULTS, EngineConfig, IngestDefaults
from .container import Container, open_container
from .cover import extract_cover
from .descriptor import extract_descriptor_metadata
from .models import MetadataBundle
from .navigation import extract_table_of_contents, synthetic_toc

logger = logging.getLogger("folio.ingest")

CONTAINER_SUFFIX = ".epub"
# Stored uploads are named "<user id>-<timestamp>-<original name>".
STORED_PREFIX_RE = re.compile(r"^\d+-\d+-")
SEPARATOR_RE = re.compile(r"[-_]")
WORD_START_RE = re.compile(r"\b\w")


def _now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def title_from_filename(path: Union[str, Path], defaults: IngestDefaults = DEFAULTS) -> str:
    name = Path(path).name
    if name.lower().endswith(CONTAINER_SUFFIX):
        name = name[: -len(CONTAINER_SUFFIX)]
    name = STORED_PREFIX_RE.sub("", name)
    name = SEPARATOR_RE.sub(" ", name)
    name = WORD_START_RE.sub(lambda match: match.group(0).upper(), name).strip()
    return name or defaults.title


def fallback_bundle(
    path: Union[str, Path], now: Optional[str] = None, defaults: IngestDefaults = DEFAULTS
) -> MetadataBundle:
    toc = synthetic_toc(1, defaults)
    return MetadataBundle(
        title=title_from_filename(path, defaults),
        author=defaults.author,
        description=defaults.fallback_description,
        language=defaults.language,
        publisher=defaults.publisher,
        publish_date=now or _now_iso(),
        cover_image_path=None,
        table_of_contents=toc,
        total_chapters=len(toc),
        extracted_preview_text=defaults.fallback_preview_text,
    )


def _build_bundle(container: Container, config: EngineConfig, defaults: IngestDefaults, now: str) -> MetadataBundle:
    fields = extract_descriptor_metadata(container)
    toc = extract_table_of_contents(container, config.nav_selection, defaults)
    preview = extract_preview_text(container, config.preview_chars)
    # Last, so an earlier failure never leaves a cover file behind.
    cover = extract_cover(container, config)
    return MetadataBundle(
        title=fields.get("title") or title_from_filename(container.path, defaults),
        author=fields.get("author") or defaults.author,
        description=fields.get("description") or defaults.description,
        language=fields.get("language") or defaults.language,
        publisher=fields.get("publisher") or defaults.publisher,
        publish_date=fields.get("publish_date") or now,
        cover_image_path=cover,
        table_of_contents=toc,
        total_chapters=len(toc),
        extracted_preview_text=preview or defaults.preview_text,
    )


def parse_container(
    path: Union[str, Path],
    config: Optional[EngineConfig] = None,
    defaults: IngestDefaults = DEFAULTS,
) -> MetadataBundle:
    """Extract the metadata bundle for an uploaded e-book container.

    Raises ContainerOpenError when the file is not a readable zip archive.
    Any other failure is logged and replaced by the fallback bundle: title
    from the filename, one synthetic chapter, no cover.
    """
    config = config or EngineConfig.from_env()
    now = _now_iso()
    with open_container(path) as container:
        try:
            bundle = _build_bundle(container, config, defaults, now)
        except Exception:
            logger.exception("metadata extraction failed for %s, using fallback metadata", container.path)
            return fallback_bundle(container.path, now, defaults)
    logger.info("ingested %s: %r with %d chapters", path, bundle.title, bundle.total_chapters)
    return bundle
