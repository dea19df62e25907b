from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Optional

from .config import EngineConfig
from .container import Container
from .models import KIND_IMAGE

logger = logging.getLogger("folio.cover")

COVER_TOKEN = "cover"
COVER_SUFFIX = "-cover"


def find_cover_entry(container: Container) -> Optional[str]:
    for entry in container.entries_of_kind(KIND_IMAGE):
        if COVER_TOKEN in entry.name.lower():
            return entry.name
    return None


def cover_filename(container_path: Path, entry_name: str) -> str:
    ext = PurePosixPath(entry_name).suffix.lower() or ".jpg"
    return f"{container_path.stem}{COVER_SUFFIX}{ext}"


def save_cover_bytes(target_dir: Path, filename: str, data: bytes) -> Path:
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / filename
    path.write_bytes(data)
    return path


def extract_cover(container: Container, config: EngineConfig) -> Optional[str]:
    """Write the first cover-named image out of the archive; return its reference path.

    The whole payload is written before the reference is returned. A failed
    write means the book simply has no cover.
    """
    name = find_cover_entry(container)
    if name is None:
        return None
    filename = cover_filename(container.path, name)
    try:
        save_cover_bytes(config.covers_dir_for(container.path), filename, container.read(name))
    except OSError:
        logger.warning("could not write cover %s for %s", filename, container.path, exc_info=True)
        return None
    return f"{config.cover_url_prefix}/{filename}"
