from __future__ import annotations

import posixpath
import re
from pathlib import Path, PurePosixPath
from typing import Optional, Union
import zipfile

from lxml import etree as LXML_ET

from .models import (
    KIND_DESCRIPTOR,
    KIND_IMAGE,
    KIND_MARKUP,
    KIND_NAVIGATION,
    KIND_OTHER,
    Entry,
)

CONTAINER_XML = "META-INF/container.xml"
DESCRIPTOR_SUFFIX = ".opf"
NCX_SUFFIX = ".ncx"
MARKUP_SUFFIXES = (".xhtml", ".html", ".htm")
IMAGE_SUFFIXES = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg")
# "nav"/"toc" as a whole word of the file stem: toc.xhtml, nav_01.html, book-toc.xhtml.
NAV_STEM_RE = re.compile(r"(?:^|[^a-z])(?:nav|toc)(?:[^a-z]|$)")


class ContainerOpenError(ValueError):
    """The path cannot be read or does not hold a zip archive."""


class EntryNotFoundError(KeyError):
    pass


def canonical_member(name: str) -> str:
    normalized = posixpath.normpath((name or "").replace("\\", "/")).lstrip("/")
    while normalized.startswith("../"):
        normalized = normalized[3:]
    return "" if normalized in {"", "."} else normalized


def is_navigation_name(name: str) -> bool:
    return NAV_STEM_RE.search(PurePosixPath(name.lower()).stem) is not None


def classify_entry(name: str) -> str:
    lowered = name.lower()
    if lowered.endswith(DESCRIPTOR_SUFFIX):
        return KIND_DESCRIPTOR
    if lowered.endswith(NCX_SUFFIX):
        return KIND_NAVIGATION
    if lowered.endswith(MARKUP_SUFFIXES):
        if is_navigation_name(name):
            return KIND_NAVIGATION
        return KIND_MARKUP
    if lowered.endswith(IMAGE_SUFFIXES):
        return KIND_IMAGE
    return KIND_OTHER


def xml_root_from_bytes(raw: bytes) -> Optional[LXML_ET._Element]:
    parser = LXML_ET.XMLParser(resolve_entities=False, no_network=True, recover=True)
    try:
        return LXML_ET.fromstring(raw, parser=parser)
    except (LXML_ET.XMLSyntaxError, ValueError):
        return None


class Container:
    """An opened e-book archive.

    Entries are listed once, in archive directory order, and never change
    while the handle is open. Use as a context manager so the underlying
    zip file is released on every exit path.
    """

    def __init__(self, path: Path, archive: zipfile.ZipFile) -> None:
        self.path = path
        self._archive = archive
        self._entries: list[Entry] = []
        self._canonical: dict[str, str] = {}
        for info in archive.infolist():
            if info.is_dir():
                continue
            self._entries.append(Entry(name=info.filename, kind=classify_entry(info.filename), size=info.file_size))
            canonical = canonical_member(info.filename)
            if canonical and canonical not in self._canonical:
                self._canonical[canonical] = info.filename

    def __enter__(self) -> "Container":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._archive.close()

    def entries(self) -> list[Entry]:
        return list(self._entries)

    def entries_of_kind(self, kind: str) -> list[Entry]:
        return [entry for entry in self._entries if entry.kind == kind]

    def markup_entries(self) -> list[Entry]:
        """Markup-content entries in chapter order (entry name, ascending)."""
        return sorted(self.entries_of_kind(KIND_MARKUP), key=lambda entry: entry.name)

    def locate(self, member_path: str) -> Optional[str]:
        canonical = canonical_member(member_path)
        if not canonical:
            return None
        if canonical in self._canonical:
            return self._canonical[canonical]
        lowered = canonical.lower()
        for key, actual in self._canonical.items():
            if key.lower() == lowered:
                return actual
        return None

    def read(self, name: str) -> bytes:
        actual = self.locate(name)
        if actual is None:
            raise EntryNotFoundError(name)
        return self._archive.read(actual)

    def text(self, name: str) -> str:
        return self.read(name).decode("utf-8", errors="replace")

    def declared_descriptor(self) -> Optional[str]:
        """Descriptor path named by META-INF/container.xml, when it exists in the archive."""
        try:
            raw = self.read(CONTAINER_XML)
        except EntryNotFoundError:
            return None
        root = xml_root_from_bytes(raw)
        if root is None:
            return None
        for node in root.xpath(".//*[local-name()='rootfile'][@full-path]"):  # noqa: S320
            actual = self.locate(str(node.attrib.get("full-path") or ""))
            if actual:
                return actual
        return None


def open_container(path: Union[str, Path]) -> Container:
    container_path = Path(path)
    try:
        archive = zipfile.ZipFile(container_path, "r")
    except (zipfile.BadZipFile, OSError) as exc:
        raise ContainerOpenError(f"Cannot open e-book container {container_path}: {exc}") from exc
    try:
        return Container(container_path, archive)
    except Exception:
        archive.close()
        raise
