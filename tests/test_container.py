import tempfile
import unittest
from pathlib import Path
import zipfile

from folio.container import (
    ContainerOpenError,
    EntryNotFoundError,
    classify_entry,
    open_container,
)
from folio.models import KIND_DESCRIPTOR, KIND_IMAGE, KIND_MARKUP, KIND_NAVIGATION, KIND_OTHER


CONTAINER_XML = (
    "<?xml version=\"1.0\" encoding=\"UTF-8\"?>"
    "<container version=\"1.0\" xmlns=\"urn:oasis:names:tc:opendocument:xmlns:container\">"
    "<rootfiles><rootfile full-path=\"OPS/package.opf\" media-type=\"application/oebps-package+xml\"/>"
    "</rootfiles></container>"
)


def _write_archive(path: Path, members: list[tuple[str, object]]) -> None:
    with zipfile.ZipFile(path, "w") as zf:
        for name, payload in members:
            zf.writestr(name, payload)


class ClassifyEntryTests(unittest.TestCase):
    def test_kinds_follow_name(self) -> None:
        self.assertEqual(classify_entry("OEBPS/content.opf"), KIND_DESCRIPTOR)
        self.assertEqual(classify_entry("OEBPS/toc.ncx"), KIND_NAVIGATION)
        self.assertEqual(classify_entry("OEBPS/nav.xhtml"), KIND_NAVIGATION)
        self.assertEqual(classify_entry("OEBPS/Text/TOC.html"), KIND_NAVIGATION)
        self.assertEqual(classify_entry("OEBPS/Text/ch1.xhtml"), KIND_MARKUP)
        self.assertEqual(classify_entry("OEBPS/Text/ch2.htm"), KIND_MARKUP)
        self.assertEqual(classify_entry("OEBPS/Images/Cover.JPG"), KIND_IMAGE)
        self.assertEqual(classify_entry("OEBPS/Styles/toc.css"), KIND_OTHER)
        self.assertEqual(classify_entry("mimetype"), KIND_OTHER)

    def test_nav_and_toc_must_be_whole_words(self) -> None:
        for name in ("OEBPS/Text/stockholm.xhtml", "OEBPS/Text/protocol.xhtml", "OEBPS/unavailable.xhtml"):
            self.assertEqual(classify_entry(name), KIND_MARKUP, name)
        for name in ("OEBPS/book-toc.xhtml", "OEBPS/nav_01.html", "OEBPS/Text/TOC02.xhtml"):
            self.assertEqual(classify_entry(name), KIND_NAVIGATION, name)


class OpenContainerTests(unittest.TestCase):
    def test_missing_path_raises_container_open_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(ContainerOpenError):
                open_container(Path(tmp) / "missing.epub")

    def test_non_archive_bytes_raise_container_open_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "book.epub"
            path.write_bytes(b"this is not a zip archive at all")
            with self.assertRaises(ContainerOpenError):
                open_container(path)

    def test_entries_keep_directory_order_and_skip_folders(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "book.epub"
            _write_archive(
                path,
                [
                    ("mimetype", b"application/epub+zip"),
                    ("OEBPS/", b""),
                    ("OEBPS/z.xhtml", "<html/>"),
                    ("OEBPS/a.xhtml", "<html/>"),
                    ("OEBPS/content.opf", "<package/>"),
                ],
            )
            with open_container(path) as container:
                names = [entry.name for entry in container.entries()]
                self.assertEqual(names, ["mimetype", "OEBPS/z.xhtml", "OEBPS/a.xhtml", "OEBPS/content.opf"])
                self.assertEqual(
                    [entry.name for entry in container.markup_entries()],
                    ["OEBPS/a.xhtml", "OEBPS/z.xhtml"],
                )
                self.assertEqual(container.read("OEBPS/a.xhtml"), b"<html/>")

    def test_read_unknown_entry_raises_entry_not_found(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "book.epub"
            _write_archive(path, [("mimetype", b"application/epub+zip")])
            with open_container(path) as container:
                with self.assertRaises(EntryNotFoundError):
                    container.read("OEBPS/missing.xhtml")
                with self.assertRaises(KeyError):
                    container.read("")

    def test_handle_is_released_after_context(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "book.epub"
            _write_archive(path, [("OEBPS/a.xhtml", "<p>a</p>")])
            with open_container(path) as container:
                pass
            with self.assertRaises(ValueError):
                container.read("OEBPS/a.xhtml")

    def test_declared_descriptor_reads_container_xml(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "book.epub"
            _write_archive(
                path,
                [
                    ("META-INF/container.xml", CONTAINER_XML),
                    ("OPS/package.opf", "<package/>"),
                ],
            )
            with open_container(path) as container:
                self.assertEqual(container.declared_descriptor(), "OPS/package.opf")

    def test_declared_descriptor_missing_or_dangling(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            bare = Path(tmp) / "bare.epub"
            _write_archive(bare, [("OPS/package.opf", "<package/>")])
            with open_container(bare) as container:
                self.assertIsNone(container.declared_descriptor())

            dangling = Path(tmp) / "dangling.epub"
            _write_archive(dangling, [("META-INF/container.xml", CONTAINER_XML)])
            with open_container(dangling) as container:
                self.assertIsNone(container.declared_descriptor())


if __name__ == "__main__":
    unittest.main()
