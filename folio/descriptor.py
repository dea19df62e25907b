from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Optional

from .container import Container
from .models import KIND_DESCRIPTOR

DESCRIPTOR_PATH_TOKEN = "content.opf"


def _element_pattern(local_name: str) -> re.Pattern[str]:
    # Any namespace prefix (or none); content must be plain text.
    return re.compile(
        rf"<(?:[\w.-]+:)?{local_name}(?=[\s/>])[^>]*>([^<]+)</(?:[\w.-]+:)?{local_name}\s*>",
        flags=re.IGNORECASE,
    )


@dataclass(frozen=True)
class FieldMatcher:
    field: str
    pattern: re.Pattern[str]

    def search(self, text: str) -> Optional[str]:
        match = self.pattern.search(text)
        if not match:
            return None
        value = html.unescape(match.group(1)).strip()
        return value or None


FIELD_MATCHERS: tuple[FieldMatcher, ...] = (
    FieldMatcher("title", _element_pattern("title")),
    FieldMatcher("author", _element_pattern("creator")),
    FieldMatcher("description", _element_pattern("description")),
    FieldMatcher("language", _element_pattern("language")),
    FieldMatcher("publisher", _element_pattern("publisher")),
    FieldMatcher("publish_date", _element_pattern("date")),
)


def select_descriptor(container: Container) -> Optional[str]:
    candidates = [entry.name for entry in container.entries_of_kind(KIND_DESCRIPTOR)]
    if not candidates:
        return None
    declared = container.declared_descriptor()
    if declared in candidates:
        return declared
    for name in candidates:
        if DESCRIPTOR_PATH_TOKEN in name.lower():
            return name
    return candidates[0]


def extract_fields(text: str, matchers: tuple[FieldMatcher, ...] = FIELD_MATCHERS) -> dict[str, str]:
    """Run each matcher over ``text``; only fields that matched are returned."""
    fields: dict[str, str] = {}
    for matcher in matchers:
        if matcher.field in fields:
            continue
        value = matcher.search(text)
        if value is not None:
            fields[matcher.field] = value
    return fields


def extract_descriptor_metadata(container: Container) -> dict[str, str]:
    name = select_descriptor(container)
    if name is None:
        return {}
    return extract_fields(container.text(name))
