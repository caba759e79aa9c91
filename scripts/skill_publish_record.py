#!/usr/bin/env python3
"""
Skill Bundle Validation - Publish Record Draft

Builds the create payload the marketplace store expects for a skill, using
the manifest front matter of a bundle. Only fields supplied by the author are
produced; the store assigns id, stars, downloads and timestamps itself.

Field limits mirror the store's create schema: the name is turned into a
lowercase identifier, text fields are cut to their maximum length and tags
are filtered, so a draft built here is accepted as-is.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from typing import Any

MAX_RECORD_NAME = 100
MAX_RECORD_TITLE = 200
MAX_RECORD_DESCRIPTION = 5000
MAX_RECORD_AUTHOR = 100
MAX_RECORD_CATEGORY = 50
MAX_RECORD_VERSION = 20
MAX_TAGS = 20
MAX_TAG_LENGTH = 50

DEFAULT_AUTHOR = "unknown"
DEFAULT_CATEGORY = "development"
DEFAULT_VERSION = "1.0.0"

H1_PATTERN = re.compile(r"^# (.+)$", re.MULTILINE)
STORE_NAME_PATTERN = re.compile(r"^[a-z0-9-]+$")


@dataclass
class PublishRecord:
    """Author-supplied fields of a marketplace skill record."""

    name: str
    title: str
    description: str = ""
    author: str = DEFAULT_AUTHOR
    category: str = DEFAULT_CATEGORY
    tags: list[str] = field(default_factory=list)
    version: str = DEFAULT_VERSION
    verified: bool = False
    featured: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _text_field(frontmatter: dict[str, Any], key: str, default: str) -> str:
    value = frontmatter.get(key)
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, (str, int, float)):
        text = str(value).strip()
        return text or default
    return default


def normalize_tags(raw: Any) -> list[str]:
    """Normalize the 'tags' field to a list of short, unique strings.

    Accepts a YAML list or a comma-separated string. Non-string entries,
    blanks and tags over MAX_TAG_LENGTH are dropped; at most MAX_TAGS kept.
    """
    if isinstance(raw, str):
        candidates: list[Any] = raw.split(",")
    elif isinstance(raw, list):
        candidates = raw
    else:
        return []

    tags: list[str] = []
    for item in candidates:
        if not isinstance(item, str):
            continue
        tag = item.strip()
        if not tag or len(tag) > MAX_TAG_LENGTH or tag in tags:
            continue
        tags.append(tag)
    return tags[:MAX_TAGS]


def first_heading(body: str) -> str | None:
    """Return the text of the first H1 heading in body, if any."""
    match = H1_PATTERN.search(body)
    if match is None:
        return None
    return match.group(1).strip() or None


def is_store_identifier(name: str) -> bool:
    """Check name is accepted by the store as-is (lowercase, digits, hyphens)."""
    return len(name) <= MAX_RECORD_NAME and STORE_NAME_PATTERN.match(name) is not None


def to_store_identifier(name: str) -> str:
    """Convert a display name such as 'My Skill' to a store identifier ('my-skill').

    Returns an empty string when nothing usable is left.
    """
    slug = re.sub(r"[^a-z0-9-]+", "-", name.lower())
    slug = re.sub(r"-{2,}", "-", slug).strip("-")
    return slug[:MAX_RECORD_NAME].rstrip("-")


def build_publish_record(frontmatter: dict[str, Any], body: str, fallback_name: str) -> PublishRecord:
    """Build a publish record draft from parsed manifest data.

    Args:
        frontmatter: Parsed front matter mapping
        body: Manifest body
        fallback_name: Name to use when the manifest has no usable 'name'
            (normally the bundle directory name)
    """
    display_name = _text_field(frontmatter, "name", fallback_name)
    name = to_store_identifier(display_name) or to_store_identifier(fallback_name) or "skill"
    title = _text_field(frontmatter, "title", first_heading(body) or display_name)

    return PublishRecord(
        name=name,
        title=title[:MAX_RECORD_TITLE],
        description=_text_field(frontmatter, "description", "")[:MAX_RECORD_DESCRIPTION],
        author=_text_field(frontmatter, "author", DEFAULT_AUTHOR)[:MAX_RECORD_AUTHOR],
        category=_text_field(frontmatter, "category", DEFAULT_CATEGORY)[:MAX_RECORD_CATEGORY],
        tags=normalize_tags(frontmatter.get("tags")),
        version=_text_field(frontmatter, "version", DEFAULT_VERSION)[:MAX_RECORD_VERSION],
    )
