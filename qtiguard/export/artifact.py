"""Downloadable export result shared by every export format."""
from __future__ import annotations

import re
from dataclasses import dataclass

DEFAULT_SLUG = "questions"


@dataclass(frozen=True)
class ExportArtifact:
    content: bytes
    media_type: str
    filename: str


def slugify(title: str | None) -> str:
    """Filename-safe slug: every non-alphanumeric character becomes ``_``."""
    if not title or not title.strip():
        return DEFAULT_SLUG
    return re.sub(r"[^a-z0-9]", "_", title.strip(), flags=re.IGNORECASE).lower()
