"""
Catalog data model: entries, bookmarks, scan items and pass results.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any

from ...shared import MediaType


@dataclass(frozen=True)
class Bookmark:
    description: str
    timestamp_seconds: float

    def to_dict(self) -> dict[str, Any]:
        return {"description": self.description, "timestamp": self.timestamp_seconds}


@dataclass
class MediaEntry:
    """One cataloged media file. `path` is the unique key."""

    path: str
    title: str
    media_type: MediaType
    duration_seconds: float | None = None
    thumbnail_ref: str | None = None
    tags: set[str] = field(default_factory=set)
    bookmarks: list[Bookmark] = field(default_factory=list)

    def moved_to(self, new_path: str) -> "MediaEntry":
        """Same entry carried onto a new path; tags and bookmarks are kept as-is."""
        return MediaEntry(
            path=new_path,
            title=PurePath(new_path).name,
            media_type=self.media_type,
            duration_seconds=self.duration_seconds,
            thumbnail_ref=self.thumbnail_ref,
            tags=set(self.tags),
            bookmarks=list(self.bookmarks),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "title": self.title,
            "type": self.media_type.value,
            "length": self.duration_seconds,
            "thumbnail": self.thumbnail_ref,
            "tags": sorted(self.tags),
            "bookmarks": [b.to_dict() for b in self.bookmarks],
        }


@dataclass(frozen=True)
class ScanItem:
    path: str
    basename: str
    media_type: MediaType


@dataclass
class ScanResult:
    """Media files found by one walk of a root. Never persisted."""

    root: str
    items: list[ScanItem] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)

    @property
    def paths(self) -> set[str]:
        return {item.path for item in self.items}


@dataclass(frozen=True)
class ExtractedMetadata:
    duration_seconds: float | None
    thumbnail_ref: str | None


@dataclass
class ReconcileResult:
    """
    Classification of one pass plus the catalog it produces.

    `renamed` holds (old_path, new_path) pairs; `added` holds the entries created
    from successful extractions; `errors` holds one record per failed item.
    """

    added: list[MediaEntry] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    renamed: list[tuple[str, str]] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)
    catalog: dict[str, MediaEntry] = field(default_factory=dict)

    @property
    def has_mutations(self) -> bool:
        return bool(self.added or self.deleted or self.renamed)

    def summary(self) -> dict[str, int]:
        return {
            "added": len(self.added),
            "deleted": len(self.deleted),
            "renamed": len(self.renamed),
            "unchanged": len(self.unchanged),
            "errors": len(self.errors),
        }
