"""
Catalog feature - persisted media entries and user metadata.
"""
from .models import Bookmark, ExtractedMetadata, MediaEntry, ReconcileResult, ScanItem, ScanResult
from .store import CatalogStore

__all__ = [
    "Bookmark",
    "CatalogStore",
    "ExtractedMetadata",
    "MediaEntry",
    "ReconcileResult",
    "ScanItem",
    "ScanResult",
]
