"""
Metadata feature - duration and thumbnail extraction.
"""
from .extractor import MediaMetadataExtractor, MetadataExtractor, thumbnail_name_for

__all__ = ["MediaMetadataExtractor", "MetadataExtractor", "thumbnail_name_for"]
