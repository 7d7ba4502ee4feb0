"""Shared utilities for the media catalog."""
from .errors import (
    CatalogError,
    CatalogIOError,
    ExtractionError,
    ScanError,
    WatcherSetupError,
    sanitize_error_message,
)
from .log import get_logger, log_structured, log_success, request_id_var, set_log_level
from .result import Result
from .time import epoch_seconds, timer
from .types import EXTENSIONS, ErrorCode, MediaType, classify_file

__all__ = [
    "Result",
    "get_logger",
    "log_success",
    "log_structured",
    "request_id_var",
    "set_log_level",
    "epoch_seconds",
    "timer",
    "ErrorCode",
    "MediaType",
    "EXTENSIONS",
    "classify_file",
    "CatalogError",
    "ScanError",
    "ExtractionError",
    "CatalogIOError",
    "WatcherSetupError",
    "sanitize_error_message",
]
