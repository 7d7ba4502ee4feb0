"""Backend-facing alias for shared utilities."""

from mcat_shared import (
    EXTENSIONS,
    CatalogError,
    CatalogIOError,
    ErrorCode,
    ExtractionError,
    MediaType,
    Result,
    ScanError,
    WatcherSetupError,
    classify_file,
    epoch_seconds,
    get_logger,
    log_structured,
    log_success,
    request_id_var,
    sanitize_error_message,
    set_log_level,
    timer,
)

__all__ = [
    "Result",
    "ErrorCode",
    "MediaType",
    "EXTENSIONS",
    "classify_file",
    "get_logger",
    "log_success",
    "log_structured",
    "request_id_var",
    "sanitize_error_message",
    "set_log_level",
    "timer",
    "epoch_seconds",
    "CatalogError",
    "ScanError",
    "ExtractionError",
    "CatalogIOError",
    "WatcherSetupError",
]
