"""
Result type returned by catalog operations.

Store, extractor and service methods hand failures back as values; only the
catalog error taxonomy in `errors.py` is raised, and it converts to a Result at
the operation boundary.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar

from .types import ErrorCode

T = TypeVar("T")
U = TypeVar("U")


@dataclass
class Result(Generic[T]):
    """
    Outcome of a catalog operation.

    Usage:
        res = await store.get(path)
        if not res.ok:
            logger.warning("[%s] %s", res.code, res.error)
    """
    ok: bool
    data: Optional[T] = None
    error: Optional[str] = None
    code: str = "OK"
    meta: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def Ok(data: T, **meta: Any) -> "Result[T]":
        return Result(ok=True, data=data, meta=meta)

    @staticmethod
    def Err(code: ErrorCode | str | Enum, error: str, **meta: Any) -> "Result[T]":
        code_value = code.value if isinstance(code, Enum) else code
        return Result(ok=False, error=error, code=str(code_value), meta=meta)

    def map(self, fn: Callable[[T], U]) -> "Result[U]":
        """Transform the payload of a successful result; errors pass through untouched."""
        if not self.ok or self.data is None:
            return self  # type: ignore[return-value]
        return Result(ok=True, data=fn(self.data), meta=self.meta)

    def unwrap(self) -> T:
        if not self.ok or self.data is None:
            raise ValueError(f"[{self.code}] {self.error}")
        return self.data

    def unwrap_or(self, default: T) -> T:
        return self.data if (self.ok and self.data is not None) else default

    def to_payload(self) -> dict[str, Any]:
        """The `{ok, data, error, code, meta}` envelope sent to HTTP clients."""
        return {
            "ok": self.ok,
            "data": self.data,
            "error": self.error,
            "code": self.code,
            "meta": self.meta,
        }
