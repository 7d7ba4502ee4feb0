"""Database adapters."""
from .sqlite import Sqlite

__all__ = ["Sqlite"]
