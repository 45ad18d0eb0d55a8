"""Record stores the state field can be persisted through."""

from .base import RecordStore
from .memory import MemoryRecord, MemoryStore
from .orm import SQLAlchemyStore, is_mapped

__all__ = [
    "RecordStore",
    "MemoryRecord",
    "MemoryStore",
    "SQLAlchemyStore",
    "is_mapped",
]
