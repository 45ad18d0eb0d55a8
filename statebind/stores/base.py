"""Record store interface consumed by the state accessor and mutator."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional


CreateHook = Callable[[Any], None]


class RecordStore(ABC):
    """
    The durable-storage collaborator.

    Exposes per-record field access by name, an "is new" predicate, a
    save that reports success as a bool, and a hook that runs before a
    new record is first persisted.
    """

    @abstractmethod
    def get_field(self, record: Any, name: str) -> Any:
        ...

    @abstractmethod
    def set_field(self, record: Any, name: str, value: Any) -> None:
        ...

    @abstractmethod
    def is_new(self, record: Any) -> bool:
        """True until the record has been persisted"""

    @abstractmethod
    def save(self, record: Any) -> bool:
        """Persist the record. Returns False when the store rejects it."""

    @abstractmethod
    def check_field(self, record_type: type, name: str) -> None:
        """Raise ConfigurationError if ``name`` is not a field of ``record_type``"""

    @abstractmethod
    def register_before_create(self, record_type: type, hook: CreateHook) -> None:
        """
        Run ``hook(record)`` before a new record of ``record_type`` is first
        persisted, ahead of the store's own validation.
        """

    def identity(self, record: Any) -> Optional[str]:
        """Durable identity of the record, None while it is new"""
        return None
