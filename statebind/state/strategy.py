"""
Persistence Strategies
======================

A record type chooses how its state is read and written once, at setup.
Types that need custom behavior for any of the three operations pass a
strategy (usually a DefaultStrategy subclass overriding only what
differs); everyone else gets DefaultStrategy.

    class AuditedWrites(DefaultStrategy):
        def write_state(self, record, state):
            record.touched_by = current_user()
            return super().write_state(record, state)
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from ..stores.base import RecordStore
from .accessor import StateAccessor
from .binding import MachineConfig
from .codec import StateCodec
from .mutator import StateMutator


class PersistenceStrategy(ABC):
    """Read/write operations for one record type"""

    def bind(self, store: RecordStore, config: MachineConfig, codec: StateCodec) -> "PersistenceStrategy":
        """Attach the strategy to its record type's store and config"""
        self.store = store
        self.config = config
        self.codec = codec
        return self

    @abstractmethod
    def read_state(self, record: Any) -> Optional[Any]:
        ...

    @abstractmethod
    def write_state(self, record: Any, state: Any) -> bool:
        ...

    @abstractmethod
    def write_state_without_persistence(self, record: Any, state: Any) -> None:
        ...


class DefaultStrategy(PersistenceStrategy):
    """Reads through StateAccessor, writes through StateMutator"""

    def bind(self, store, config, codec):
        super().bind(store, config, codec)
        self.accessor = StateAccessor(store, config, codec)
        self.mutator = StateMutator(store, config, codec)
        return self

    def read_state(self, record):
        return self.accessor.read_state(record)

    def write_state(self, record, state):
        return self.mutator.write_state(record, state)

    def write_state_without_persistence(self, record, state):
        self.mutator.write_state_without_persistence(record, state)
