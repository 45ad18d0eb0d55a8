"""
State Mutator
=============

Applies a new state to a record in one of two modes:

- write_state_without_persistence: in-memory only, no save
- write_state: set, save, and restore the previous value if the save
  is rejected
"""

import logging
from typing import Any

from ..stores.base import RecordStore
from .binding import MachineConfig
from .codec import StateCodec

logger = logging.getLogger(__name__)


class StateMutator:
    """Writes the string form of a state to the record's state field"""

    def __init__(self, store: RecordStore, config: MachineConfig, codec: StateCodec):
        self.store = store
        self.config = config
        self.codec = codec

    def write_state_without_persistence(self, record: Any, state: Any) -> None:
        """
        Stage ``state`` on the in-memory record. The store is not touched;
        a later save makes it durable.
        """
        self.store.set_field(record, self.config.property, self.codec.encode(state))

    def write_state(self, record: Any, state: Any) -> bool:
        """
        Set ``state`` and save the record.

        Returns True once the new state is durable. If the store rejects
        the save, the state field (and only the state field) is put back
        to its previous value and False is returned.
        """
        prop = self.config.property
        encoded = self.codec.encode(state)
        old_value = self.store.get_field(record, prop)

        self.store.set_field(record, prop, encoded)
        try:
            saved = self.store.save(record)
        except Exception:
            self.store.set_field(record, prop, old_value)
            raise

        if not saved:
            self.store.set_field(record, prop, old_value)
            logger.warning(
                "%s: save rejected, %s restored to %r (wanted %r)",
                type(record).__name__,
                prop,
                old_value,
                encoded,
            )
            return False

        return True
