"""Resolves the current state of a record."""

from typing import Any, Optional

from ..stores.base import RecordStore
from .binding import MachineConfig
from .codec import StateCodec, is_blank


class StateAccessor:
    """
    Pure projection of a record's state field.

    Nothing is cached: every call re-reads the field, so direct writes to
    the field and reloads of the record are seen immediately.
    """

    def __init__(self, store: RecordStore, config: MachineConfig, codec: StateCodec):
        self.store = store
        self.config = config
        self.codec = codec

    def read_state(self, record: Any) -> Optional[Any]:
        """
        Current state of ``record``.

        A new record with a blank field reads as the initial state; a
        persisted record with a None field reads as None so that missing
        states surface in validation rather than being papered over.
        """
        raw = self.store.get_field(record, self.config.property)
        if self.store.is_new(record):
            if is_blank(raw):
                return self.config.initial_state
            return self.codec.decode(raw)
        if raw is None:
            return None
        return self.codec.decode(raw)
