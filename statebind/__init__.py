"""
statebind - Durable State for Finite State Machines
===================================================

Binds an FSM's "current state" to a field on a persisted record:
- Reads that resolve the initial state for new records
- Deferred (in-memory) and persisted (save + rollback) writes
- Initial-state materialization before a record's first save
"""

from .exceptions import StateBindError, ConfigurationError
from .persistence import (
    StatePersistence,
    StatefulMixin,
    set_persistence,
    persistence_for,
)
from .state import StateId, StateCodec, EnumCodec, state_property

__version__ = "0.1.0"
__author__ = "statebind contributors"

__all__ = [
    "StateBindError",
    "ConfigurationError",
    "StatePersistence",
    "StatefulMixin",
    "set_persistence",
    "persistence_for",
    "StateId",
    "StateCodec",
    "EnumCodec",
    "state_property",
]
