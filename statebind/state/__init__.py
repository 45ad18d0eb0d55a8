"""
State Module
============

The read/write/initialization protocol for a record's state field:
1. Codec (identifier <-> stored string)
2. Property binding (which field, which initial state)
3. Accessor and mutator, composed by a persistence strategy
"""

from .codec import StateId, StateCodec, EnumCodec, is_blank
from .binding import DEFAULT_STATE_PROPERTY, MachineConfig, machine_config, state_property
from .accessor import StateAccessor
from .mutator import StateMutator
from .strategy import PersistenceStrategy, DefaultStrategy
from .events import EventType, TransitionEvent, TransitionLog

__all__ = [
    "StateId",
    "StateCodec",
    "EnumCodec",
    "is_blank",
    "DEFAULT_STATE_PROPERTY",
    "MachineConfig",
    "machine_config",
    "state_property",
    "StateAccessor",
    "StateMutator",
    "PersistenceStrategy",
    "DefaultStrategy",
    "EventType",
    "TransitionEvent",
    "TransitionLog",
]
