"""
State Persistence Setup
=======================

Installs state persistence on a record type exactly once:

    persistence = set_persistence(
        Order,
        session=session,
        initial_state="pending",
        property="status",
    )

    order = Order(name="first")
    persistence.current_state(order)          # -> StateId('pending')
    persistence.write_state(order, "paid")    # -> True, row saved

Setup resolves the record store from the type (in-memory record types
carry their own store; SQLAlchemy-mapped types are given a
SQLAlchemyStore over ``session``), checks that the state field exists,
registers the initial-state hook with the store, and freezes the
type's binding. Anything wrong is raised here as ConfigurationError,
never later on first use.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from .exceptions import ConfigurationError
from .state.binding import machine_config, own_machine_config, state_property
from .state.codec import StateCodec
from .state.events import EventType, TransitionLog
from .state.strategy import DefaultStrategy, PersistenceStrategy
from .stores.base import RecordStore
from .stores.memory import MemoryRecord
from .stores.orm import SQLAlchemyStore, is_mapped

logger = logging.getLogger(__name__)

_installed: Dict[type, "StatePersistence"] = {}


class StatePersistence:
    """
    The installed state persistence for one record type.

    This is what the FSM engine talks to: it reads the current state for
    guards and display, and commits the new state at the end of a
    transition, deferred or persisted depending on the event.
    """

    def __init__(
        self,
        record_type: type,
        store: RecordStore,
        strategy: PersistenceStrategy,
        event_log: Optional[TransitionLog] = None,
    ):
        self.record_type = record_type
        self.store = store
        self.strategy = strategy
        self.event_log = event_log

    @property
    def config(self):
        return self.strategy.config

    @property
    def codec(self) -> StateCodec:
        return self.strategy.codec

    @property
    def state_property(self) -> str:
        return self.config.property

    @property
    def initial_state(self) -> Any:
        return self.config.initial_state

    # =========================================================================
    # Engine-facing Operations
    # =========================================================================

    def current_state(self, record: Any) -> Optional[Any]:
        """Current state of ``record``, re-read on every call"""
        return self.strategy.read_state(record)

    def write_state_without_persistence(self, record: Any, state: Any) -> None:
        """Stage ``state`` in memory; nothing is saved"""
        previous = self.store.get_field(record, self.state_property)
        self.strategy.write_state_without_persistence(record, state)
        self._log(EventType.STATE_STAGED, record, previous, state)

    def write_state(self, record: Any, state: Any) -> bool:
        """Set ``state`` and save; False (with the field restored) if rejected"""
        previous = self.store.get_field(record, self.state_property)
        if self.strategy.write_state(record, state):
            self._log(EventType.STATE_WRITTEN, record, previous, state)
            return True
        self._log(
            EventType.STATE_WRITE_FAILED,
            record,
            previous,
            state,
            message="save rejected by store",
        )
        return False

    def commit_transition(self, record: Any, state: Any, persist: bool = False) -> bool:
        """
        Terminal step of a transition.

        Events fired with persistence requested save immediately and
        return whether the save went through; other events only stage the
        new state and always return True.
        """
        if persist:
            return self.write_state(record, state)
        self.write_state_without_persistence(record, state)
        return True

    def ensure_initial_state(self, record: Any) -> None:
        """
        Write the resolved current state into the field of a new record.

        Registered with the store to run before the record's first save,
        so a record whose state was never set is stored with the initial
        state.
        """
        if not self.store.is_new(record):
            return
        # Parent hooks also fire for subclass records
        if persistence_for(type(record)) is not self:
            return
        previous = self.store.get_field(record, self.state_property)
        state = self.current_state(record)
        self.store.set_field(record, self.state_property, self.codec.encode(state))
        if previous != self.store.get_field(record, self.state_property):
            self._log(EventType.INITIAL_STATE_MATERIALIZED, record, previous, state)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _log(
        self,
        event_type: EventType,
        record: Any,
        previous: Any,
        state: Any,
        message: Optional[str] = None,
    ) -> None:
        if self.event_log is None:
            return
        self.event_log.append(
            event_type,
            record_type=self.record_type.__name__,
            record_id=self.store.identity(record),
            property=self.state_property,
            from_state=None if previous is None else str(previous),
            to_state=self.codec.encode(state),
            message=message,
        )

    def __repr__(self) -> str:
        return (
            f"<StatePersistence {self.record_type.__name__}.{self.state_property} "
            f"initial={self.initial_state!r}>"
        )


def detect_store(record_type: type, session: Optional[Session] = None) -> RecordStore:
    """Pick the record store for a type from what the type is"""
    if isinstance(record_type, type) and issubclass(record_type, MemoryRecord):
        if record_type.store is None:
            raise ConfigurationError(f"{record_type.__name__} declares no store")
        return record_type.store
    if is_mapped(record_type):
        if session is None:
            raise ConfigurationError(
                f"{record_type.__name__} is a mapped class; a session is required"
            )
        return SQLAlchemyStore(session)
    raise ConfigurationError(f"no record store available for {record_type!r}")


def set_persistence(
    record_type: type,
    store: Optional[RecordStore] = None,
    *,
    initial_state: Any = None,
    property: Optional[str] = None,
    codec: Optional[StateCodec] = None,
    strategy: Optional[PersistenceStrategy] = None,
    session: Optional[Session] = None,
    event_log: Optional[TransitionLog] = None,
) -> StatePersistence:
    """
    Install state persistence on ``record_type``.

    ``initial_state`` and ``property`` fall back to the type's
    ``__state_initial__`` and ``__state_property__`` attributes, then to
    whatever was bound with state_property() beforehand.
    """
    if record_type in _installed:
        raise ConfigurationError(
            f"state persistence is already installed on {record_type.__name__}"
        )

    store = store if store is not None else detect_store(record_type, session)
    codec = codec if codec is not None else StateCodec()

    property = property or getattr(record_type, "__state_property__", None)
    if property is not None:
        state_property(record_type, property)
    own_machine_config(record_type)
    prop = state_property(record_type)
    store.check_field(record_type, prop)

    config = machine_config(record_type)
    if initial_state is None:
        initial_state = getattr(record_type, "__state_initial__", None)
    if initial_state is None:
        initial_state = config.initial_state
    if initial_state is None:
        raise ConfigurationError(f"{record_type.__name__} has no initial state")
    config.initial_state = codec.coerce(initial_state)

    if strategy is None:
        strategy = DefaultStrategy()
    strategy.bind(store, config, codec)

    persistence = StatePersistence(record_type, store, strategy, event_log)
    store.register_before_create(record_type, persistence.ensure_initial_state)
    config.freeze()
    _installed[record_type] = persistence

    logger.info(
        "State persistence installed on %s (property=%s, initial=%s, store=%s)",
        record_type.__name__,
        prop,
        config.initial_state,
        type(store).__name__,
    )
    return persistence


def persistence_for(record_type: type) -> StatePersistence:
    """Installed persistence for a type or its nearest installed ancestor"""
    for klass in record_type.__mro__:
        persistence = _installed.get(klass)
        if persistence is not None:
            return persistence
    raise ConfigurationError(
        f"no state persistence installed on {record_type.__name__}"
    )


class StatefulMixin:
    """
    Instance-level shortcuts for record classes with installed persistence.

        class Order(StatefulMixin, MemoryRecord):
            ...

        order.current_state
        order.write_state("paid")
    """

    @property
    def current_state(self) -> Optional[Any]:
        return persistence_for(type(self)).current_state(self)

    def write_state(self, state: Any) -> bool:
        return persistence_for(type(self)).write_state(self, state)

    def write_state_without_persistence(self, state: Any) -> None:
        persistence_for(type(self)).write_state_without_persistence(self, state)
