"""
In-Memory Record Store
======================

A small ActiveRecord-style store that keeps rows in a dict. Used for
tests, prototyping, and as the reference implementation of the
RecordStore contract.

    store = MemoryStore()

    class Order(MemoryRecord):
        field_names = ("name", "status")
        store = store

    order = Order(name="first")
    order.save()                    # -> True
    Order.store.find(Order, order.id)
"""

import copy
import itertools
import logging
from typing import Any, Callable, Dict, List, Optional

from ..exceptions import ConfigurationError
from .base import CreateHook, RecordStore

logger = logging.getLogger(__name__)

Validator = Callable[[Any], bool]


class MemoryRecord:
    """A record whose fields live in a plain dict"""

    field_names: tuple = ()
    store: Optional["MemoryStore"] = None

    def __init__(self, **values: Any):
        unknown = set(values) - set(self.field_names)
        if unknown:
            raise TypeError(
                f"{type(self).__name__} has no fields {sorted(unknown)}"
            )
        self.id: Optional[int] = None
        self.fields: Dict[str, Any] = {name: None for name in self.field_names}
        self.fields.update(values)

    def __getitem__(self, name: str) -> Any:
        return self.fields[name]

    def __setitem__(self, name: str, value: Any) -> None:
        if name not in self.fields:
            raise KeyError(name)
        self.fields[name] = value

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal attribute lookup fails
        fields = self.__dict__.get("fields")
        if fields is not None and name in fields:
            return fields[name]
        raise AttributeError(name)

    @property
    def is_new(self) -> bool:
        return self.id is None

    def _store(self) -> "MemoryStore":
        if self.store is None:
            raise ConfigurationError(f"{type(self).__name__} has no store")
        return self.store

    def save(self) -> bool:
        return self._store().save(self)

    def reload(self) -> "MemoryRecord":
        self._store().reload(self)
        return self

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id} {self.fields}>"


class MemoryStore(RecordStore):
    """Dict-backed store for MemoryRecord subclasses"""

    def __init__(self):
        self._rows: Dict[type, Dict[int, Dict[str, Any]]] = {}
        self._ids = itertools.count(1)
        self._before_create: Dict[type, List[CreateHook]] = {}
        self._validators: Dict[type, List[Validator]] = {}

    # =========================================================================
    # RecordStore Interface
    # =========================================================================

    def get_field(self, record: MemoryRecord, name: str) -> Any:
        return record.fields.get(name)

    def set_field(self, record: MemoryRecord, name: str, value: Any) -> None:
        record[name] = value

    def is_new(self, record: MemoryRecord) -> bool:
        return record.is_new

    def identity(self, record: MemoryRecord) -> Optional[str]:
        return None if record.id is None else str(record.id)

    def check_field(self, record_type: type, name: str) -> None:
        if not (isinstance(record_type, type) and issubclass(record_type, MemoryRecord)):
            raise ConfigurationError(
                f"{record_type!r} is not a MemoryRecord type"
            )
        if name not in record_type.field_names:
            raise ConfigurationError(
                f"{record_type.__name__} has no field {name!r} "
                f"(fields: {', '.join(record_type.field_names) or 'none'})"
            )

    def register_before_create(self, record_type: type, hook: CreateHook) -> None:
        self._before_create.setdefault(record_type, []).append(hook)

    def save(self, record: MemoryRecord) -> bool:
        """
        Persist a record.

        New records run their create hooks first, then every record runs
        the validators for its type. A falsy validator result rejects the
        save and nothing is stored.
        """
        record_type = type(record)
        if record.is_new:
            for hook in self._hooks_for(self._before_create, record_type):
                hook(record)

        for validator in self._hooks_for(self._validators, record_type):
            if not validator(record):
                logger.info(
                    "%s rejected by validator %s",
                    record_type.__name__,
                    getattr(validator, "__name__", repr(validator)),
                )
                return False

        if record.is_new:
            record.id = next(self._ids)
        self._table(record_type)[record.id] = copy.deepcopy(record.fields)
        return True

    # =========================================================================
    # Store Operations
    # =========================================================================

    def add_validator(self, record_type: type, validator: Validator) -> None:
        """Register a predicate every save of ``record_type`` must pass"""
        self._validators.setdefault(record_type, []).append(validator)

    def find(self, record_type: type, record_id: int) -> Optional[MemoryRecord]:
        """Fresh instance built from the stored row, or None"""
        row = self._table(record_type).get(record_id)
        if row is None:
            return None
        record = record_type(**copy.deepcopy(row))
        record.id = record_id
        return record

    def all(self, record_type: type) -> List[MemoryRecord]:
        return [self.find(record_type, record_id) for record_id in sorted(self._table(record_type))]

    def reload(self, record: MemoryRecord) -> None:
        """Replace in-memory fields with the stored row"""
        row = self._table(type(record)).get(record.id)
        if row is None:
            raise KeyError(f"{type(record).__name__} {record.id} is not stored")
        record.fields = copy.deepcopy(row)

    def _table(self, record_type: type) -> Dict[int, Dict[str, Any]]:
        return self._rows.setdefault(record_type, {})

    @staticmethod
    def _hooks_for(registry: Dict[type, list], record_type: type) -> list:
        hooks = []
        for klass in reversed(record_type.__mro__):
            hooks.extend(registry.get(klass, ()))
        return hooks
