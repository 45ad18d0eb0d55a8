"""
SQLAlchemy Record Store
=======================

Binds state to a column on a SQLAlchemy-mapped class.

- Fields are mapped column attributes
- "New" means transient or pending (never flushed)
- save() commits the record's session; database errors roll the
  session back and are reported as False
- The create hook is a mapper ``before_insert`` listener, so it runs
  before the INSERT and before any database constraint is checked
"""

import logging
from typing import Any, Optional

from sqlalchemy import event, inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, object_session

from ..exceptions import ConfigurationError
from .base import CreateHook, RecordStore

logger = logging.getLogger(__name__)


def is_mapped(record_type: Any) -> bool:
    """True if ``record_type`` is a SQLAlchemy-mapped class"""
    return isinstance(record_type, type) and inspect(record_type, raiseerr=False) is not None


class SQLAlchemyStore(RecordStore):
    """
    Record store over a SQLAlchemy session.

    Records already attached to a session are saved through that session;
    detached ones are added to the store's session.
    """

    def __init__(self, session: Session):
        self.session = session

    def get_field(self, record: Any, name: str) -> Any:
        # Reading an expired attribute must not flush pending changes
        with (object_session(record) or self.session).no_autoflush:
            return getattr(record, name)

    def set_field(self, record: Any, name: str, value: Any) -> None:
        setattr(record, name, value)

    def is_new(self, record: Any) -> bool:
        state = inspect(record)
        return state.transient or state.pending

    def identity(self, record: Any) -> Optional[str]:
        key = inspect(record).identity
        if not key:
            return None
        return ",".join(str(part) for part in key)

    def save(self, record: Any) -> bool:
        session = object_session(record) or self.session
        try:
            session.add(record)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.warning("Save of %s failed: %s", type(record).__name__, e)
            return False
        return True

    def check_field(self, record_type: type, name: str) -> None:
        if not is_mapped(record_type):
            raise ConfigurationError(f"{record_type!r} is not a mapped class")
        mapper = inspect(record_type)
        if name not in mapper.column_attrs:
            raise ConfigurationError(
                f"{record_type.__name__} has no mapped column {name!r}"
            )

    def register_before_create(self, record_type: type, hook: CreateHook) -> None:
        if not is_mapped(record_type):
            raise ConfigurationError(
                f"cannot register an insert hook on unmapped {record_type!r}"
            )

        def before_insert(mapper, connection, target):
            hook(target)

        event.listen(record_type, "before_insert", before_insert, propagate=True)
