from types import SimpleNamespace
from typing import Optional

import pytest
from sqlalchemy import CheckConstraint, String, create_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column

from statebind import StatefulMixin
from statebind.state import MachineConfig, StateCodec, StateId
from statebind.stores import MemoryRecord, MemoryStore


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def make_record_type(store):
    """Build a fresh MemoryRecord subclass so each test gets its own binding"""

    def factory(name="Order", field_names=("name", "aasm_state"), **attrs):
        namespace = {"field_names": tuple(field_names), "store": store}
        namespace.update(attrs)
        return type(name, (StatefulMixin, MemoryRecord), namespace)

    return factory


@pytest.fixture
def config():
    return MachineConfig(property="aasm_state", initial_state=StateId("opened"), frozen=True)


@pytest.fixture
def codec():
    return StateCodec()


@pytest.fixture
def save_spy(store, monkeypatch):
    """Record every call to store.save while still saving"""
    calls = []
    original = store.save

    def spy(record):
        calls.append(record)
        return original(record)

    monkeypatch.setattr(store, "save", spy)
    return calls


@pytest.fixture
def orm(tmp_path):
    class Base(DeclarativeBase):
        pass

    class Ticket(Base):
        __tablename__ = "tickets"
        __table_args__ = (CheckConstraint("status != 'forbidden'", name="ck_ticket_status"),)

        id: Mapped[int] = mapped_column(primary_key=True)
        title: Mapped[str] = mapped_column(String(100))
        status: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
        kind: Mapped[str] = mapped_column(String(20), default="ticket")

        __mapper_args__ = {"polymorphic_on": "kind", "polymorphic_identity": "ticket"}

    class UrgentTicket(Ticket):
        __mapper_args__ = {"polymorphic_identity": "urgent"}

    engine = create_engine(f"sqlite:///{tmp_path / 'tickets.db'}")
    Base.metadata.create_all(engine)
    session = Session(engine)

    yield SimpleNamespace(Base=Base, Ticket=Ticket, UrgentTicket=UrgentTicket, engine=engine, session=session)

    session.close()
    engine.dispose()
