"""
State Identifier Codec
======================

The record store only understands strings, the FSM engine only
understands identifiers. Every read and write crosses this boundary
through a codec:

    StateCodec().decode("opened")       -> StateId("opened")
    StateCodec().encode(StateId("x"))   -> "x"
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Type


@dataclass(frozen=True)
class StateId:
    """Symbolic token naming one state of a machine"""
    name: str

    def __post_init__(self):
        if not isinstance(self.name, str):
            raise TypeError(
                f"state name must be a string, got {type(self.name).__name__}"
            )

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"StateId({self.name!r})"


def is_blank(value: Any) -> bool:
    """True for None and for empty or whitespace-only strings"""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


class StateCodec:
    """Default codec: stored strings <-> StateId"""

    def decode(self, raw: Any) -> StateId:
        """Coerce a stored field value to an identifier"""
        if isinstance(raw, StateId):
            return raw
        if not isinstance(raw, str):
            raise TypeError(
                f"cannot coerce {type(raw).__name__} value {raw!r} to a state identifier"
            )
        return StateId(raw)

    def encode(self, state: Any) -> str:
        """String form of an identifier, as written to the record"""
        if isinstance(state, StateId):
            return state.name
        if isinstance(state, str):
            return state
        raise TypeError(
            f"cannot encode {type(state).__name__} value {state!r} as a state"
        )

    def coerce(self, value: Any) -> Optional[StateId]:
        """Accept an identifier or its string form (used for configuration)"""
        if value is None:
            return None
        return self.decode(value)


class EnumCodec(StateCodec):
    """
    Codec for engines that model states as a str-valued Enum.

    Unknown stored values raise ValueError from the Enum lookup.
    """

    def __init__(self, enum_cls: Type[Enum]):
        self.enum_cls = enum_cls

    def decode(self, raw: Any) -> Enum:
        if isinstance(raw, self.enum_cls):
            return raw
        if not isinstance(raw, str):
            raise TypeError(
                f"cannot coerce {type(raw).__name__} value {raw!r} to {self.enum_cls.__name__}"
            )
        return self.enum_cls(raw)

    def encode(self, state: Any) -> str:
        if isinstance(state, self.enum_cls):
            return str(state.value)
        if isinstance(state, StateId):
            return self.encode(self.enum_cls(state.name))
        if isinstance(state, str):
            return str(self.enum_cls(state).value)
        raise TypeError(
            f"cannot encode {type(state).__name__} value {state!r} as {self.enum_cls.__name__}"
        )
