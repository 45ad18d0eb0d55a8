"""
Property Binding
================

Type-level configuration shared by every instance of a record type:
which field holds the state and which state new records start in.

    state_property(Order)            # -> "aasm_state"
    state_property(Order, "status")  # -> "status"

A type's config is frozen once its persistence is installed. From then
on it is read-only for the rest of the process.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_STATE_PROPERTY = "aasm_state"


@dataclass
class MachineConfig:
    """Per-record-type binding of the state field"""
    property: Optional[str] = None
    initial_state: Any = None
    frozen: bool = False

    def freeze(self) -> None:
        if self.property is None:
            self.property = DEFAULT_STATE_PROPERTY
        self.frozen = True


_configs: Dict[type, MachineConfig] = {}


def machine_config(record_type: type, create: bool = True) -> Optional[MachineConfig]:
    """
    Look up the config for a record type.

    Subclasses share their nearest configured ancestor's config until they
    get one of their own, so the lookup walks the MRO. With ``create`` a
    type with no configured ancestor gets a fresh config.
    """
    for klass in record_type.__mro__:
        config = _configs.get(klass)
        if config is not None:
            return config
    if not create:
        return None
    config = MachineConfig()
    _configs[record_type] = config
    return config


def own_machine_config(record_type: type) -> MachineConfig:
    """Config registered for exactly this type, copied from an ancestor if needed"""
    config = _configs.get(record_type)
    if config is None:
        inherited = machine_config(record_type, create=False)
        config = MachineConfig(
            property=inherited.property if inherited else None,
            initial_state=inherited.initial_state if inherited else None,
        )
        _configs[record_type] = config
    return config


def state_property(record_type: type, name: Optional[str] = None) -> str:
    """
    Getter/setter for the name of the field holding the state.

    Called with ``name`` it sets the field for ``record_type``; called
    without, it returns the configured field, defaulting to
    ``aasm_state`` on first access.
    """
    if name is not None:
        name = str(name)
        config = _configs.get(record_type)
        if config is not None and config.frozen:
            if config.property != name:
                raise ConfigurationError(
                    f"{record_type.__name__} is bound to state property "
                    f"{config.property!r}; cannot rebind to {name!r}"
                )
            return config.property
        config = own_machine_config(record_type)
        config.property = name
        logger.debug("Bound %s state property to %r", record_type.__name__, name)
        return config.property

    config = machine_config(record_type)
    if config.property is None:
        config.property = DEFAULT_STATE_PROPERTY
    return config.property
