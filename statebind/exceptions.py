"""Exception types raised by statebind."""


class StateBindError(Exception):
    """Base class for all statebind errors"""


class ConfigurationError(StateBindError):
    """
    A record type could not be bound to its state field.

    Raised at setup time only: unknown field names, a missing initial
    state, a store without hook support, or a second installation for
    the same record type.
    """
