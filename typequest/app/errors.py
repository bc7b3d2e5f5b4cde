# app/errors.py


class TypequestError(Exception):
    pass


class SessionStateError(TypequestError):
    """Raised when a caller drives a session outside its lifecycle."""


class ConfigError(TypequestError, ValueError):
    pass
