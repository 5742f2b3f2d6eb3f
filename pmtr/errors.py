# pmtr/errors.py


class MtrError(Exception):
    """Base class for errors that stop a run before probing starts."""


class ResolveError(MtrError):
    """Raised when the target cannot be forward-resolved."""


class TransportInitError(MtrError):
    """Raised when the probe transport cannot be set up (missing binary, no privileges)."""


class ConfigError(MtrError):
    """Raised for settings that make no sense (negative interval, ttl out of range...)."""
