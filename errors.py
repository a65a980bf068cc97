# errors.py
# Exceptions raised by the presence tracker.


class PresenceError(Exception):
    """Base class for presence tracker errors."""


class InvalidInput(PresenceError, ValueError):
    """Malformed geometry, timestamp or label. No state was changed."""


class ConfigurationError(PresenceError, ValueError):
    """Invalid EngineConfig value."""
