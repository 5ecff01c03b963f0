"""Service-layer exceptions."""


class SaveLoadError(Exception):
    """Raised when a save payload is invalid or from an incompatible version."""


class PersistenceError(Exception):
    """Raised by persistence backends when a snapshot cannot be read or written."""
