"""Custom exceptions for definition loading and validation."""


class DataError(Exception):
    """Base exception for the data layer."""


class DataLoadError(DataError):
    """Raised when a definition file is missing or not valid JSON."""


class DataValidationError(DataError):
    """Raised when board or tier content fails structural validation."""


class DataReferenceError(DataError):
    """Raised when a portal or tile points at a ring or tile that does not exist."""
