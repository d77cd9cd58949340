"""
services/exceptions.py – Structured custom exception hierarchy for the
megabase indexer.

All service-level errors derive from MegabaseIndexError so callers can catch
broadly or specifically depending on context.
"""


class MegabaseIndexError(Exception):
    """Base class for all megabase indexer exceptions."""


class MalformedVersionError(MegabaseIndexError, ValueError):
    """Raised when a Factorio version string or component does not decode."""


class StorageError(MegabaseIndexError, OSError):
    """Raised when the registry or a savefile cannot be read or written."""


class RegistryNotFoundError(StorageError):
    """
    Raised when an operation requires an existing registry document.

    Attributes
    ----------
    path : Location that was expected to hold the registry.
    """

    def __init__(self, path) -> None:
        self.path = path
        super().__init__(f"Registry document not found: {path}")


class RegistryDecodeError(MegabaseIndexError):
    """Raised when the registry exists but is not a valid megabase index."""


class NotReachableError(MegabaseIndexError):
    """Raised when a remote resource cannot be fetched or answers non-200."""


class NotFoundError(MegabaseIndexError):
    """Raised when a collaborator ran but produced no usable data."""


class VersionNotFoundError(NotFoundError):
    """Raised when Factorio did not report the map version of a save."""


class FactorioNotFoundError(NotFoundError):
    """Raised when no Factorio executable can be located."""


class AuthorNotFoundError(NotFoundError):
    """Raised when no author could be determined for a source link."""


class OperatorAbortError(MegabaseIndexError):
    """Raised when the operator closes the input stream mid-prompt."""


class InvalidSubmissionError(MegabaseIndexError, ValueError):
    """Raised when the operator supplies an unusable submission field."""
