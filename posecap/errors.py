"""
Exception types raised by posecap.

Every failure is scoped to a single take or a single call; nothing here is
meant to bring the process down.
"""


class PosecapError(Exception):
    """Base class for all posecap errors."""


class OptionsInvalidError(PosecapError, ValueError):
    """Options or settings outside their allowed range."""


class TakeNotFoundError(PosecapError, LookupError):
    """An operation referenced a take id the repository does not know."""

    def __init__(self, take_id: str):
        super().__init__(f"Take not found: {take_id}")
        self.take_id = take_id


class EmptyExportError(PosecapError, ValueError):
    """A BVH export was requested for a take without frames."""


class PersistenceError(PosecapError):
    """The take repository failed to read or write."""


class StreamFaultError(PosecapError):
    """The upstream frame source reported a failure."""


class TakeDocumentError(PosecapError, ValueError):
    """A file is not a readable take document."""
