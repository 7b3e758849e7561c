"""Exception hierarchy for the sync-and-cache pipeline."""


class DevBytesError(Exception):
    """Base class for all DevBytes sync errors."""


class NetworkError(DevBytesError):
    """The playlist could not be fetched (connectivity, timeout, non-2xx)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedRecordError(DevBytesError):
    """A single record in a payload violates the expected shape.

    Attributes:
        index: Position of the offending record in its batch, if known
        field: Name of the missing or invalid field, if known
    """

    def __init__(self, message: str, index: int | None = None, field: str | None = None):
        super().__init__(message)
        self.index = index
        self.field = field


class StorageError(DevBytesError):
    """The local cache could not be read or written."""


class RefreshError(DevBytesError):
    """A refresh cycle failed; ``cause`` holds the underlying error."""

    def __init__(self, cause: DevBytesError):
        super().__init__(f"Refresh failed: {cause}")
        self.cause = cause
