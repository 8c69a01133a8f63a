"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class HlsLoaderError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(HlsLoaderError):
    """Raised for issues related to configuration loading or validation."""


class PlaylistNotFoundError(HlsLoaderError):
    """Raised when the host page does not reference a playlist."""


class VariantNotFoundError(HlsLoaderError):
    """Raised when the master playlist has no stream with the requested resolution."""


class PlaylistParseError(HlsLoaderError):
    """Raised when a playlist or chunk list cannot be read."""


class FatalLoadError(HlsLoaderError):
    """
    Base for errors that abort a whole run. Bytes already written to the sink
    remain, but the stream must be treated as incomplete.
    """


class InvalidChunkAddressError(FatalLoadError):
    """Raised for a malformed chunk address. Never retried."""

    def __init__(self, address: str, reason: str):
        self.address = address
        self.reason = reason
        super().__init__(f"Invalid chunk address '{address}': {reason}")


class ChunkFetchError(FatalLoadError):
    """Raised when a chunk still fails after all retry attempts are spent."""

    def __init__(self, address: str, index: int, attempts: int, cause: Exception):
        self.address = address
        self.index = index
        self.attempts = attempts
        self.cause = cause
        super().__init__(
            f"Failed to fetch chunk #{index} from '{address}' after "
            f"{attempts} attempt(s): {cause}"
        )


class DuplicateChunkError(FatalLoadError):
    """Raised when the reassembler receives an index it already emitted or holds."""


class SinkWriteError(FatalLoadError):
    """Raised when the output sink rejects a write."""


class ChunkStatusError(HlsLoaderError):
    """A chunk request answered with a non-success status. Retryable."""

    def __init__(self, status: int):
        self.status = status
        super().__init__(f"Invalid status code: '{status}'")
