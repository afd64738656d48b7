"""
Exception types for moltsum.
"""
from pathlib import Path
from typing import Optional


class MoltsumError(Exception):
    """Base class for all moltsum errors."""


class ConfigurationError(MoltsumError):
    """Required configuration is missing or invalid."""


class SnapshotIOError(MoltsumError):
    """A snapshot document could not be read or written."""

    def __init__(self, path: Path, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")


class SummaryError(MoltsumError):
    """Base class for per-post generation failures."""


class TransportError(SummaryError):
    """Connection failure or timeout talking to the generation endpoint."""


class UpstreamError(SummaryError):
    """The generation endpoint answered with a non-success status."""

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(f"API {status}: {body}")


class RateLimitedError(UpstreamError):
    """HTTP 429 from the generation endpoint. Retried inside the client."""


class EmptyResponseError(SummaryError):
    """Success status but no text could be extracted from the response."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "Empty response from API")


class MaxRetriesError(SummaryError):
    """Still rate limited after the last allowed attempt."""

    def __init__(self, attempts: int, last: Optional[UpstreamError] = None):
        self.attempts = attempts
        self.last = last
        detail = f" (last: {last})" if last is not None else ""
        super().__init__(f"Max retries reached after {attempts} attempts{detail}")
