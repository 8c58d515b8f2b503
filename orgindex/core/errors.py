class OrgIndexError(Exception):
    """Base class for errors raised inside the activity pipeline."""


class NetworkError(OrgIndexError):
    """Raised when GitHub answers with a non-success status or is unreachable."""

    def __init__(self, endpoint: str, status_code: int | None = None) -> None:
        self.endpoint = endpoint
        self.status_code = status_code
        detail = f"HTTP {status_code}" if status_code is not None else "request failed"
        super().__init__(f"{endpoint}: {detail}")


class RateLimitError(OrgIndexError):
    """Raised when GitHub rejects a request with an exhausted quota."""

    def __init__(self, endpoint: str, reset_at: float) -> None:
        self.endpoint = endpoint
        self.reset_at = reset_at
        super().__init__(f"{endpoint}: rate limited until {reset_at:.0f}")


class StorageError(OrgIndexError):
    """Raised when the cache table cannot be read or written."""


class PartialRecordError(OrgIndexError):
    """Raised when a stats record or week entry is missing required fields."""
