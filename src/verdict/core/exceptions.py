"""Custom exceptions for Verdict."""


class VerdictError(Exception):
    """Base exception for all Verdict errors."""

    def __init__(self, message: str, *args: object) -> None:
        self.message = message
        super().__init__(message, *args)


# Search provider errors
class SearchError(VerdictError):
    """Base error for the external search provider."""


class ThrottledTransient(SearchError):
    """Provider asked us to slow down. Retried with backoff, never an item outcome."""

    def __init__(self, message: str, phase: str) -> None:
        self.phase = phase
        super().__init__(message)


# Refresh errors
class RefreshError(VerdictError):
    """Base error for the rating refresh pipeline."""


class CandidateExhausted(RefreshError):
    """Every query candidate was tried without extracting a percentage."""

    def __init__(self, item_id: object, attempted: int) -> None:
        self.item_id = item_id
        self.attempted = attempted
        super().__init__(f"No sentiment found for {item_id} after {attempted} queries")


class CandidatesThrottled(CandidateExhausted):
    """No candidate extracted and at least one was cut short by throttling.

    The item is left due and never counted as failed.
    """

    def __init__(self, item_id: object, attempted: int) -> None:
        super().__init__(item_id, attempted)
        self.message = f"Search throttled for {item_id} across {attempted} queries"
        self.args = (self.message,)


class ItemNotFoundError(RefreshError):
    """The requested catalog item does not exist."""


class AttemptLimitReached(RefreshError):
    """The item already used up today's fetch attempts."""


class SearchNotConfigured(RefreshError):
    """No search provider credentials, so nothing can be fetched."""


# Storage errors
class StorageError(VerdictError):
    """Base error for storage layer."""


class DatabaseConnectionError(StorageError):
    """Failed to connect to database."""


class StoreWriteError(StorageError):
    """A catalog or run summary write failed."""


class FatalSelectionError(StorageError):
    """Due items could not be listed. Aborts the whole run."""
