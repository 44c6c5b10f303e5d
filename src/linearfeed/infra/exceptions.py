"""
Custom exceptions for linearfeed operations.

Feed errors are transient and starve a channel; persistence errors fail it.
"""


class LinearFeedError(Exception):
    """Base exception for all linearfeed errors."""

    pass


class ValidationError(LinearFeedError):
    """Raised when channel or feed input fails validation."""

    pass


class FeedError(LinearFeedError):
    """Base class for errors that leave a channel Starved."""

    pass


class FeedUnavailableError(FeedError):
    """Raised when a feed cannot be fetched or parsed. Retryable."""

    def __init__(self, message: str, *, feed_url: str | None = None) -> None:
        super().__init__(message)
        self.feed_url = feed_url


class EmptyFeedError(FeedError):
    """Raised when a feed is reachable but yields no schedulable items."""

    pass


class PersistenceError(LinearFeedError):
    """Raised when the store is unreachable or rejects a write."""

    pass


class WriteConflictError(PersistenceError):
    """Raised when an idempotency key already holds a different event."""

    def __init__(self, channel_id: str, sequence: int, message: str | None = None) -> None:
        super().__init__(
            message
            or f"schedule event {channel_id}:{sequence} already exists with different content"
        )
        self.channel_id = channel_id
        self.sequence = sequence
