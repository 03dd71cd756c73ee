"""Error types raised by arzlive.

Two families, split by who recovers them:

    FeedError            one feed is unusable this cycle; the snapshot
                         builder skips it and names it in PollResult.error
    InfrastructureError  local storage failed; logged, the cycle goes on
"""

from collections.abc import Mapping


class ArzLiveError(Exception):
    """Root of the arzlive error tree (raise a subclass).

    Attributes:
        message: Human-readable description
        context: Key/value pairs logged next to the message
            (endpoint, state key, status, ...)
    """

    def __init__(self, message: str, *, context: Mapping[str, object] | None = None) -> None:
        self.message = message
        self.context: dict[str, object] = dict(context or {})
        super().__init__(message)

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.message} [{details}]"


# ── Local storage ─────────────────────────────────────────────────


class InfrastructureError(ArzLiveError):
    """Something on this machine failed (database, filesystem)."""


class StorageError(InfrastructureError):
    """app_state read or write failed.

    Example:
        >>> raise StorageError("Failed to write state", context={"key": "arzlive:price_history"})
    """


# ── Upstream feeds ────────────────────────────────────────────────


class FeedError(ArzLiveError):
    """A market feed gave nothing usable this cycle; the next cycle retries."""


class FeedTransportError(FeedError):
    """No response: timeout, DNS, refused connection."""


class FeedHTTPError(FeedError):
    """Non-2xx answer; ``status_code`` holds the status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        context: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(message, context=context)
        self.status_code = status_code


class FeedParseError(FeedError):
    """Body was not JSON."""
