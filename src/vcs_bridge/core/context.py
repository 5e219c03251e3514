"""
Cancellation and deadline handling for adapter operations.

Every adapter operation accepts a ``Context``. The adapter checks it before
each network call and bounds the SDK request timeout by the time left, so a
caller can stop a long listing or download from another thread with
``cancel()`` or by giving the context a timeout.
"""
import threading
import time
from typing import Optional

from .exceptions import OperationCancelledError, DeadlineExceededError


class Context:
    """Carries a cancellation flag and an optional deadline."""

    def __init__(self, timeout: Optional[float] = None):
        """
        Create a context.

        Args:
            timeout: Seconds from now after which operations fail;
                None means no deadline
        """
        self._cancelled = threading.Event()
        self._reason = "operation cancelled"
        self.deadline = time.monotonic() + timeout if timeout is not None else None

    @classmethod
    def background(cls) -> "Context":
        """A context that is never cancelled and has no deadline."""
        return cls()

    def cancel(self, reason: str = "operation cancelled") -> None:
        """Cancel every operation using this context. Safe from any thread."""
        self._reason = reason
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without a deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def check(self) -> None:
        """
        Raise if the context is no longer usable.

        Raises:
            OperationCancelledError: If cancel() was called
            DeadlineExceededError: If the deadline has passed
        """
        if self._cancelled.is_set():
            raise OperationCancelledError(self._reason)
        if self.expired():
            raise DeadlineExceededError("context deadline exceeded")

    def request_timeout(self, default: float) -> float:
        """
        Timeout to hand to a single HTTP request.

        Args:
            default: Configured per-request timeout in seconds

        Returns:
            The smaller of the default and the time left
        """
        self.check()
        remaining = self.remaining()
        if remaining is None:
            return default
        return min(default, remaining)

    def __repr__(self) -> str:
        return f"Context(cancelled={self.cancelled}, remaining={self.remaining()})"


def ensure_context(ctx: Optional[Context]) -> Context:
    """Return ``ctx`` or a fresh background context when None."""
    return ctx if ctx is not None else Context.background()
