"""Cooperative cancellation and deadlines for in-flight requests.

Usage example:
    from znvault_client.infrastructure.cancellation import CancellationToken

    token = CancellationToken.with_timeout(5.0)
    client.execute(spec, cancellation=token)

    # from another thread
    token.cancel()
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Self

from ..exceptions import RequestCancelledError


class CancellationToken:
    """Thread-safe cancel flag with an optional monotonic deadline."""

    def __init__(
        self,
        *,
        deadline: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._event = threading.Event()
        self._deadline = deadline
        self._clock = clock

    @classmethod
    def with_timeout(
        cls, timeout_seconds: float, *, clock: Callable[[], float] = time.monotonic
    ) -> Self:
        return cls(deadline=clock() + timeout_seconds, clock=clock)

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def remaining(self) -> float | None:
        """Seconds until the deadline, or None when there is no deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RequestCancelledError()
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise RequestCancelledError.for_deadline()

    def sleep(self, seconds: float) -> None:
        """Wait for `seconds` unless cancelled first.

        Raises:
            RequestCancelledError: If cancelled during the wait, or if the wait
                would run past the deadline.
        """
        remaining = self.remaining()
        if remaining is not None and seconds > remaining:
            raise RequestCancelledError.for_deadline()
        if self._event.wait(seconds):
            raise RequestCancelledError()
