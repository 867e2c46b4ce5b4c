"""Resilience utilities for infrastructure.

Usage example:
    import random

    from znvault_client.infrastructure.resilience import BackoffPolicy

    policy = BackoffPolicy(max_retries=3, initial_delay_seconds=0.1, rng=random.Random(7))
    delay = policy.delay_for(attempt=2)
"""

from __future__ import annotations

import random
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Self

from ..exceptions import InvalidBackoffPolicyError

DEFAULT_RETRYABLE_STATUSES = frozenset({429, 502, 503, 504})


@dataclass(frozen=True)
class BackoffPolicy:
    """Capped, jittered exponential backoff for transient failures.

    `delay_for` is pure apart from the injected random source; pass a seeded
    `random.Random` for reproducible delays.
    """

    max_retries: int = 3
    initial_delay_seconds: float = 0.1
    max_delay_seconds: float = 10.0
    multiplier: float = 2.0
    jitter_factor: float = 0.1
    retryable_statuses: frozenset[int] = DEFAULT_RETRYABLE_STATUSES
    retry_on_connection_failure: bool = True
    rng: random.Random = field(default_factory=random.Random, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise InvalidBackoffPolicyError("max_retries", ">= 0")
        if self.initial_delay_seconds < 0:
            raise InvalidBackoffPolicyError("initial_delay_seconds", ">= 0")
        if self.max_delay_seconds < 0:
            raise InvalidBackoffPolicyError("max_delay_seconds", ">= 0")
        if self.multiplier <= 1.0:
            raise InvalidBackoffPolicyError("multiplier", "> 1")
        if not 0.0 <= self.jitter_factor <= 1.0:
            raise InvalidBackoffPolicyError("jitter_factor", "between 0 and 1")
        object.__setattr__(self, "retryable_statuses", frozenset(self.retryable_statuses))

    @classmethod
    def none(cls) -> Self:
        """Policy that never retries."""
        return cls(max_retries=0)

    @classmethod
    def default(cls) -> Self:
        return cls()

    @classmethod
    def aggressive(cls) -> Self:
        """More retries with a shorter first delay, for critical operations."""
        return cls(max_retries=5, initial_delay_seconds=0.05, max_delay_seconds=30.0)

    def delay_for(self, attempt: int) -> float:
        """Return the wait in seconds before retry number `attempt + 1`.

        The result is always within [0, max_delay_seconds].
        """
        exponent = max(0, attempt)
        try:
            exponential = self.initial_delay_seconds * (self.multiplier**exponent)
        except OverflowError:
            exponential = self.max_delay_seconds
        capped = min(exponential, self.max_delay_seconds)
        if self.jitter_factor > 0:
            capped += capped * self.jitter_factor * self.rng.uniform(-1.0, 1.0)
        return min(max(0.0, capped), self.max_delay_seconds)

    def is_retryable_status(self, status_code: int) -> bool:
        return status_code in self.retryable_statuses

    def has_budget(self, attempt: int) -> bool:
        """Return True if another retry is allowed after `attempt` (0-based)."""
        return attempt < self.max_retries


def parse_retry_after(headers: Mapping[str, str] | None) -> int | None:
    """Parse Retry-After header into seconds, if available."""
    if not headers:
        return None
    value = headers.get("Retry-After")
    if not value:
        return None
    value = value.strip()
    if value.isdigit():
        return int(value)
    try:
        dt = parsedate_to_datetime(value)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        delta = (dt - datetime.now(UTC)).total_seconds()
        return max(0, int(delta))
    except (AttributeError, OverflowError, TypeError, ValueError):
        return None
