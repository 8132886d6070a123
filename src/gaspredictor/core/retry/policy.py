"""
Retry policy configuration for database operations.

Exponential backoff with additive jitter, capped at ``max_delay``.
"""

from __future__ import annotations

import dataclasses
import random
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from gaspredictor.core.retry.classifier import FailureKind

# Largest exponent with a finite 2.0**n
_MAX_EXPONENT = 1023


@dataclass(frozen=True)
class RetryPolicy:
    """
    Configuration for retrying an operation against an external dependency.

    Total invocations of the operation are at most ``max_retries + 1``. All
    durations are in seconds.

    Examples:
        >>> # Defaults: 3 retries, 1s base delay, 10s cap, 10s per attempt
        >>> policy = RetryPolicy()

        >>> # Partial options merged over the defaults
        >>> policy = RetryPolicy.from_options({"max_retries": 5, "base_delay": 0.5})

        >>> # Deterministic delays (tests)
        >>> policy = RetryPolicy(base_delay=0.01, max_jitter=0.0)
    """

    # Retries after the first attempt (total executions = max_retries + 1)
    max_retries: int = 3

    # Delay before the first retry; doubles every attempt
    base_delay: float = 1.0

    # Hard upper bound on any single delay, jitter included
    max_delay: float = 10.0

    # Time allotted to one invocation of the operation
    per_attempt_timeout: float = 10.0

    # Jitter is drawn uniformly from [0, max_jitter)
    max_jitter: float = 1.0

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not isinstance(self.max_retries, int) or isinstance(self.max_retries, bool):
            raise TypeError(f"max_retries must be an integer, got {self.max_retries!r}")
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay < 0:
            raise ValueError("base_delay must be >= 0")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        if self.per_attempt_timeout <= 0:
            raise ValueError("per_attempt_timeout must be > 0")
        if self.max_jitter < 0:
            raise ValueError("max_jitter must be >= 0")

    @classmethod
    def from_options(cls, options: Mapping[str, Any] | None = None, *, base: RetryPolicy | None = None) -> RetryPolicy:
        """
        Build a policy from partial options merged over ``base`` (or the defaults).

        Raises:
            ValueError: On unknown option names or invalid values
        """
        base = base or cls()
        options = dict(options or {})
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise ValueError(f"Unknown retry option(s): {', '.join(unknown)}")
        return dataclasses.replace(base, **options)

    @property
    def max_attempts(self) -> int:
        """Total number of invocations allowed."""
        return self.max_retries + 1

    def get_delay(self, attempt: int) -> float:
        """
        Calculate delay before the next attempt.

        Implements: delay = min(base_delay * 2^attempt + jitter, max_delay)

        Args:
            attempt: Attempt that just failed (0-indexed)

        Returns:
            Delay in seconds before next retry
        """
        # Clamped so the power stays finite; the product may still be inf
        exponential = self.base_delay * 2.0 ** min(attempt, _MAX_EXPONENT)
        delay = exponential + random.random() * self.max_jitter
        return min(delay, self.max_delay)


def resolve_policy(
    policy: RetryPolicy | Mapping[str, Any] | None,
    default: RetryPolicy | None = None,
) -> RetryPolicy:
    """Normalise a caller-supplied policy: a full policy, partial options, or None."""
    default = default or DEFAULT_RETRY_POLICY
    if policy is None:
        return default
    if isinstance(policy, RetryPolicy):
        return policy
    return RetryPolicy.from_options(policy, base=default)


@dataclass(frozen=True)
class AttemptOutcome:
    """Outcome of one attempt. Lives only as long as the executor call."""

    attempt_index: int
    succeeded: bool
    elapsed: float
    failure_kind: FailureKind | None = None


@dataclass
class RetryState:
    """
    State tracking for one executor invocation.

    Stores attempt outcomes and delays for logging and for the final error.
    """

    operation_name: str
    outcomes: list[AttemptOutcome] = field(default_factory=list)
    delays: list[float] = field(default_factory=list)
    _attempt_started: float = 0.0

    @property
    def total_attempts(self) -> int:
        return len(self.outcomes)

    def start_attempt(self) -> None:
        self._attempt_started = time.monotonic()

    def record_attempt(self, attempt: int, failure_kind: FailureKind | None = None) -> AttemptOutcome:
        """Record the attempt that was started last."""
        outcome = AttemptOutcome(
            attempt_index=attempt,
            succeeded=failure_kind is None,
            elapsed=time.monotonic() - self._attempt_started,
            failure_kind=failure_kind,
        )
        self.outcomes.append(outcome)
        return outcome

    def record_delay(self, delay: float) -> None:
        self.delays.append(delay)


# Pre-configured policies for common scenarios

DEFAULT_RETRY_POLICY = RetryPolicy()

DATABASE_RETRY_POLICY = RetryPolicy(
    max_retries=3,
    base_delay=0.5,
    max_delay=5.0,
    per_attempt_timeout=5.0,
    max_jitter=0.5,
)

NO_RETRY_POLICY = RetryPolicy(max_retries=0)
