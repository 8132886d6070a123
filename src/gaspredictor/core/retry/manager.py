"""
Retry manager for executing database operations with exponential backoff.

Each attempt races the operation against a per-attempt timer; failures are
classified and either retried after a jittered delay or surfaced at once.
"""

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from gaspredictor.core.retry.classifier import classify
from gaspredictor.core.retry.policy import DEFAULT_RETRY_POLICY, RetryPolicy, RetryState, resolve_policy
from gaspredictor.core.retry.readiness import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_READINESS_TIMEOUT,
    StateAccessor,
    wait_for_ready,
)
from gaspredictor.exceptions import OperationTimeoutError, RetriesExhaustedError, TerminalFailureError
from gaspredictor.utils.logging import get_logger

logger = get_logger("gaspredictor.retry.manager")

T = TypeVar("T")

PolicyLike = RetryPolicy | Mapping[str, Any] | None


class RetryManager:
    """
    Runs async operations under a RetryPolicy.

    The manager holds no per-call state, so one instance can serve any number
    of concurrent invocations; each invocation manages its own retry budget.

    Examples:
        >>> manager = RetryManager()
        >>> async def load_prices():
        ...     return await conn.execute("SELECT * FROM prices")
        >>> rows = await manager.execute(load_prices)

        >>> # Partial policy merged over the manager default
        >>> rows = await manager.execute(load_prices, policy={"max_retries": 5})

        >>> # Wait for the connection first
        >>> rows = await manager.execute_with_readiness(lambda: conn.state, load_prices)
    """

    def __init__(
        self,
        default_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        readiness_timeout: float = DEFAULT_READINESS_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        """
        Initialize RetryManager.

        Args:
            default_policy: Policy used when a call passes none (or partial options)
            readiness_timeout: Readiness gate timeout for ``execute_with_readiness``
            poll_interval: Readiness gate polling interval
        """
        self.default_policy = default_policy
        self.readiness_timeout = readiness_timeout
        self.poll_interval = poll_interval

    async def execute(
        self,
        operation: Callable[..., Awaitable[T]],
        *args: Any,
        policy: PolicyLike = None,
        operation_name: str | None = None,
        **kwargs: Any,
    ) -> T:
        """
        Execute an async operation with retry logic.

        Args:
            operation: Async callable; invoked up to ``max_retries + 1`` times,
                so it must be safe to repeat
            *args: Positional arguments to pass to the operation
            policy: RetryPolicy, partial options, or None for the manager default
            operation_name: Name used in logs (defaults to the callable's name)
            **kwargs: Keyword arguments to pass to the operation

        Returns:
            Result of the first successful attempt

        Raises:
            TerminalFailureError: A failure was classified as non-retryable
            RetriesExhaustedError: The last allowed attempt failed
        """
        policy = resolve_policy(policy, self.default_policy)
        state = RetryState(operation_name=operation_name or getattr(operation, "__name__", repr(operation)))

        for attempt in range(policy.max_attempts):
            logger.debug(f"Executing {state.operation_name} (attempt {attempt + 1}/{policy.max_attempts})")
            state.start_attempt()

            try:
                result = await self._attempt(operation, args, kwargs, policy.per_attempt_timeout, attempt)
            except Exception as e:
                kind, retryable = classify(e)
                state.record_attempt(attempt, kind)

                if not retryable:
                    logger.warning(
                        f"{state.operation_name} failed with non-retryable {kind} error: {e}",
                        extra={"operation": state.operation_name, "attempt": attempt, "failure_kind": str(kind)},
                    )
                    raise TerminalFailureError(
                        f"{state.operation_name} failed ({kind}): {e}",
                        kind=kind,
                        attempts=state.total_attempts,
                        outcomes=state.outcomes,
                    ) from e

                if attempt == policy.max_retries:
                    logger.error(
                        f"{state.operation_name} failed after {state.total_attempts} attempts: {e}",
                        extra={"operation": state.operation_name, "attempts": state.total_attempts},
                    )
                    raise RetriesExhaustedError(
                        f"{state.operation_name} failed after {state.total_attempts} attempts ({kind}): {e}",
                        kind=kind,
                        attempts=state.total_attempts,
                        outcomes=state.outcomes,
                    ) from e

                delay = policy.get_delay(attempt)
                state.record_delay(delay)

                logger.warning(
                    f"{state.operation_name} attempt {attempt + 1} failed ({kind}): {e}. Retrying in {delay:.2f}s...",
                    extra={
                        "operation": state.operation_name,
                        "attempt": attempt,
                        "failure_kind": str(kind),
                        "delay": delay,
                    },
                )

                await asyncio.sleep(delay)
                continue

            state.record_attempt(attempt)
            if attempt > 0:
                logger.info(f"{state.operation_name} succeeded after {attempt + 1} attempts")
            return result

        # range(max_attempts) is never empty and every path above returns or raises
        raise RuntimeError(f"Retry logic error for {state.operation_name}")

    async def execute_with_readiness(
        self,
        state_accessor: StateAccessor,
        operation: Callable[..., Awaitable[T]],
        *args: Any,
        policy: PolicyLike = None,
        operation_name: str | None = None,
        readiness_timeout: float | None = None,
        **kwargs: Any,
    ) -> T:
        """
        Wait for the connection to be ready, then execute with retry logic.

        A readiness failure consumes no retry budget: the operation is never
        invoked.

        Raises:
            ReadinessTimeoutError: The connection never reported ``connected``
            TerminalFailureError: See ``execute``
            RetriesExhaustedError: See ``execute``
        """
        await wait_for_ready(
            state_accessor,
            timeout=self.readiness_timeout if readiness_timeout is None else readiness_timeout,
            poll_interval=self.poll_interval,
        )
        return await self.execute(operation, *args, policy=policy, operation_name=operation_name, **kwargs)

    @staticmethod
    async def _attempt(
        operation: Callable[..., Awaitable[T]],
        args: tuple,
        kwargs: dict[str, Any],
        timeout: float,
        attempt: int,
    ) -> T:
        """Run one attempt; the operation is cancelled if the timer fires first."""
        try:
            async with asyncio.timeout(timeout) as scope:
                return await operation(*args, **kwargs)
        except TimeoutError:
            if scope.expired():
                raise OperationTimeoutError(timeout, attempt=attempt) from None
            raise


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: PolicyLike = None,
) -> T:
    """Execute ``operation`` under ``policy`` (merged over the defaults)."""
    return await RetryManager().execute(operation, policy=policy)


async def execute_with_readiness_and_retry(
    state_accessor: StateAccessor,
    operation: Callable[[], Awaitable[T]],
    policy: PolicyLike = None,
) -> T:
    """Wait for the connection (30s gate), then execute with retry logic."""
    return await RetryManager().execute_with_readiness(state_accessor, operation, policy=policy)
