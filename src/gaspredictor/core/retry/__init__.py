"""
Resilient execution of operations against the database.

Readiness gate, failure classification, and retry with per-attempt timeout
and jittered exponential backoff.
"""

from gaspredictor.core.retry.classifier import Classification, FailureKind, classify, is_retryable
from gaspredictor.core.retry.manager import (
    RetryManager,
    execute_with_readiness_and_retry,
    execute_with_retry,
)
from gaspredictor.core.retry.policy import (
    DATABASE_RETRY_POLICY,
    DEFAULT_RETRY_POLICY,
    NO_RETRY_POLICY,
    AttemptOutcome,
    RetryPolicy,
    RetryState,
    resolve_policy,
)
from gaspredictor.core.retry.readiness import ConnectionState, wait_for_ready

__all__ = [
    # Policy
    "RetryPolicy",
    "RetryState",
    "AttemptOutcome",
    "resolve_policy",
    "DEFAULT_RETRY_POLICY",
    "DATABASE_RETRY_POLICY",
    "NO_RETRY_POLICY",
    # Classification
    "FailureKind",
    "Classification",
    "classify",
    "is_retryable",
    # Readiness
    "ConnectionState",
    "wait_for_ready",
    # Manager
    "RetryManager",
    "execute_with_retry",
    "execute_with_readiness_and_retry",
]
