"""
Gas Predictor - Gas Price Predictor API service.

aiohttp service with a resilient executor for database operations:
readiness gate, failure classification, per-attempt timeout and jittered
exponential backoff.
"""

__version__ = "0.1.0"

# Resilient executor
from gaspredictor.core.retry import (
    DATABASE_RETRY_POLICY,
    DEFAULT_RETRY_POLICY,
    NO_RETRY_POLICY,
    ConnectionState,
    FailureKind,
    RetryManager,
    RetryPolicy,
    classify,
    execute_with_readiness_and_retry,
    execute_with_retry,
    wait_for_ready,
)

# Exceptions
from gaspredictor.exceptions import (
    AuthError,
    CastError,
    ConfigurationError,
    DatabaseConnectionError,
    DuplicateKeyError,
    ForbiddenError,
    GasPredictorError,
    NotFoundError,
    OperationTimeoutError,
    ReadinessTimeoutError,
    RequestError,
    RetriesExhaustedError,
    RetryError,
    TerminalFailureError,
    ValidationError,
)

__all__ = [
    "__version__",
    # Resilient executor
    "RetryManager",
    "RetryPolicy",
    "DEFAULT_RETRY_POLICY",
    "DATABASE_RETRY_POLICY",
    "NO_RETRY_POLICY",
    "FailureKind",
    "classify",
    "ConnectionState",
    "wait_for_ready",
    "execute_with_retry",
    "execute_with_readiness_and_retry",
    # Exceptions
    "GasPredictorError",
    "ConfigurationError",
    "DatabaseConnectionError",
    "ReadinessTimeoutError",
    "OperationTimeoutError",
    "RequestError",
    "ValidationError",
    "CastError",
    "AuthError",
    "ForbiddenError",
    "NotFoundError",
    "DuplicateKeyError",
    "RetryError",
    "TerminalFailureError",
    "RetriesExhaustedError",
]
