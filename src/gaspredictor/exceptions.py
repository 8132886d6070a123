"""
Gas Predictor exception hierarchy.

All domain-specific exceptions inherit from GasPredictorError, making it easy
to catch any service error with a single base class while still allowing
fine-grained handling when needed.

Hierarchy::

    GasPredictorError
    ├── ConfigurationError          - settings loading, parsing, validation
    ├── DatabaseConnectionError     - connect / ping / close failures
    │   └── ConnectionNotConfiguredError
    ├── ReadinessTimeoutError       - dependency never became ready
    ├── OperationTimeoutError       - a single attempt exceeded its time
    ├── RequestError                - problems with the request itself (non-retryable)
    │   ├── ValidationError
    │   ├── CastError
    │   ├── AuthError
    │   │   ├── InvalidTokenError
    │   │   ├── TokenExpiredError
    │   │   ├── UnauthorizedError
    │   │   └── ForbiddenError
    │   ├── NotFoundError
    │   └── DuplicateKeyError
    └── RetryError                  - final outcome of the resilient executor
        ├── TerminalFailureError    - non-retryable classification reached
        └── RetriesExhaustedError   - retry budget spent
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from gaspredictor.core.retry.classifier import FailureKind
    from gaspredictor.core.retry.policy import AttemptOutcome


class GasPredictorError(Exception):
    """Base exception for all Gas Predictor errors."""

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- Configuration -----------------------------------------------------------


class ConfigurationError(GasPredictorError):
    """Raised when configuration loading, parsing, or validation fails."""


# --- Connections -------------------------------------------------------------


class DatabaseConnectionError(GasPredictorError):
    """Raised when the database connection cannot be established or used."""


class ConnectionNotConfiguredError(DatabaseConnectionError):
    """Raised when an operation needs a database but none is configured."""

    def __init__(self) -> None:
        super().__init__("No database connection configured (set DATABASE_URL)")


# --- Timeouts ----------------------------------------------------------------


class ReadinessTimeoutError(GasPredictorError):
    """Raised when a dependency does not report ``connected`` in time."""

    def __init__(self, elapsed: float, timeout: float, *, last_state: str | None = None) -> None:
        super().__init__(
            f"Connection not ready after {elapsed:.2f}s (timeout {timeout:.2f}s, last state: {last_state})",
            details={"elapsed": elapsed, "timeout": timeout, "last_state": last_state},
        )
        self.elapsed = elapsed
        self.timeout = timeout
        self.last_state = last_state


class OperationTimeoutError(GasPredictorError):
    """Raised when a single attempt exceeds its per-attempt timeout."""

    def __init__(self, timeout: float, *, attempt: int | None = None) -> None:
        super().__init__(
            f"Operation timed out after {timeout:.2f}s",
            details={"timeout": timeout, "attempt": attempt},
        )
        self.timeout = timeout
        self.attempt = attempt


# --- Request errors ----------------------------------------------------------


class RequestError(GasPredictorError):
    """Base for failures caused by the request itself.

    Retrying cannot change the outcome of these, so the resilient executor
    treats every subclass as terminal. ``status`` is the HTTP status the API
    layer answers with.
    """

    status: int = 400


class ValidationError(RequestError):
    """Raised when input fails validation."""

    status = 400


class CastError(RequestError):
    """Raised when a value cannot be converted to the expected type."""

    status = 400


class AuthError(RequestError):
    """Base for authentication and authorization failures."""

    status = 401


class InvalidTokenError(AuthError):
    """Raised when a bearer token is malformed or its signature is invalid."""


class TokenExpiredError(AuthError):
    """Raised when a bearer token has expired."""


class UnauthorizedError(AuthError):
    """Raised when credentials are missing or wrong."""


class ForbiddenError(AuthError):
    """Raised when the caller is authenticated but not allowed."""

    status = 403


class NotFoundError(RequestError):
    """Raised when a requested resource does not exist."""

    status = 404


class DuplicateKeyError(RequestError):
    """Raised when a write violates a uniqueness constraint."""

    status = 409


# --- Retry -------------------------------------------------------------------


class RetryError(GasPredictorError):
    """Final failure reported by the resilient executor.

    The original error is available as ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: FailureKind,
        attempts: int,
        outcomes: list[AttemptOutcome] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        merged = {"failure_kind": str(kind), "attempts": attempts}
        merged.update(details or {})
        super().__init__(message, details=merged)
        self.kind = kind
        self.attempts = attempts
        self.outcomes = outcomes or []


class TerminalFailureError(RetryError):
    """Raised when a failure is classified as not worth retrying."""


class RetriesExhaustedError(RetryError):
    """Raised when the last allowed attempt failed with a retryable error."""
