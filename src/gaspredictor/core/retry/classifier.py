"""
Failure classification for the resilient executor.

Maps any exception to a closed set of failure kinds. Request problems
(validation, casting, auth, missing resources, duplicate keys) are terminal;
everything else, including timeouts, is assumed transient.
"""

from enum import StrEnum
from typing import NamedTuple

from gaspredictor.exceptions import (
    AuthError,
    CastError,
    DuplicateKeyError,
    NotFoundError,
    OperationTimeoutError,
    RetryError,
    ValidationError,
)


class FailureKind(StrEnum):
    """Classification of a failed attempt."""

    TIMEOUT = "timeout"
    VALIDATION = "validation"
    CAST = "cast"
    AUTH = "auth"
    NOT_FOUND = "not_found"
    DUPLICATE_KEY = "duplicate_key"
    UNCLASSIFIED = "unclassified"

    @property
    def retryable(self) -> bool:
        """Whether another attempt could change the outcome."""
        return self not in _TERMINAL_KINDS


_TERMINAL_KINDS = frozenset(
    {
        FailureKind.VALIDATION,
        FailureKind.CAST,
        FailureKind.AUTH,
        FailureKind.NOT_FOUND,
        FailureKind.DUPLICATE_KEY,
    }
)

# Checked in order; the first matching type wins.
_KIND_BY_TYPE: tuple[tuple[type[BaseException], FailureKind], ...] = (
    (ValidationError, FailureKind.VALIDATION),
    (CastError, FailureKind.CAST),
    (AuthError, FailureKind.AUTH),
    (NotFoundError, FailureKind.NOT_FOUND),
    (DuplicateKeyError, FailureKind.DUPLICATE_KEY),
    (OperationTimeoutError, FailureKind.TIMEOUT),
    (TimeoutError, FailureKind.TIMEOUT),
)


class Classification(NamedTuple):
    kind: FailureKind
    retryable: bool


def classify(error: BaseException) -> Classification:
    """
    Classify an error.

    Pure function of the error's type: the same error always yields the same
    ``(kind, retryable)`` pair. Driver-specific exceptions are expected to be
    translated into the project hierarchy before they reach this function
    (see ``BaseConnection.translate_error``); unknown errors are
    ``UNCLASSIFIED`` and retryable. A ``RetryError`` from a nested executor
    keeps the kind it was raised with.
    """
    if isinstance(error, RetryError):
        return Classification(error.kind, error.kind.retryable)
    for error_type, kind in _KIND_BY_TYPE:
        if isinstance(error, error_type):
            return Classification(kind, kind.retryable)
    return Classification(FailureKind.UNCLASSIFIED, True)


def is_retryable(error: BaseException) -> bool:
    """Shortcut for ``classify(error).retryable``."""
    return classify(error).retryable
