"""
Observability module for Gas Predictor.

Structured logging with request correlation IDs.
"""

from gaspredictor.observability.structured_logging import (
    HumanReadableFormatter,
    StructuredFormatter,
    add_correlation_id,
    get_correlation_id,
)

__all__ = [
    "StructuredFormatter",
    "HumanReadableFormatter",
    "add_correlation_id",
    "get_correlation_id",
]
