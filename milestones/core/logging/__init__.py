"""Logging context utilities for correlation IDs."""

from milestones.core.logging.logging_context import (
    CorrelationIDFilter,
    clear_correlation_id,
    correlation_scope,
    get_correlation_id,
    set_correlation_id,
    setup_correlation_logging,
)

__all__ = [
    "CorrelationIDFilter",
    "clear_correlation_id",
    "correlation_scope",
    "get_correlation_id",
    "set_correlation_id",
    "setup_correlation_logging",
]
