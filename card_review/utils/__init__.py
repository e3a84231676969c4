"""
Utility modules for card review.
"""

from card_review.utils.logging import (
    get_logger,
    setup_logging,
    LogContext,
    log_phase_transition,
    log_api_call,
    log_error_with_context,
)
from card_review.utils.metrics import RunMetrics

__all__ = [
    "get_logger",
    "setup_logging",
    "LogContext",
    "log_phase_transition",
    "log_api_call",
    "log_error_with_context",
    "RunMetrics",
]
