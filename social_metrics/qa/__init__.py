"""QA validation package for social-metrics.

Checks analytics output against the unified records it was derived
from: platform totals, time-series day coverage, content-type and
top-content ordering, and completion-rate scale.
"""

from .validator import (
    AnalyticsValidator,
    Issue,
    QAResult,
    completion_rate_outliers,
    validate_analytics,
)

__all__ = [
    "AnalyticsValidator",
    "Issue",
    "QAResult",
    "completion_rate_outliers",
    "validate_analytics",
]
