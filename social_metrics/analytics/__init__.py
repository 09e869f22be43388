"""Analytics package - aggregates and summaries over unified records."""

from .aggregator import (
    AnalyticsProcessor,
    AnalyticsSettings,
    NO_DATA,
    UNCLASSIFIED,
    VIRAL_VIEW_THRESHOLD,
    generate_analytics,
)
from .summary import generate_summary
