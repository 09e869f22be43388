"""Schema package - unified data model, field mappings and display formatting.

- models.py: Platform enum, UnifiedRecord and the analytics dataclasses
- field_mapping.py: per-platform column mappings and detection signatures
- formatting.py: number / percentage / file-size display helpers
"""

from .field_mapping import (
    FIELD_MAPPINGS,
    PLATFORM_SIGNATURES,
    get_mapping,
    mapping_reference_rows,
    validate_mappings,
)
from .formatting import (
    format_file_size,
    format_number,
    format_percentage,
    format_variance_percentage,
)
from .models import (
    UNIFIED_FIELDS,
    AnalyticsData,
    ContentTypeMetrics,
    PerformanceMetrics,
    Platform,
    PlatformMetrics,
    ProcessingResult,
    TimeSeriesPoint,
    TopContentItem,
    UnifiedRecord,
)

__all__ = [
    # Models
    "AnalyticsData",
    "ContentTypeMetrics",
    "PerformanceMetrics",
    "Platform",
    "PlatformMetrics",
    "ProcessingResult",
    "TimeSeriesPoint",
    "TopContentItem",
    "UNIFIED_FIELDS",
    "UnifiedRecord",
    # Field mappings
    "FIELD_MAPPINGS",
    "PLATFORM_SIGNATURES",
    "get_mapping",
    "mapping_reference_rows",
    "validate_mappings",
    # Formatting
    "format_file_size",
    "format_number",
    "format_percentage",
    "format_variance_percentage",
]
