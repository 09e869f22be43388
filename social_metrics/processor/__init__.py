"""Data processor module - file reading, platform detection and row transformation."""

from .detector import detect_platform, require_platform
from .ingestion import (
    READERS,
    RawTable,
    clean_columns,
    detect_encoding,
    normalize_completion_rate_percent,
    normalize_number,
    normalize_percentage,
    normalize_text,
    normalize_time_format,
    parse_publish_time,
    read_rows,
)
from .transform import (
    DataProcessor,
    process_rows,
    transform_row,
)
