"""Row and dataset transformation for social-metrics.

Turns the raw row dicts of one file (from the ingestion module) into
:class:`UnifiedRecord` objects, using the detected platform's field
mapping.  Each mapped value is dispatched to a normalizer by the type of
its unified field:

    date field        -> normalize_time_format
    completion rate   -> normalize_percentage
    other numeric     -> normalize_number
    everything else   -> normalize_text

Source columns that are not keys of the mapping are carried over
verbatim in ``extension_fields``.

Usage::

    table = read_rows("douyin.xlsx")
    platform = require_platform(table.headers, table.file_name)
    result = DataProcessor(platform).process(table.rows)
    result.records      # accepted UnifiedRecord list
    result.errors       # "Row 3: ..." messages
"""

import logging
from collections.abc import Iterable
from typing import Any

from social_metrics.schema.field_mapping import get_mapping
from social_metrics.schema.models import (
    AVG_WATCH_DURATION,
    DATE_FIELDS,
    NUMERIC_FIELDS,
    PERCENTAGE_FIELDS,
    UNIFIED_FIELD_ATTRS,
    Platform,
    ProcessingResult,
    UnifiedRecord,
)

from .ingestion import (
    normalize_number,
    normalize_percentage,
    normalize_text,
    normalize_time_format,
)


logger = logging.getLogger(__name__)

# Numeric fields that count things (stored as int when integral)
COUNT_FIELDS = NUMERIC_FIELDS - PERCENTAGE_FIELDS - {AVG_WATCH_DURATION}


# ---------------------------------------------------------------------------
# Single-row transform
# ---------------------------------------------------------------------------

def _as_count(value):
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def normalize_field(label: str, value: Any):
    """Normalize one source value for the unified field *label*."""
    if label in DATE_FIELDS:
        return normalize_time_format(value)
    if label in PERCENTAGE_FIELDS:
        return normalize_percentage(value)
    if label in COUNT_FIELDS:
        return _as_count(normalize_number(value))
    if label in NUMERIC_FIELDS:
        return normalize_number(value)
    return normalize_text(value)


def transform_row(row: dict, platform: Platform,
                  mapping: dict[str, str] | None = None) -> UnifiedRecord:
    """Build one unified record from a raw row dict.

    A column missing from *row* leaves its unified field at the default.
    """
    if mapping is None:
        mapping = get_mapping(platform)

    values = {}
    for source, label in mapping.items():
        if source not in row:
            continue
        values[UNIFIED_FIELD_ATTRS[label]] = normalize_field(label, row[source])

    extension = {key: value for key, value in row.items() if key not in mapping}
    return UnifiedRecord(platform=platform, extension_fields=extension, **values)


def is_valid_record(record: UnifiedRecord) -> bool:
    """A record needs a title or a non-zero view count."""
    return bool(record.title) or bool(record.views)


# ---------------------------------------------------------------------------
# DataProcessor
# ---------------------------------------------------------------------------

class DataProcessor:
    """Transforms every row of one file for a single platform.

    Args:
        platform: The platform detected for the file.
        mapping: Native -> unified field mapping.  Defaults to the
            static table entry for *platform*.
    """

    def __init__(self, platform: Platform, mapping: dict[str, str] | None = None):
        self.platform = platform
        self.mapping = mapping if mapping is not None else get_mapping(platform)

    def process(self, rows: Iterable[dict]) -> ProcessingResult:
        """Transform *rows*, collecting per-row errors.

        A rejected or failing row is reported as ``"Row N: ..."`` (1-based)
        and skipped; the rest of the batch is still processed.
        """
        rows = list(rows)
        result = ProcessingResult(total_rows=len(rows))

        for index, row in enumerate(rows, start=1):
            try:
                record = transform_row(row, self.platform, self.mapping)
            except Exception as exc:
                logger.warning("%s row %d could not be transformed: %s",
                               self.platform.value, index, exc)
                result.errors.append(f"Row {index}: processing error: {exc}")
                continue

            if not is_valid_record(record):
                result.errors.append(
                    f"Row {index}: missing required field (title or views)"
                )
                continue

            result.records.append(record)
            result.valid_rows += 1

        if result.errors:
            logger.info("%s: %d of %d row(s) rejected", self.platform.value,
                        result.invalid_rows, result.total_rows)
        return result


def process_rows(rows: Iterable[dict], platform: Platform,
                 mapping: dict[str, str] | None = None) -> ProcessingResult:
    """Transform one file's rows.  See :class:`DataProcessor`."""
    return DataProcessor(platform, mapping).process(rows)
