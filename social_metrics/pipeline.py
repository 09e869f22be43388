"""Multi-file pipeline - read, detect, transform, merge, summarize, analyze.

Files are handled one after another so every error can be attributed to
a file name and row number.  Failures are tiered:

- a rejected or failing row is listed in that file's row errors
- an unreadable file, an unrecognized platform or a file with no valid
  rows aborts that file only
- a run where no file yields data raises :class:`PipelineError`
- an analytics failure leaves ``analytics`` as ``None``; records and
  summary stay usable

Usage::

    result = process_files(["douyin.xlsx", "xhs.csv"])
    result.records       # merged UnifiedRecord list, newest first
    result.summary       # summary report dict
    result.analytics     # AnalyticsData or None
    result.warnings      # one entry per file with problems
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from social_metrics.analytics.aggregator import generate_analytics
from social_metrics.analytics.summary import generate_summary
from social_metrics.config import PipelineConfig
from social_metrics.errors import EmptyResultError, PipelineError
from social_metrics.processor.detector import require_platform
from social_metrics.processor.ingestion import RawTable, parse_publish_time, read_rows
from social_metrics.processor.transform import DataProcessor
from social_metrics.schema.models import (
    AnalyticsData,
    Platform,
    ProcessingResult,
    UnifiedRecord,
)


logger = logging.getLogger(__name__)

# Errors that abort a single file
FILE_ERRORS = (OSError, ValueError)


# ---------------------------------------------------------------------------
# Result containers
# ---------------------------------------------------------------------------

@dataclass
class FileOutcome:
    """What happened to one input file."""
    file_name: str
    platform: Platform | None = None
    result: ProcessingResult | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class PipelineResult:
    """Output of :func:`process_files`."""
    records: list[UnifiedRecord] = field(default_factory=list)
    summary: dict = field(default_factory=dict)
    analytics: AnalyticsData | None = None
    warnings: list[str] = field(default_factory=list)
    files: list[FileOutcome] = field(default_factory=list)

    @property
    def failed_files(self) -> list[FileOutcome]:
        return [f for f in self.files if not f.ok]

    def warning_message(self) -> str:
        """Combined warning text, or ``""`` when there is nothing to report."""
        if not self.warnings:
            return ""
        return "Processing finished with warnings:\n" + "\n".join(self.warnings)


# ---------------------------------------------------------------------------
# Single file
# ---------------------------------------------------------------------------

def process_table(table: RawTable,
                  config: PipelineConfig | None = None) -> tuple[Platform, ProcessingResult]:
    """Detect the platform of one decoded file and transform its rows.

    Raises:
        EmptyResultError: If the file has no rows or no valid rows.
        UnrecognizedPlatformError: If the headers match no platform.
    """
    config = config or PipelineConfig()
    if table.is_empty:
        raise EmptyResultError(table.file_name, "file contains no rows")

    platform = require_platform(table.headers, table.file_name)
    processor = DataProcessor(platform, config.field_mappings[platform])
    result = processor.process(table.rows)

    if result.valid_rows == 0:
        raise EmptyResultError(
            table.file_name,
            f"all {result.total_rows} row(s) rejected: {'; '.join(result.errors)}",
        )
    logger.info("%s: detected %s, %d/%d row(s) valid", table.file_name,
                platform.value, result.valid_rows, result.total_rows)
    return platform, result


# ---------------------------------------------------------------------------
# Merge helpers
# ---------------------------------------------------------------------------

def sort_newest_first(records: Iterable[UnifiedRecord]) -> list[UnifiedRecord]:
    """Order records by publish time, newest first; unparseable times last."""
    dated, undated = [], []
    for record in records:
        published = parse_publish_time(record.publish_time)
        if published is None:
            undated.append(record)
        else:
            dated.append((published, record))
    dated.sort(key=lambda pair: pair[0], reverse=True)
    return [record for _, record in dated] + undated


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def _run(sources: list[tuple[str, Callable[[], RawTable]]],
         config: PipelineConfig | None) -> PipelineResult:
    config = config or PipelineConfig()
    outcome = PipelineResult()
    merged: list[UnifiedRecord] = []

    for file_name, load in sources:
        current = FileOutcome(file_name=file_name)
        outcome.files.append(current)
        try:
            table = load()
            current.platform, current.result = process_table(table, config)
        except FILE_ERRORS as exc:
            logger.warning("Skipping %s: %s", file_name, exc)
            current.error = str(exc)
            outcome.warnings.append(f"{file_name}: {exc}")
            continue

        merged.extend(current.result.records)
        if current.result.errors:
            outcome.warnings.append(
                f"{file_name}: {'; '.join(current.result.errors)}"
            )

    if not merged:
        details = "; ".join(outcome.warnings) or "no input files"
        raise PipelineError(f"No valid data was processed ({details})")

    outcome.records = sort_newest_first(merged)
    outcome.summary = generate_summary(outcome.records)

    try:
        outcome.analytics = generate_analytics(outcome.records, config.analytics)
    except Exception as exc:
        logger.exception("Analytics generation failed")
        outcome.warnings.append(f"Analytics unavailable: {exc}")

    return outcome


def process_files(paths: Iterable[str | Path],
                  config: PipelineConfig | None = None) -> PipelineResult:
    """Run the full pipeline over spreadsheet/CSV files, in order.

    Raises:
        PipelineError: If no file yields any valid record.
    """
    sources = [(Path(p).name, lambda p=p: read_rows(p)) for p in paths]
    return _run(sources, config)


def process_tables(tables: Iterable[RawTable],
                   config: PipelineConfig | None = None) -> PipelineResult:
    """Run the pipeline over already-decoded tables.  See :func:`process_files`."""
    sources = [(t.file_name, lambda t=t: t) for t in tables]
    return _run(sources, config)
