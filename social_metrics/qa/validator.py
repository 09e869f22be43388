"""QA validator - checks analytics output against the records it came from.

Recomputes nothing heavy: each check compares one analytics view with
totals taken directly from the unified records, so an analytics object
loaded from an old snapshot (or produced by a changed aggregator) can be
verified before it is shown.

Usage::

    from social_metrics.qa.validator import AnalyticsValidator

    result = AnalyticsValidator().validate(records, analytics)
    assert result.passed, result.report()
"""

import datetime
import math
from dataclasses import dataclass, field

from social_metrics.analytics.aggregator import AnalyticsSettings
from social_metrics.processor.ingestion import (
    normalize_completion_rate_percent,
    parse_publish_time,
)
from social_metrics.schema.models import AnalyticsData, UnifiedRecord


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class Issue:
    """A single QA issue found during validation."""
    severity: str       # "error" or "warning"
    section: str        # e.g. "platformComparison", "timeSeriesData"
    category: str       # e.g. "totals", "coverage", "ordering"
    message: str

    def __str__(self) -> str:
        return f"[{self.severity.upper()}] {self.section}: {self.message}"


@dataclass
class QAResult:
    """Aggregated result of QA validation."""
    issues: list[Issue] = field(default_factory=list)

    @property
    def errors(self) -> list[Issue]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> list[Issue]:
        return [i for i in self.issues if i.severity == "warning"]

    @property
    def passed(self) -> bool:
        return len(self.errors) == 0

    def summary(self) -> str:
        """One-line summary string."""
        status = "PASS" if self.passed else "FAIL"
        return (
            f"QA {status}: {len(self.errors)} error(s), "
            f"{len(self.warnings)} warning(s)"
        )

    def report(self) -> str:
        """Multi-line report of all issues."""
        lines = [self.summary()]
        for issue in self.issues:
            lines.append(f"  {issue}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _close(a, b) -> bool:
    return math.isclose(a, b, rel_tol=1e-9, abs_tol=1e-6)


def _is_descending(values: list) -> bool:
    return all(a >= b for a, b in zip(values, values[1:]))


# ---------------------------------------------------------------------------
# AnalyticsValidator
# ---------------------------------------------------------------------------

class AnalyticsValidator:
    """Validates an :class:`AnalyticsData` against its unified records.

    Args:
        settings: The settings the analytics were generated with
            (top-content limit, reference platform).
    """

    def __init__(self, settings: AnalyticsSettings | None = None) -> None:
        self.settings = settings or AnalyticsSettings()

    def validate(self, records: list[UnifiedRecord],
                 analytics: AnalyticsData) -> QAResult:
        """Run all checks and collect issues."""
        records = list(records)
        result = QAResult()
        self._check_platform_totals(records, analytics, result)
        self._check_completion_scale(analytics, result)
        self._check_time_series(records, analytics, result)
        self._check_content_types(records, analytics, result)
        self._check_top_content(analytics, result)
        return result

    def _error(self, result: QAResult, section: str, category: str, message: str):
        result.issues.append(Issue("error", section, category, message))

    def _warning(self, result: QAResult, section: str, category: str, message: str):
        result.issues.append(Issue("warning", section, category, message))

    # ------------------------------------------------------------------
    # Platform comparison vs. performance metrics
    # ------------------------------------------------------------------

    def _check_platform_totals(self, records, analytics, result) -> None:
        comparison = analytics.platform_comparison
        perf = analytics.performance

        platform_views = sum(m.total_views for m in comparison)
        if not _close(platform_views, perf.total_views):
            self._error(result, "platformComparison", "totals",
                        f"Platform view totals sum to {platform_views}, "
                        f"global total is {perf.total_views}")

        content = sum(m.total_content for m in comparison)
        if content != len(records) or perf.total_content != len(records):
            self._error(result, "platformComparison", "totals",
                        f"Content counts (platforms {content}, global "
                        f"{perf.total_content}) do not match {len(records)} records")

        names = [m.platform for m in comparison]
        if len(names) != len(set(names)):
            self._error(result, "platformComparison", "duplicates",
                        f"Platform listed more than once: {names}")
        expected = {r.platform.value for r in records}
        if set(names) != expected:
            self._error(result, "platformComparison", "coverage",
                        f"Platforms {sorted(names)} != record platforms {sorted(expected)}")

    def _check_completion_scale(self, analytics, result) -> None:
        for m in analytics.platform_comparison:
            if not 0 <= m.avg_completion_rate <= 100:
                self._warning(result, "platformComparison", "scale",
                              f"{m.platform} average completion rate "
                              f"{m.avg_completion_rate:.2f} is outside 0-100%")
        rate = analytics.performance.avg_completion_rate
        if not 0 <= rate <= 100:
            self._warning(result, "performanceMetrics", "scale",
                          f"Average completion rate {rate:.2f} is outside 0-100%")

    # ------------------------------------------------------------------
    # Time series
    # ------------------------------------------------------------------

    def _check_time_series(self, records, analytics, result) -> None:
        days = sorted({
            published.date()
            for published in (parse_publish_time(r.publish_time) for r in records)
            if published is not None
        })
        series = analytics.time_series

        if not days:
            if series:
                self._error(result, "timeSeriesData", "coverage",
                            f"{len(series)} point(s) but no dated records")
            return

        expected_points = (days[-1] - days[0]).days + 1
        if len(series) != expected_points:
            self._error(result, "timeSeriesData", "coverage",
                        f"Expected {expected_points} daily point(s) from "
                        f"{days[0]} to {days[-1]}, got {len(series)}")
            return

        for offset, point in enumerate(series):
            expected = (days[0] + datetime.timedelta(days=offset)).isoformat()
            if point.date != expected:
                self._error(result, "timeSeriesData", "gaps",
                            f"Point {offset} is dated {point.date}, expected {expected}")
                return

    # ------------------------------------------------------------------
    # Content types
    # ------------------------------------------------------------------

    def _check_content_types(self, records, analytics, result) -> None:
        breakdown = analytics.content_types
        if not _is_descending([c.count for c in breakdown]):
            self._error(result, "contentTypeAnalysis", "ordering",
                        "Content types are not sorted by count")

        reference = self.settings.content_type_platform
        expected = sum(1 for r in records if r.platform is reference)
        counted = sum(c.count for c in breakdown)
        if counted != expected:
            self._error(result, "contentTypeAnalysis", "totals",
                        f"Content type counts sum to {counted}, "
                        f"{reference.value} has {expected} record(s)")

    # ------------------------------------------------------------------
    # Top content
    # ------------------------------------------------------------------

    def _check_top_content(self, analytics, result) -> None:
        top = analytics.top_content
        limit = self.settings.top_content_limit
        if len(top) > limit:
            self._error(result, "topContent", "limit",
                        f"{len(top)} item(s) exceed the limit of {limit}")
        if not _is_descending([t.engagement_rate for t in top]):
            self._error(result, "topContent", "ordering",
                        "Top content is not sorted by engagement rate")


def validate_analytics(records: list[UnifiedRecord], analytics: AnalyticsData,
                       settings: AnalyticsSettings | None = None) -> QAResult:
    """Convenience function to validate analytics in one call."""
    return AnalyticsValidator(settings).validate(records, analytics)


def completion_rate_outliers(records: list[UnifiedRecord]) -> list[UnifiedRecord]:
    """Records whose scale-corrected completion rate exceeds 100%."""
    return [
        r for r in records
        if normalize_completion_rate_percent(r.completion_rate, r.platform) > 100
    ]
