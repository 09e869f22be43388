"""Analytics aggregator for social-metrics.

Derives every analytics view from the merged unified-record set:

- platform comparison (totals, engagement rate, completion rate)
- daily time series with per-platform sums, gap days included
- content-type breakdown for the reference platform
- global performance metrics (viral count, best platform, growth)
- top content ranked by per-item engagement rate

The aggregator is a pure function of its input: nothing is cached and
every call recomputes from the records.

Usage::

    analytics = generate_analytics(records)
    analytics.performance.total_views
    analytics.to_dict()   # JSON-ready, camelCase keys
"""

import logging
import math
from dataclasses import dataclass
from typing import Any

import pandas as pd

from social_metrics.processor.ingestion import (
    CANONICAL_TIME_FORMAT,
    normalize_completion_rate_percent,
    normalize_percentage,
)
from social_metrics.schema.models import (
    SERIES_METRICS,
    AnalyticsData,
    ContentTypeMetrics,
    PerformanceMetrics,
    Platform,
    PlatformMetrics,
    TimeSeriesPoint,
    TopContentItem,
    UnifiedRecord,
)


logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

VIRAL_VIEW_THRESHOLD = 50_000
TOP_CONTENT_LIMIT = 10

UNCLASSIFIED = "未分类"
UNTITLED = "无标题"
UNKNOWN_TIME = "未知时间"
NO_DATA = "无数据"

METRIC_COLUMNS = ["views", "likes", "comments", "shares", "bookmarks"]


@dataclass
class AnalyticsSettings:
    """Tunable thresholds for the aggregator."""
    viral_threshold: float = VIRAL_VIEW_THRESHOLD
    top_content_limit: int = TOP_CONTENT_LIMIT
    # Genre labels are only reliably filled in on this platform's exports
    content_type_platform: Platform = Platform.DOUYIN

    def to_dict(self) -> dict:
        return {
            "viral_threshold": self.viral_threshold,
            "top_content_limit": self.top_content_limit,
            "content_type_platform": self.content_type_platform.value,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "AnalyticsSettings":
        return cls(
            viral_threshold=d.get("viral_threshold", VIRAL_VIEW_THRESHOLD),
            top_content_limit=int(d.get("top_content_limit", TOP_CONTENT_LIMIT)),
            content_type_platform=Platform(
                d.get("content_type_platform", Platform.DOUYIN.value)
            ),
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _native(value):
    """Convert numpy scalars to native Python numbers."""
    if hasattr(value, "item"):
        return value.item()
    return value


def _safe_rate(numerator, denominator) -> float:
    """``numerator / denominator * 100``, or 0.0 when the denominator is not positive."""
    if not denominator or denominator <= 0:
        return 0.0
    return numerator / denominator * 100


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def records_frame(records: list[UnifiedRecord]) -> pd.DataFrame:
    """Build the working DataFrame the aggregations run on.

    Adds ``completion_raw`` / ``completion_pct`` (scale-corrected) and
    ``published_at`` / ``publish_day`` (NaT when the publish time is not
    canonical).
    """
    data = [
        {
            "platform": r.platform.value,
            "title": r.title,
            "publish_time": r.publish_time,
            "genre": r.genre,
            "views": r.views,
            "likes": r.likes,
            "comments": r.comments,
            "shares": r.shares,
            "bookmarks": r.bookmarks,
            "completion_raw": normalize_percentage(r.completion_rate),
            "completion_pct": normalize_completion_rate_percent(
                r.completion_rate, r.platform
            ),
        }
        for r in records
    ]
    df = pd.DataFrame(data, columns=[
        "platform", "title", "publish_time", "genre", *METRIC_COLUMNS,
        "completion_raw", "completion_pct",
    ])
    df["published_at"] = pd.to_datetime(
        df["publish_time"], format=CANONICAL_TIME_FORMAT, errors="coerce"
    )
    df["publish_day"] = df["published_at"].dt.normalize()
    return df


def basic_stats(df: pd.DataFrame) -> dict[str, Any]:
    """Sum the engagement metrics of *df* and derive the engagement rate.

    Engagement is likes + comments + shares + bookmarks.
    """
    totals = {col: _native(df[col].sum()) for col in METRIC_COLUMNS}
    engagement = (totals["likes"] + totals["comments"]
                  + totals["shares"] + totals["bookmarks"])
    return {
        **totals,
        "engagement": engagement,
        "engagement_rate": _safe_rate(engagement, totals["views"]),
    }


# ---------------------------------------------------------------------------
# AnalyticsProcessor
# ---------------------------------------------------------------------------

class AnalyticsProcessor:
    """Computes :class:`AnalyticsData` from unified records.

    Args:
        settings: Thresholds and reference platform; defaults apply when
            omitted.
    """

    def __init__(self, settings: AnalyticsSettings | None = None):
        self.settings = settings or AnalyticsSettings()

    def generate(self, records: list[UnifiedRecord]) -> AnalyticsData:
        """Compute all analytics views from *records*."""
        records = list(records)
        df = records_frame(records)
        comparison = self._platform_comparison(df)
        return AnalyticsData(
            platform_comparison=comparison,
            time_series=self._time_series(df),
            content_types=self._content_types(df),
            performance=self._performance(df, comparison),
            top_content=self._top_content(records),
        )

    # -------------------------------------------------------------------
    # Platform comparison
    # -------------------------------------------------------------------

    def _platform_comparison(self, df: pd.DataFrame) -> list[PlatformMetrics]:
        result = []
        for platform, group in df.groupby("platform", sort=False):
            stats = basic_stats(group)
            result.append(PlatformMetrics(
                platform=platform,
                total_content=len(group),
                total_views=stats["views"],
                total_likes=stats["likes"],
                total_comments=stats["comments"],
                total_shares=stats["shares"],
                total_bookmarks=stats["bookmarks"],
                total_engagement=stats["engagement"],
                avg_engagement_rate=stats["engagement_rate"],
                avg_completion_rate=float(group["completion_pct"].mean()),
            ))
        return result

    # -------------------------------------------------------------------
    # Daily time series
    # -------------------------------------------------------------------

    def _time_series(self, df: pd.DataFrame) -> list[TimeSeriesPoint]:
        dated = df[df["publish_day"].notna()]
        skipped = len(df) - len(dated)
        if skipped:
            logger.debug("Time series: skipped %d record(s) without a valid "
                         "publish time", skipped)
        if dated.empty:
            return []

        days = pd.date_range(dated["publish_day"].min(),
                             dated["publish_day"].max(), freq="D")
        sums = dated.groupby(["publish_day", "platform"], sort=False)[
            METRIC_COLUMNS
        ].sum()
        buckets = sums.to_dict("index")

        points = []
        for day in days:
            metrics = {}
            for platform in Platform:
                values = buckets.get((day, platform.value))
                if values is None:
                    continue
                metrics[platform] = {
                    label: _native(values[attr])
                    for label, attr in SERIES_METRICS.items()
                }
            points.append(TimeSeriesPoint(date=day.strftime("%Y-%m-%d"),
                                          metrics=metrics))
        return points

    # -------------------------------------------------------------------
    # Content-type breakdown
    # -------------------------------------------------------------------

    def _content_types(self, df: pd.DataFrame) -> list[ContentTypeMetrics]:
        subset = df[df["platform"] == self.settings.content_type_platform.value]
        if subset.empty:
            return []
        genres = subset["genre"].where(subset["genre"] != "", UNCLASSIFIED)

        result = []
        for genre, group in subset.groupby(genres, sort=False):
            stats = basic_stats(group)
            count = len(group)
            result.append(ContentTypeMetrics(
                type=genre,
                count=count,
                avg_views=_round_half_up(stats["views"] / count),
                avg_likes=_round_half_up(stats["likes"] / count),
                avg_comments=_round_half_up(stats["comments"] / count),
                engagement_rate=stats["engagement_rate"],
                avg_engagement=_round_half_up(stats["engagement"] / count),
            ))
        return sorted(result, key=lambda m: m.count, reverse=True)

    # -------------------------------------------------------------------
    # Performance metrics
    # -------------------------------------------------------------------

    def _performance(self, df: pd.DataFrame,
                     comparison: list[PlatformMetrics]) -> PerformanceMetrics:
        if df.empty:
            return PerformanceMetrics(best_performing_platform=NO_DATA)

        stats = basic_stats(df)
        rated = df[df["completion_raw"] > 0]
        avg_completion = float(rated["completion_pct"].mean()) if not rated.empty else 0.0
        viral = int((df["views"] >= self.settings.viral_threshold).sum())

        return PerformanceMetrics(
            total_views=stats["views"],
            total_likes=stats["likes"],
            total_comments=stats["comments"],
            total_shares=stats["shares"],
            total_bookmarks=stats["bookmarks"],
            total_engagement=stats["engagement"],
            avg_engagement_rate=stats["engagement_rate"],
            avg_completion_rate=avg_completion,
            best_performing_platform=self._best_platform(comparison),
            content_growth_rate=self._growth_rate(df),
            total_content=len(df),
            viral_content_count=viral,
        )

    @staticmethod
    def _best_platform(comparison: list[PlatformMetrics]) -> str:
        """Platform with the highest total engagement; first one wins ties."""
        best = None
        for metrics in comparison:
            if best is None or metrics.total_engagement > best.total_engagement:
                best = metrics
        return best.platform if best is not None else NO_DATA

    @staticmethod
    def _growth_rate(df: pd.DataFrame) -> float:
        """Percent change in mean views from the earlier to the later half."""
        dated = df[df["published_at"].notna()].sort_values(
            "published_at", kind="stable"
        )
        if len(dated) < 2:
            return 0.0
        half = len(dated) // 2
        first = float(dated["views"].iloc[:half].mean())
        second = float(dated["views"].iloc[half:].mean())
        if first <= 0:
            return 0.0
        return (second - first) / first * 100

    # -------------------------------------------------------------------
    # Top content
    # -------------------------------------------------------------------

    def _top_content(self, records: list[UnifiedRecord]) -> list[TopContentItem]:
        items = []
        for r in records:
            # Bookmarks are not part of this ranking's engagement
            engagement = r.likes + r.comments + r.shares
            items.append(TopContentItem(
                title=r.title or UNTITLED,
                platform=r.platform.value,
                publish_time=r.publish_time or UNKNOWN_TIME,
                views=r.views,
                likes=r.likes,
                comments=r.comments,
                engagement_rate=_safe_rate(engagement, r.views),
            ))
        items.sort(key=lambda item: item.engagement_rate, reverse=True)
        return items[:self.settings.top_content_limit]


def generate_analytics(records: list[UnifiedRecord],
                       settings: AnalyticsSettings | None = None) -> AnalyticsData:
    """Compute all analytics views.  See :class:`AnalyticsProcessor`."""
    return AnalyticsProcessor(settings).generate(records)
