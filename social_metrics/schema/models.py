"""Data models - the contract between processor, analytics and exporters.

Defines the closed set of source platforms, the unified record every
platform row is converted into, and the derived analytics aggregates.
Each model serializes to the label-keyed / camelCase JSON shape that
snapshot files carry, so snapshots written by earlier releases of the
tool load back unchanged.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# Platforms
# ---------------------------------------------------------------------------

class Platform(Enum):
    """Source platform of an exported analytics spreadsheet."""
    DOUYIN = "抖音"
    CHANNELS = "视频号"          # WeChat Channels
    XIAOHONGSHU = "小红书"


# ---------------------------------------------------------------------------
# Unified field labels
# ---------------------------------------------------------------------------

PLATFORM_FIELD = "来源平台"
EXTENSION_FIELD = "扩展字段"

TITLE = "标题描述"
PUBLISH_TIME = "发布时间"
GENRE = "体裁类型"
IMPRESSIONS = "曝光量"
VIEWS = "播放量"
LIKES = "点赞量"
COMMENTS = "评论量"
BOOKMARKS = "收藏量"
SHARES = "分享量"
FOLLOWER_DELTA = "粉丝增量"
COMPLETION_RATE = "完播率"
AVG_WATCH_DURATION = "平均播放时长"

# Unified label -> UnifiedRecord attribute
UNIFIED_FIELD_ATTRS = {
    TITLE: "title",
    PUBLISH_TIME: "publish_time",
    GENRE: "genre",
    IMPRESSIONS: "impressions",
    VIEWS: "views",
    LIKES: "likes",
    COMMENTS: "comments",
    BOOKMARKS: "bookmarks",
    SHARES: "shares",
    FOLLOWER_DELTA: "follower_delta",
    COMPLETION_RATE: "completion_rate",
    AVG_WATCH_DURATION: "avg_watch_duration",
}

TEXT_FIELDS = frozenset({TITLE, GENRE})
DATE_FIELDS = frozenset({PUBLISH_TIME})
PERCENTAGE_FIELDS = frozenset({COMPLETION_RATE})
NUMERIC_FIELDS = frozenset(
    set(UNIFIED_FIELD_ATTRS) - TEXT_FIELDS - DATE_FIELDS
)

# Column order of the unified export sheet
UNIFIED_FIELDS = [PLATFORM_FIELD] + list(UNIFIED_FIELD_ATTRS)


# ---------------------------------------------------------------------------
# Unified record
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class UnifiedRecord:
    """One content item after platform mapping and normalization.

    ``completion_rate`` keeps the platform's native scale (a fraction for
    Douyin, a percentage elsewhere); use
    :func:`~social_metrics.processor.ingestion.normalize_completion_rate_percent`
    before comparing or averaging across platforms.

    ``extension_fields`` holds exactly the source columns that are not
    keys of the platform's field mapping, values kept verbatim.
    """
    platform: Platform
    title: str = ""
    publish_time: str = ""
    genre: str = ""
    impressions: float = 0
    views: float = 0
    likes: float = 0
    comments: float = 0
    bookmarks: float = 0
    shares: float = 0
    follower_delta: float = 0
    completion_rate: float = 0
    avg_watch_duration: float = 0
    extension_fields: dict[str, Any] = field(default_factory=dict)

    def get(self, label: str):
        """Return the value of a unified field by its label."""
        if label == PLATFORM_FIELD:
            return self.platform.value
        if label == EXTENSION_FIELD:
            return self.extension_fields
        return getattr(self, UNIFIED_FIELD_ATTRS[label])

    def to_dict(self) -> dict:
        d: dict[str, Any] = {PLATFORM_FIELD: self.platform.value}
        for label, attr in UNIFIED_FIELD_ATTRS.items():
            d[label] = getattr(self, attr)
        d[EXTENSION_FIELD] = dict(self.extension_fields)
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "UnifiedRecord":
        kwargs = {
            attr: d[label]
            for label, attr in UNIFIED_FIELD_ATTRS.items()
            if label in d
        }
        return cls(
            platform=Platform(d[PLATFORM_FIELD]),
            extension_fields=dict(d.get(EXTENSION_FIELD) or {}),
            **kwargs,
        )


# ---------------------------------------------------------------------------
# Dataset processing result
# ---------------------------------------------------------------------------

@dataclass
class ProcessingResult:
    """Output of transforming one file's rows."""
    records: list[UnifiedRecord] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    total_rows: int = 0
    valid_rows: int = 0

    @property
    def invalid_rows(self) -> int:
        return self.total_rows - self.valid_rows

    @property
    def success(self) -> bool:
        return not self.errors

    def summary(self) -> dict:
        return {
            "totalRows": self.total_rows,
            "validRows": self.valid_rows,
            "invalidRows": self.invalid_rows,
        }


# ---------------------------------------------------------------------------
# Analytics aggregates
# ---------------------------------------------------------------------------

@dataclass
class PlatformMetrics:
    """Per-platform totals and rates."""
    platform: str
    total_content: int
    total_views: float
    total_likes: float
    total_comments: float
    total_shares: float
    total_bookmarks: float
    total_engagement: float
    avg_engagement_rate: float    # percent
    avg_completion_rate: float    # percent, scale-corrected

    def to_dict(self) -> dict:
        return {
            "platform": self.platform,
            "totalContent": self.total_content,
            "totalViews": self.total_views,
            "totalLikes": self.total_likes,
            "totalComments": self.total_comments,
            "totalShares": self.total_shares,
            "totalBookmarks": self.total_bookmarks,
            "totalEngagement": self.total_engagement,
            "avgEngagementRate": self.avg_engagement_rate,
            "avgCompletionRate": self.avg_completion_rate,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "PlatformMetrics":
        return cls(
            platform=d["platform"],
            total_content=d["totalContent"],
            total_views=d["totalViews"],
            total_likes=d["totalLikes"],
            total_comments=d["totalComments"],
            total_shares=d["totalShares"],
            total_bookmarks=d.get("totalBookmarks", 0),
            total_engagement=d.get("totalEngagement", 0),
            avg_engagement_rate=d["avgEngagementRate"],
            avg_completion_rate=d["avgCompletionRate"],
        )


# Metric label -> UnifiedRecord attribute for time-series points
SERIES_METRICS = {
    VIEWS: "views",
    LIKES: "likes",
    COMMENTS: "comments",
    SHARES: "shares",
    BOOKMARKS: "bookmarks",
}


@dataclass
class TimeSeriesPoint:
    """One calendar day of per-platform activity.

    ``metrics`` only has an entry for platforms that published that day.
    """
    date: str                                        # YYYY-MM-DD
    metrics: dict[Platform, dict[str, float]] = field(default_factory=dict)

    def value(self, platform: Platform, label: str):
        """Return a platform's metric for the day, or ``None`` if inactive."""
        return self.metrics.get(platform, {}).get(label)

    def to_dict(self) -> dict:
        d: dict[str, Any] = {"date": self.date}
        for platform in Platform:
            if platform not in self.metrics:
                continue
            for label, value in self.metrics[platform].items():
                d[f"{platform.value}{label}"] = value
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "TimeSeriesPoint":
        metrics: dict[Platform, dict[str, float]] = {}
        for platform in Platform:
            for label in SERIES_METRICS:
                key = f"{platform.value}{label}"
                if key in d:
                    metrics.setdefault(platform, {})[label] = d[key]
        return cls(date=d["date"], metrics=metrics)


@dataclass
class ContentTypeMetrics:
    """Breakdown row for one genre label."""
    type: str
    count: int
    avg_views: int
    avg_likes: int
    avg_comments: int
    engagement_rate: float
    avg_engagement: int

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "count": self.count,
            "avgViews": self.avg_views,
            "avgLikes": self.avg_likes,
            "avgComments": self.avg_comments,
            "engagementRate": self.engagement_rate,
            "avgEngagement": self.avg_engagement,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ContentTypeMetrics":
        return cls(
            type=d["type"],
            count=d["count"],
            avg_views=d["avgViews"],
            avg_likes=d["avgLikes"],
            avg_comments=d["avgComments"],
            engagement_rate=d["engagementRate"],
            avg_engagement=d.get("avgEngagement", 0),
        )


@dataclass
class PerformanceMetrics:
    """Global totals across every platform."""
    total_views: float = 0
    total_likes: float = 0
    total_comments: float = 0
    total_shares: float = 0
    total_bookmarks: float = 0
    total_engagement: float = 0
    avg_engagement_rate: float = 0.0
    avg_completion_rate: float = 0.0
    best_performing_platform: str = ""
    content_growth_rate: float = 0.0
    total_content: int = 0
    viral_content_count: int = 0

    def to_dict(self) -> dict:
        return {
            "totalViews": self.total_views,
            "totalLikes": self.total_likes,
            "totalComments": self.total_comments,
            "totalShares": self.total_shares,
            "totalBookmarks": self.total_bookmarks,
            "totalEngagement": self.total_engagement,
            "avgEngagementRate": self.avg_engagement_rate,
            "avgCompletionRate": self.avg_completion_rate,
            "bestPerformingPlatform": self.best_performing_platform,
            "contentGrowthRate": self.content_growth_rate,
            "totalContent": self.total_content,
            "viralContentCount": self.viral_content_count,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "PerformanceMetrics":
        return cls(
            total_views=d["totalViews"],
            total_likes=d["totalLikes"],
            total_comments=d["totalComments"],
            total_shares=d["totalShares"],
            total_bookmarks=d.get("totalBookmarks", 0),
            total_engagement=d.get("totalEngagement", 0),
            avg_engagement_rate=d["avgEngagementRate"],
            avg_completion_rate=d.get("avgCompletionRate", 0.0),
            best_performing_platform=d["bestPerformingPlatform"],
            content_growth_rate=d["contentGrowthRate"],
            total_content=d["totalContent"],
            viral_content_count=d.get("viralContentCount", 0),
        )


@dataclass
class TopContentItem:
    """One entry of the top-content ranking."""
    title: str
    platform: str
    publish_time: str
    views: float
    likes: float
    comments: float
    engagement_rate: float

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "platform": self.platform,
            "publishTime": self.publish_time,
            "views": self.views,
            "likes": self.likes,
            "comments": self.comments,
            "engagementRate": self.engagement_rate,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "TopContentItem":
        return cls(
            title=d["title"],
            platform=d["platform"],
            publish_time=d["publishTime"],
            views=d["views"],
            likes=d["likes"],
            comments=d["comments"],
            engagement_rate=d["engagementRate"],
        )


@dataclass
class AnalyticsData:
    """Everything the aggregator derives from a unified record set."""
    platform_comparison: list[PlatformMetrics] = field(default_factory=list)
    time_series: list[TimeSeriesPoint] = field(default_factory=list)
    content_types: list[ContentTypeMetrics] = field(default_factory=list)
    performance: PerformanceMetrics = field(default_factory=PerformanceMetrics)
    top_content: list[TopContentItem] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "platformComparison": [m.to_dict() for m in self.platform_comparison],
            "timeSeriesData": [p.to_dict() for p in self.time_series],
            "contentTypeAnalysis": [c.to_dict() for c in self.content_types],
            "performanceMetrics": self.performance.to_dict(),
            "topContent": [t.to_dict() for t in self.top_content],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "AnalyticsData":
        return cls(
            platform_comparison=[
                PlatformMetrics.from_dict(m) for m in d.get("platformComparison", [])
            ],
            time_series=[
                TimeSeriesPoint.from_dict(p) for p in d.get("timeSeriesData", [])
            ],
            content_types=[
                ContentTypeMetrics.from_dict(c) for c in d.get("contentTypeAnalysis", [])
            ],
            performance=PerformanceMetrics.from_dict(d["performanceMetrics"]),
            top_content=[
                TopContentItem.from_dict(t) for t in d.get("topContent", [])
            ],
        )
