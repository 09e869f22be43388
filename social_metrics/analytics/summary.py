"""Summary report - headline counts per platform for the overview screen.

The returned dict keeps the key names existing consumers and stored
snapshots rely on (``总数据量``, ``总涨粉数``, ``平台统计``, ``时间范围``).
"""

from collections.abc import Iterable

from social_metrics.processor.ingestion import (
    normalize_completion_rate_percent,
    parse_publish_time,
)
from social_metrics.schema.models import UnifiedRecord


def _platform_block() -> dict:
    return {
        "count": 0,
        "totalViews": 0,
        "totalLikes": 0,
        "totalComments": 0,
        "totalFollowers": 0,
        "avgCompletionRate": 0,
    }


def generate_summary(records: Iterable[UnifiedRecord]) -> dict:
    """Build the summary report for *records*.

    Per platform: count, totals, scale-corrected average completion rate
    and per-item averages.  ``avgInteractions`` is (likes + comments) per
    item.  The time range spans the parseable publish times, compared as
    strings (canonical times sort chronologically).
    """
    records = list(records)
    platform_stats: dict[str, dict] = {}

    for r in records:
        stats = platform_stats.setdefault(r.platform.value, _platform_block())
        stats["count"] += 1
        stats["totalViews"] += r.views
        stats["totalLikes"] += r.likes
        stats["totalComments"] += r.comments
        stats["totalFollowers"] += r.follower_delta
        stats["avgCompletionRate"] += normalize_completion_rate_percent(
            r.completion_rate, r.platform
        )

    for stats in platform_stats.values():
        count = stats["count"]
        stats["avgViews"] = stats["totalViews"] / count
        stats["avgLikes"] = stats["totalLikes"] / count
        stats["avgComments"] = stats["totalComments"] / count
        stats["avgCompletionRate"] = stats["avgCompletionRate"] / count
        stats["avgInteractions"] = (stats["totalLikes"] + stats["totalComments"]) / count

    times = [r.publish_time for r in records
             if parse_publish_time(r.publish_time) is not None]
    return {
        "总数据量": len(records),
        "总涨粉数": sum(r.follower_delta for r in records),
        "平台统计": platform_stats,
        "时间范围": {
            "最早": min(times) if times else "",
            "最晚": max(times) if times else "",
        },
    }
