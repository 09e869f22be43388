"""Static field mapping table - native column name -> unified field label.

Each platform exports its own column names.  A platform without a
column for some unified field simply has no entry for it; the field
then keeps its default on every record from that platform.
"""

from .models import (
    AVG_WATCH_DURATION,
    BOOKMARKS,
    COMMENTS,
    COMPLETION_RATE,
    FOLLOWER_DELTA,
    GENRE,
    IMPRESSIONS,
    LIKES,
    PUBLISH_TIME,
    SHARES,
    TITLE,
    UNIFIED_FIELD_ATTRS,
    VIEWS,
    Platform,
)


FIELD_MAPPINGS: dict[Platform, dict[str, str]] = {
    Platform.DOUYIN: {
        "作品名称": TITLE,
        "发布时间": PUBLISH_TIME,
        "体裁": GENRE,
        "播放量": VIEWS,
        "点赞量": LIKES,
        "评论量": COMMENTS,
        "收藏量": BOOKMARKS,
        "分享量": SHARES,
        "粉丝增量": FOLLOWER_DELTA,
        "完播率": COMPLETION_RATE,
        "平均播放时长": AVG_WATCH_DURATION,
    },
    Platform.CHANNELS: {
        "视频描述": TITLE,
        "发布时间": PUBLISH_TIME,
        "推荐": IMPRESSIONS,
        "播放量": VIEWS,
        "喜欢": LIKES,
        "评论量": COMMENTS,
        "分享量": SHARES,
        "关注量": FOLLOWER_DELTA,
        "完播率": COMPLETION_RATE,
        "平均播放时长": AVG_WATCH_DURATION,
    },
    Platform.XIAOHONGSHU: {
        "笔记标题": TITLE,
        "首次发布时间": PUBLISH_TIME,
        "体裁": GENRE,
        "曝光": IMPRESSIONS,
        "观看量": VIEWS,
        "点赞": LIKES,
        "评论": COMMENTS,
        "收藏": BOOKMARKS,
        "分享": SHARES,
        "涨粉": FOLLOWER_DELTA,
        "人均观看时长": AVG_WATCH_DURATION,
    },
}

# Platform-distinguishing header pairs, checked in this order
PLATFORM_SIGNATURES: list[tuple[Platform, tuple[str, str]]] = [
    (Platform.DOUYIN, ("作品名称", "播放量")),
    (Platform.CHANNELS, ("视频描述", "推荐")),
    (Platform.XIAOHONGSHU, ("笔记标题", "曝光")),
]

MISSING_COLUMN = "-"

# Labels shown in the reference sheet where they differ from the field name
REFERENCE_LABELS = {
    "标题描述": "标题/描述",
    "体裁类型": "体裁/类型",
    "粉丝增量": "粉丝/关注增量",
}


def get_mapping(platform: Platform, mappings: dict | None = None) -> dict[str, str]:
    """Return the native -> unified mapping for *platform*.

    Raises KeyError if *mappings* has no entry for the platform.
    """
    table = FIELD_MAPPINGS if mappings is None else mappings
    return table[platform]


def validate_mappings(mappings: dict[Platform, dict[str, str]]) -> None:
    """Check every platform is present and every target is a known field.

    Raises:
        ValueError: On a missing platform or an unknown unified field.
    """
    for platform in Platform:
        if platform not in mappings:
            raise ValueError(f"Field mapping missing for platform {platform.value!r}")
        unknown = sorted(
            target for target in mappings[platform].values()
            if target not in UNIFIED_FIELD_ATTRS
        )
        if unknown:
            raise ValueError(
                f"Unknown unified field(s) in {platform.value!r} mapping: "
                f"{', '.join(unknown)}. "
                f"Valid fields: {', '.join(UNIFIED_FIELD_ATTRS)}"
            )


def mapping_reference_rows(mappings: dict | None = None) -> list[dict[str, str]]:
    """Build the unified field x platform reference table.

    One row per unified field, labelled with its display name from
    :data:`REFERENCE_LABELS`, and one column per platform holding the
    native column name, or ``"-"`` where the platform has none.
    """
    table = FIELD_MAPPINGS if mappings is None else mappings
    rows = []
    for label in UNIFIED_FIELD_ATTRS:
        row = {"统一字段": REFERENCE_LABELS.get(label, label)}
        for platform in Platform:
            native = [src for src, dst in table[platform].items() if dst == label]
            row[platform.value] = " / ".join(native) if native else MISSING_COLUMN
        rows.append(row)
    return rows
