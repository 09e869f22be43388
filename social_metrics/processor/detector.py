"""Platform detection from a file's header row."""

from collections.abc import Iterable

from social_metrics.errors import UnrecognizedPlatformError
from social_metrics.schema.field_mapping import PLATFORM_SIGNATURES
from social_metrics.schema.models import Platform


def detect_platform(headers: Iterable[str]) -> Platform | None:
    """Classify a header set as one of the known platforms.

    Signature pairs are tested in priority order (Douyin, Channels,
    Xiaohongshu); the first platform with *both* signature headers
    present wins.  Header order is irrelevant.

    Returns ``None`` when no signature matches.
    """
    header_set = {str(h).strip() for h in headers}
    for platform, (first, second) in PLATFORM_SIGNATURES:
        if first in header_set and second in header_set:
            return platform
    return None


def require_platform(headers: Iterable[str], file_name: str) -> Platform:
    """Like :func:`detect_platform` but fail loudly on no match.

    Raises:
        UnrecognizedPlatformError: If the headers match no platform.
    """
    platform = detect_platform(headers)
    if platform is None:
        raise UnrecognizedPlatformError(file_name)
    return platform
