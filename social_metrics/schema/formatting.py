"""Display formatting for counts, rates and sizes.

- Numbers: <1万 = 1,234 / 1万-1亿 = X.X万 / 1亿+ = X.X亿
- Percentages: X.XX%
- Variances: +X.X% / -X.X%
- File sizes: B / KB / MB / GB, up to two decimals
"""

import math


def _is_missing(value) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def format_number(value: float | int | None) -> str:
    """Format a count using Chinese myriad units.

    <10,000          -> 1,234
    10,000-99,999,999 -> 1.2万
    100,000,000+     -> 1.2亿
    """
    if _is_missing(value):
        return "N/A"
    if value >= 100_000_000:
        return f"{value / 100_000_000:.1f}亿"
    if value >= 10_000:
        return f"{value / 10_000:.1f}万"
    if value == int(value):
        return f"{int(value):,}"
    return f"{value:,.2f}".rstrip("0").rstrip(".")


def format_percentage(value: float | int | None) -> str:
    """Format a rate already in percent as X.XX%."""
    if _is_missing(value):
        return "N/A"
    return f"{value:.2f}%"


def format_variance_percentage(value: float | int | None) -> str:
    """Format a change as +X.X% or -X.X%."""
    if _is_missing(value):
        return "N/A"
    sign = "+" if value > 0 else ""
    return f"{sign}{value:.1f}%"


def format_file_size(size: int) -> str:
    """Format a byte count, e.g. 1536 -> '1.5 KB'."""
    if size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB"]
    exponent = 0
    while exponent < len(units) - 1 and size >= 1024 ** (exponent + 1):
        exponent += 1
    scaled = round(size / 1024 ** exponent, 2)
    text = f"{scaled:.2f}".rstrip("0").rstrip(".")
    return f"{text} {units[exponent]}"
