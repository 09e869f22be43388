"""Data ingestion module for social-metrics.

Reads exported analytics spreadsheets into plain row dicts keyed by the
original header names, and provides the value normalizers the row
transformer applies to individual cells:

- Excel workbooks (.xlsx via openpyxl, .xls via pandas' default engine),
  first sheet only
- CSV exports (UTF-8 comma-delimited, or UTF-16 LE tab-delimited when
  the file starts with a UTF-16 BOM)

No schema is enforced at read time; platform detection and field
mapping happen later in the pipeline.
"""

import datetime
import logging
import math
import numbers
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pandas as pd

from social_metrics.errors import UnreadableFileError, UnsupportedFileError
from social_metrics.schema.models import Platform


logger = logging.getLogger(__name__)

CANONICAL_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


# ---------------------------------------------------------------------------
# Value normalizers
# ---------------------------------------------------------------------------

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_NUMERIC_PREFIX = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)")


def _parse_float_prefix(text: str) -> float:
    """Parse the longest leading decimal number in *text*, or NaN."""
    match = _NUMERIC_PREFIX.match(text.strip())
    if not match:
        return float("nan")
    return float(match.group())


def normalize_number(value):
    """Convert a cell value to a non-negative number.

    Numbers pass through unchanged unless negative or NaN.  Strings are
    stripped of everything except digits, ``.`` and ``-`` before the
    leading number is parsed.  Anything unparseable becomes 0.

    Examples:
        1234         -> 1234
        "12,345"     -> 12345.0
        "3.5s"       -> 3.5
        "-20"        -> 0
        "N/A"        -> 0
    """
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, numbers.Real):
        if math.isnan(value) or value < 0:
            return 0
        return value
    if isinstance(value, str):
        parsed = _parse_float_prefix(_NON_NUMERIC.sub("", value))
        if math.isnan(parsed):
            return 0
        return max(0.0, parsed)
    return 0


def normalize_percentage(value):
    """Convert a percentage cell to a non-negative number.

    ``"12.5%"`` becomes 12.5 - the value is *not* rescaled, so a
    fractional source such as ``0.125`` stays 0.125.  Use
    :func:`normalize_completion_rate_percent` to put values from
    different platforms on one scale.  Non-``%`` input falls back to
    :func:`normalize_number`.
    """
    if isinstance(value, str) and "%" in value:
        parsed = _parse_float_prefix(value.replace("%", "", 1))
        if math.isnan(parsed):
            return 0
        return max(0.0, parsed)
    return normalize_number(value)


def normalize_completion_rate_percent(raw, platform: Platform) -> float:
    """Return a stored completion rate as a percentage (0-100).

    Douyin exports completion rate as a fraction (0.12 == 12%); Channels
    exports a percentage string, already stored as 12.  Xiaohongshu has
    no completion-rate column, so its records carry the default 0.

    Raises:
        ValueError: If *platform* is not a known :class:`Platform`.
    """
    rate = normalize_percentage(raw)
    if platform is Platform.DOUYIN:
        return rate * 100
    if platform is Platform.CHANNELS or platform is Platform.XIAOHONGSHU:
        return rate
    raise ValueError(f"Unknown platform: {platform!r}")


_TIME_PATTERNS = [
    # 2024年01月15日14时30分25秒
    re.compile(
        r"(?P<year>\d{4})年(?P<month>\d{1,2})月(?P<day>\d{1,2})日"
        r"(?P<hour>\d{1,2})时(?P<minute>\d{1,2})分(?P<second>\d{1,2})秒",
        re.ASCII,
    ),
    # 2024-01-15 14:30:25 / 2024/01/15 14:30:25
    re.compile(
        r"(?P<year>\d{4})[-/](?P<month>\d{1,2})[-/](?P<day>\d{1,2})"
        r"\s+(?P<hour>\d{1,2}):(?P<minute>\d{1,2}):(?P<second>\d{1,2})",
        re.ASCII,
    ),
    # 2024-01-15
    re.compile(r"(?P<year>\d{4})[-/](?P<month>\d{1,2})[-/](?P<day>\d{1,2})", re.ASCII),
    # 01/15/2024
    re.compile(r"(?P<month>\d{1,2})[-/](?P<day>\d{1,2})[-/](?P<year>\d{4})", re.ASCII),
]


def normalize_time_format(value) -> str:
    """Rewrite a publish-time cell as ``YYYY-MM-DD HH:MM:SS``.

    The first matching pattern wins; date-only inputs become midnight.
    Input that matches no pattern is returned unchanged (as a string),
    so callers must treat a non-canonical result as unparseable.

    Examples:
        "2024年01月15日14时30分25秒" -> "2024-01-15 14:30:25"
        "2024/1/5 9:03:07"          -> "2024-01-05 09:03:07"
        "01/15/2024"                -> "2024-01-15 00:00:00"
        "not-a-date"                -> "not-a-date"
    """
    if value is None:
        return ""
    text = str(value)
    if not text:
        return ""
    candidate = text.strip()
    for pattern in _TIME_PATTERNS:
        match = pattern.fullmatch(candidate)
        if match is None:
            continue
        parts = match.groupdict()
        return (
            f"{parts['year']}-{parts['month']:0>2}-{parts['day']:0>2} "
            f"{parts.get('hour') or '0':0>2}:{parts.get('minute') or '0':0>2}:"
            f"{parts.get('second') or '0':0>2}"
        )
    return text


def parse_publish_time(value: str) -> datetime.datetime | None:
    """Parse a canonical publish time, returning ``None`` if it is not one."""
    try:
        return datetime.datetime.strptime(value, CANONICAL_TIME_FORMAT)
    except (TypeError, ValueError):
        return None


def normalize_text(value) -> str:
    """Coerce a text cell to ``str``.

    Missing and falsy cells (``None``, NaN, ``0``, ``False``) become ``""``,
    so a numeric 0 title counts as empty.  The string ``"0"`` is kept.
    """
    if _is_blank(value) or not value:
        return ""
    return str(value)


# ---------------------------------------------------------------------------
# Column cleaning
# ---------------------------------------------------------------------------

def clean_columns(df):
    """Strip whitespace from column names, coercing them to ``str``."""
    df.columns = [str(c).strip() for c in df.columns]
    return df


# ---------------------------------------------------------------------------
# Cell cleaning
# ---------------------------------------------------------------------------

def _is_blank(value) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _cell_value(value):
    """Convert pandas/numpy cell values to plain, JSON-safe Python."""
    if isinstance(value, (pd.Timestamp, datetime.datetime)):
        return value.strftime(CANONICAL_TIME_FORMAT)
    if isinstance(value, datetime.date):
        return value.strftime(CANONICAL_TIME_FORMAT)
    if isinstance(value, datetime.time):
        return value.strftime("%H:%M:%S")
    if isinstance(value, datetime.timedelta):  # duration cells, e.g. 视频时长
        hours, rest = divmod(int(value.total_seconds()), 3600)
        return f"{hours:02d}:{rest // 60:02d}:{rest % 60:02d}"
    if hasattr(value, "item"):  # numpy scalar -> native Python
        return value.item()
    return value


def _frame_to_rows(df: pd.DataFrame, drop_blank: bool) -> list[dict[str, Any]]:
    rows = []
    for record in df.to_dict("records"):
        if drop_blank:
            record = {k: v for k, v in record.items() if not _is_blank(v)}
        rows.append({k: _cell_value(v) for k, v in record.items()})
    return rows


# ---------------------------------------------------------------------------
# Encoding detection and file readers
# ---------------------------------------------------------------------------

@dataclass
class RawTable:
    """Rows decoded from one uploaded file."""
    file_name: str
    headers: list[str] = field(default_factory=list)
    rows: list[dict[str, Any]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.rows


def detect_encoding(path):
    """Detect the text encoding and delimiter of a CSV export.

    Returns (encoding, delimiter) tuple.  UTF-16 exports are
    tab-delimited; everything else is read as comma-delimited UTF-8
    (a UTF-8 BOM is dropped).
    """
    with open(path, "rb") as f:
        raw = f.read(4)
    if raw[:2] in (b"\xff\xfe", b"\xfe\xff"):
        return "utf-16", "\t"
    return "utf-8-sig", ","


def read_csv_rows(path) -> RawTable:
    """Read a CSV export, keeping every cell as a string."""
    path = Path(path)
    encoding, sep = detect_encoding(path)
    df = pd.read_csv(
        path,
        encoding=encoding,
        sep=sep,
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
    )
    df = clean_columns(df)
    return RawTable(
        file_name=path.name,
        headers=list(df.columns),
        rows=_frame_to_rows(df, drop_blank=False),
    )


def read_excel_rows(path) -> RawTable:
    """Read the first sheet of an Excel workbook.

    Empty cells are left out of each row dict, so a blank cell behaves
    like a missing column for that row.
    """
    path = Path(path)
    engine = "openpyxl" if path.suffix.lower() == ".xlsx" else None
    df = pd.read_excel(path, sheet_name=0, engine=engine)
    df = clean_columns(df)
    return RawTable(
        file_name=path.name,
        headers=list(df.columns),
        rows=_frame_to_rows(df, drop_blank=True),
    )


# ---------------------------------------------------------------------------
# Reader registry
# ---------------------------------------------------------------------------

READERS = {
    ".xlsx": read_excel_rows,
    ".xls": read_excel_rows,
    ".csv": read_csv_rows,
}


def read_rows(path) -> RawTable:
    """Read an uploaded file by extension.

    Raises:
        UnsupportedFileError: If the extension is not .xlsx, .xls or .csv.
        UnreadableFileError: If the reader library cannot decode the file.
        OSError: If the file cannot be opened.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in READERS:
        raise UnsupportedFileError(
            f"Unsupported file format '{suffix or path.name}'. "
            f"Valid formats: {', '.join(sorted(READERS))}"
        )
    try:
        table = READERS[suffix](path)
    except OSError:
        raise
    except Exception as exc:
        # xlrd, openpyxl and zipfile raise their own exception types
        raise UnreadableFileError(f"Cannot read {path.name}: {exc}") from exc
    logger.debug("Read %d row(s) from %s", len(table.rows), path.name)
    return table
