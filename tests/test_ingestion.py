"""Tests for the data ingestion module (value normalizers and file readers)."""

import datetime
import json
import math
import zipfile

import openpyxl
import pandas as pd
import pytest

from social_metrics.errors import UnreadableFileError, UnsupportedFileError
from social_metrics.processor.ingestion import (
    READERS,
    _cell_value,
    clean_columns,
    detect_encoding,
    normalize_completion_rate_percent,
    normalize_number,
    normalize_percentage,
    normalize_text,
    normalize_time_format,
    parse_publish_time,
    read_csv_rows,
    read_excel_rows,
    read_rows,
)
from social_metrics.schema.models import Platform


OLE_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


# ---------------------------------------------------------------------------
# normalize_number
# ---------------------------------------------------------------------------

class TestNormalizeNumber:
    def test_plain_int_unchanged(self):
        assert normalize_number(1234) == 1234

    def test_plain_float_unchanged(self):
        assert normalize_number(3.25) == 3.25

    def test_zero(self):
        assert normalize_number(0) == 0

    def test_thousands_separator(self):
        assert normalize_number("12,345") == 12345.0

    def test_unit_suffix_stripped(self):
        assert normalize_number("3.5s") == 3.5

    def test_whitespace(self):
        assert normalize_number("  42 ") == 42.0

    def test_negative_number_clamped(self):
        assert normalize_number(-5) == 0

    @pytest.mark.parametrize("text", ["-20", "-0.5", "约-300次", "-1,000"])
    def test_negative_string_clamped(self, text):
        assert normalize_number(text) == 0

    @pytest.mark.parametrize("text", ["N/A", "", "--", "abc", "."])
    def test_unparseable_string_is_zero(self, text):
        assert normalize_number(text) == 0

    def test_leading_number_parsed(self):
        # Everything after the first complete number is ignored
        assert normalize_number("1.2.3") == 1.2
        assert normalize_number("12-5") == 12.0

    def test_none_is_zero(self):
        assert normalize_number(None) == 0

    def test_nan_is_zero(self):
        assert normalize_number(float("nan")) == 0

    def test_bool_is_zero(self):
        assert normalize_number(True) == 0

    def test_unsupported_type_is_zero(self):
        assert normalize_number(["1"]) == 0

    def test_never_negative(self):
        for value in ["-1", "-99999", -3.2, "x-7", "- 8"]:
            assert normalize_number(value) >= 0


# ---------------------------------------------------------------------------
# normalize_percentage / completion-rate scale
# ---------------------------------------------------------------------------

class TestNormalizePercentage:
    def test_percent_string(self):
        assert normalize_percentage("12.5%") == 12.5

    def test_percent_not_rescaled(self):
        assert normalize_percentage("45%") == 45.0

    def test_fraction_not_rescaled(self):
        assert normalize_percentage(0.125) == 0.125

    def test_numeric_string_without_percent(self):
        assert normalize_percentage("0.3") == 0.3

    def test_negative_percent_clamped(self):
        assert normalize_percentage("-3%") == 0

    def test_garbage_percent_is_zero(self):
        assert normalize_percentage("abc%") == 0

    def test_none_is_zero(self):
        assert normalize_percentage(None) == 0


class TestCompletionRateScale:
    def test_douyin_fraction_scaled(self):
        assert normalize_completion_rate_percent(0.12, Platform.DOUYIN) == pytest.approx(12.0)

    def test_channels_percent_passthrough(self):
        assert normalize_completion_rate_percent(12.0, Platform.CHANNELS) == 12.0

    def test_channels_percent_string(self):
        assert normalize_completion_rate_percent("35%", Platform.CHANNELS) == 35.0

    def test_xiaohongshu_default_zero(self):
        assert normalize_completion_rate_percent(0, Platform.XIAOHONGSHU) == 0

    def test_unknown_platform_raises(self):
        with pytest.raises(ValueError, match="Unknown platform"):
            normalize_completion_rate_percent(0.5, "抖音")


# ---------------------------------------------------------------------------
# normalize_time_format / parse_publish_time
# ---------------------------------------------------------------------------

class TestNormalizeTimeFormat:
    def test_localized_pattern(self):
        assert normalize_time_format("2024年01月15日14时30分25秒") == "2024-01-15 14:30:25"

    def test_localized_single_digits_padded(self):
        assert normalize_time_format("2024年1月5日9时3分7秒") == "2024-01-05 09:03:07"

    def test_dash_datetime(self):
        assert normalize_time_format("2024-01-15 14:30:25") == "2024-01-15 14:30:25"

    def test_slash_datetime(self):
        assert normalize_time_format("2024/1/5 9:03:07") == "2024-01-05 09:03:07"

    def test_date_only_becomes_midnight(self):
        assert normalize_time_format("2024-01-15") == "2024-01-15 00:00:00"

    def test_us_date(self):
        assert normalize_time_format("01/15/2024") == "2024-01-15 00:00:00"

    def test_unmatched_returned_unchanged(self):
        assert normalize_time_format("not-a-date") == "not-a-date"

    def test_partial_match_not_accepted(self):
        assert normalize_time_format("2024-01-15T14:30:25Z") == "2024-01-15T14:30:25Z"

    def test_surrounding_whitespace(self):
        assert normalize_time_format("  2024-01-15 14:30:25 ") == "2024-01-15 14:30:25"

    def test_none_and_empty(self):
        assert normalize_time_format(None) == ""
        assert normalize_time_format("") == ""

    def test_non_string_coerced(self):
        assert normalize_time_format(20240115) == "20240115"

    def test_canonical_is_idempotent(self):
        canonical = "2023-12-31 23:59:59"
        assert normalize_time_format(canonical) == canonical
        assert normalize_time_format(normalize_time_format(canonical)) == canonical


class TestParsePublishTime:
    def test_canonical(self):
        assert parse_publish_time("2024-01-15 14:30:25") == datetime.datetime(
            2024, 1, 15, 14, 30, 25
        )

    def test_non_canonical_is_none(self):
        assert parse_publish_time("not-a-date") is None

    def test_empty_is_none(self):
        assert parse_publish_time("") is None

    def test_impossible_date_is_none(self):
        assert parse_publish_time("2024-02-30 00:00:00") is None


# ---------------------------------------------------------------------------
# normalize_text
# ---------------------------------------------------------------------------

class TestNormalizeText:
    def test_string_passthrough(self):
        assert normalize_text("标题") == "标题"

    def test_number_coerced(self):
        assert normalize_text(42) == "42"

    def test_none_is_empty(self):
        assert normalize_text(None) == ""

    def test_nan_is_empty(self):
        assert normalize_text(math.nan) == ""

    def test_falsy_number_is_empty(self):
        assert normalize_text(0) == ""
        assert normalize_text(0.0) == ""
        assert normalize_text(False) == ""

    def test_zero_string_kept(self):
        assert normalize_text("0") == "0"

    def test_pandas_na_is_empty(self):
        assert normalize_text(pd.NA) == ""


# ---------------------------------------------------------------------------
# Column cleaning and encoding detection
# ---------------------------------------------------------------------------

class TestCleanColumns:
    def test_strips_whitespace(self):
        df = pd.DataFrame({" 作品名称 ": [1], "播放量\n": [2]})
        assert list(clean_columns(df).columns) == ["作品名称", "播放量"]

    def test_non_string_headers(self):
        df = pd.DataFrame({1: [1], 2.5: [2]})
        assert list(clean_columns(df).columns) == ["1", "2.5"]


class TestDetectEncoding:
    def test_utf8(self, tmp_path):
        path = tmp_path / "a.csv"
        path.write_text("作品名称,播放量\n", encoding="utf-8")
        assert detect_encoding(path) == ("utf-8-sig", ",")

    def test_utf8_bom(self, tmp_path):
        path = tmp_path / "a.csv"
        path.write_text("作品名称,播放量\n", encoding="utf-8-sig")
        assert detect_encoding(path) == ("utf-8-sig", ",")

    def test_utf16(self, tmp_path):
        path = tmp_path / "a.csv"
        path.write_text("作品名称\t播放量\n", encoding="utf-16")
        assert detect_encoding(path) == ("utf-16", "\t")


# ---------------------------------------------------------------------------
# File readers
# ---------------------------------------------------------------------------

class TestReadCsvRows:
    def test_utf8_comma(self, tmp_path):
        path = tmp_path / "douyin.csv"
        path.write_text("作品名称,播放量\n视频一,1200\n视频二,\n", encoding="utf-8")
        table = read_csv_rows(path)

        assert table.file_name == "douyin.csv"
        assert table.headers == ["作品名称", "播放量"]
        assert table.rows == [
            {"作品名称": "视频一", "播放量": "1200"},
            {"作品名称": "视频二", "播放量": ""},
        ]

    def test_utf16_tab(self, tmp_path):
        path = tmp_path / "channels.csv"
        path.write_text("视频描述\t推荐\n描述\t300\n", encoding="utf-16")
        table = read_csv_rows(path)

        assert table.headers == ["视频描述", "推荐"]
        assert table.rows == [{"视频描述": "描述", "推荐": "300"}]

    def test_na_strings_kept(self, tmp_path):
        path = tmp_path / "x.csv"
        path.write_text("笔记标题,曝光\nNA,N/A\n", encoding="utf-8")
        assert read_csv_rows(path).rows == [{"笔记标题": "NA", "曝光": "N/A"}]

    def test_header_only_is_empty(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("作品名称,播放量\n", encoding="utf-8")
        table = read_csv_rows(path)
        assert table.is_empty
        assert table.headers == ["作品名称", "播放量"]


class TestReadExcelRows:
    def test_native_values(self, tmp_path):
        path = tmp_path / "douyin.xlsx"
        pd.DataFrame({
            "作品名称": ["视频一", "视频二"],
            "播放量": [1200, 800],
            "发布时间": [pd.Timestamp("2024-01-15 14:30:25"), pd.Timestamp("2024-01-16")],
        }).to_excel(path, index=False)

        table = read_excel_rows(path)
        assert table.headers == ["作品名称", "播放量", "发布时间"]
        assert table.rows[0] == {
            "作品名称": "视频一", "播放量": 1200, "发布时间": "2024-01-15 14:30:25",
        }
        assert table.rows[1]["发布时间"] == "2024-01-16 00:00:00"
        assert isinstance(table.rows[0]["播放量"], int)

    def test_blank_cells_dropped(self, tmp_path):
        path = tmp_path / "xhs.xlsx"
        pd.DataFrame({
            "笔记标题": ["笔记", None],
            "曝光": [None, 50],
        }).to_excel(path, index=False)

        rows = read_excel_rows(path).rows
        assert rows[0] == {"笔记标题": "笔记"}
        assert rows[1] == {"曝光": 50.0}

    def test_time_cells_become_strings(self, tmp_path):
        path = tmp_path / "douyin.xlsx"
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.append(["作品名称", "播放量", "视频时长"])
        ws.append(["视频一", 10, datetime.time(0, 1, 30)])
        wb.save(path)

        row = read_excel_rows(path).rows[0]
        assert row["视频时长"] == "00:01:30"
        json.dumps(row, ensure_ascii=False)

    def test_duration_values_become_strings(self):
        assert _cell_value(datetime.timedelta(minutes=2, seconds=5)) == "00:02:05"
        assert _cell_value(pd.Timedelta(hours=26, seconds=1)) == "26:00:01"
        assert _cell_value(datetime.time(9, 3, 7)) == "09:03:07"


class TestReadRows:
    def test_dispatch_by_extension(self, tmp_path):
        path = tmp_path / "DATA.CSV"
        path.write_text("作品名称,播放量\na,1\n", encoding="utf-8")
        assert read_rows(path).rows == [{"作品名称": "a", "播放量": "1"}]

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text("{}", encoding="utf-8")
        with pytest.raises(UnsupportedFileError, match="Unsupported file format"):
            read_rows(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_rows(tmp_path / "missing.csv")

    def test_corrupt_xls(self, tmp_path):
        path = tmp_path / "legacy.xls"
        path.write_bytes(OLE_MAGIC + b"\x00" * 512)
        with pytest.raises(UnreadableFileError, match="Cannot read legacy.xls"):
            read_rows(path)

    def test_zip_without_workbook(self, tmp_path):
        path = tmp_path / "other.xlsx"
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr("hello.txt", "hello")
        with pytest.raises(UnreadableFileError, match="Cannot read other.xlsx"):
            read_rows(path)

    def test_registered_extensions(self):
        assert set(READERS) == {".xlsx", ".xls", ".csv"}
