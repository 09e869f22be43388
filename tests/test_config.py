"""Tests for YAML pipeline configuration and display formatting."""

import math

import pytest
import yaml

from social_metrics.analytics.aggregator import AnalyticsSettings
from social_metrics.config import PipelineConfig, load_config, save_config
from social_metrics.schema.field_mapping import FIELD_MAPPINGS
from social_metrics.schema.formatting import (
    format_file_size,
    format_number,
    format_percentage,
    format_variance_percentage,
)
from social_metrics.schema.models import Platform


# ---------------------------------------------------------------------------
# PipelineConfig
# ---------------------------------------------------------------------------

class TestPipelineConfig:
    def test_defaults(self):
        config = PipelineConfig()
        assert config.field_mappings == FIELD_MAPPINGS
        assert config.analytics == AnalyticsSettings()

    def test_defaults_are_copies(self):
        config = PipelineConfig()
        config.field_mappings[Platform.DOUYIN]["新列"] = "标题描述"
        assert "新列" not in FIELD_MAPPINGS[Platform.DOUYIN]

    def test_from_empty_dict(self):
        assert PipelineConfig.from_dict({}) == PipelineConfig()
        assert PipelineConfig.from_dict(None) == PipelineConfig()

    def test_override_replaces_platform_mapping(self):
        config = PipelineConfig.from_dict({
            "field_mappings": {"抖音": {"标题": "标题描述", "播放": "播放量"}},
        })
        assert config.field_mappings[Platform.DOUYIN] == {"标题": "标题描述", "播放": "播放量"}
        assert config.field_mappings[Platform.CHANNELS] == FIELD_MAPPINGS[Platform.CHANNELS]

    def test_analytics_overrides(self):
        config = PipelineConfig.from_dict({
            "analytics": {"viral_threshold": 1000, "content_type_platform": "小红书"},
        })
        assert config.analytics.viral_threshold == 1000
        assert config.analytics.top_content_limit == 10
        assert config.analytics.content_type_platform is Platform.XIAOHONGSHU

    def test_unknown_platform(self):
        with pytest.raises(ValueError):
            PipelineConfig.from_dict({"field_mappings": {"微博": {"标题": "标题描述"}}})

    def test_unknown_target_field(self):
        with pytest.raises(ValueError, match="Unknown unified field"):
            PipelineConfig.from_dict({"field_mappings": {"抖音": {"标题": "阅读数"}}})

    def test_dict_round_trip(self):
        config = PipelineConfig.from_dict({
            "field_mappings": {"视频号": {"描述": "标题描述"}},
            "analytics": {"top_content_limit": 5},
        })
        assert PipelineConfig.from_dict(config.to_dict()) == config


# ---------------------------------------------------------------------------
# YAML load / save
# ---------------------------------------------------------------------------

class TestLoadSave:
    def test_load_none_gives_defaults(self):
        assert load_config(None) == PipelineConfig()

    def test_save_and_load(self, tmp_path):
        config = PipelineConfig.from_dict({"analytics": {"viral_threshold": 777}})
        path = tmp_path / "nested" / "config.yaml"
        save_config(config, path)

        assert path.exists()
        assert load_config(path) == config

    def test_saved_yaml_is_readable(self, tmp_path):
        path = tmp_path / "config.yaml"
        save_config(PipelineConfig(), path)
        text = path.read_text(encoding="utf-8")
        # Labels are written as-is, not escaped
        assert "作品名称: 标题描述" in text
        assert yaml.safe_load(text)["analytics"]["viral_threshold"] == 50000

    def test_load_partial_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("analytics:\n  top_content_limit: 3\n", encoding="utf-8")
        config = load_config(path)
        assert config.analytics.top_content_limit == 3
        assert config.field_mappings == FIELD_MAPPINGS

    def test_load_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == PipelineConfig()

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_load_invalid_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("field_mappings:\n  抖音:\n    标题: 不存在\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_config(path)


# ---------------------------------------------------------------------------
# Display formatting
# ---------------------------------------------------------------------------

class TestFormatNumber:
    def test_small(self):
        assert format_number(1234) == "1,234"

    def test_small_float(self):
        assert format_number(12.5) == "12.5"

    def test_wan(self):
        assert format_number(12345) == "1.2万"

    def test_yi(self):
        assert format_number(250_000_000) == "2.5亿"

    def test_zero(self):
        assert format_number(0) == "0"

    def test_missing(self):
        assert format_number(None) == "N/A"
        assert format_number(math.nan) == "N/A"


class TestFormatPercentage:
    def test_two_decimals(self):
        assert format_percentage(12.3456) == "12.35%"
        assert format_percentage(3) == "3.00%"

    def test_missing(self):
        assert format_percentage(None) == "N/A"

    def test_variance(self):
        assert format_variance_percentage(4.26) == "+4.3%"
        assert format_variance_percentage(-3.0) == "-3.0%"
        assert format_variance_percentage(0) == "0.0%"


class TestFormatFileSize:
    @pytest.mark.parametrize("size, expected", [
        (0, "0 B"),
        (512, "512 B"),
        (1024, "1 KB"),
        (1536, "1.5 KB"),
        (1048576, "1 MB"),
        (5 * 1024 ** 3, "5 GB"),
        (3 * 1024 ** 4, "3072 GB"),
    ])
    def test_units(self, size, expected):
        assert format_file_size(size) == expected
