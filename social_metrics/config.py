"""Pipeline configuration - YAML load/save for field mappings and thresholds.

A config file is optional; without one the static field mapping table
and default analytics thresholds are used.  Example::

    field_mappings:
      抖音:
        作品名称: 标题描述
        播放量: 播放量
    analytics:
      viral_threshold: 50000
      top_content_limit: 10
      content_type_platform: 抖音

A platform listed under ``field_mappings`` replaces that platform's
whole mapping; unlisted platforms keep the built-in one.
"""

import copy
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from social_metrics.analytics.aggregator import AnalyticsSettings
from social_metrics.schema.field_mapping import FIELD_MAPPINGS, validate_mappings
from social_metrics.schema.models import Platform


def _default_mappings() -> dict[Platform, dict[str, str]]:
    return copy.deepcopy(FIELD_MAPPINGS)


@dataclass
class PipelineConfig:
    """Field mappings plus analytics settings for one pipeline run."""
    field_mappings: dict[Platform, dict[str, str]] = field(default_factory=_default_mappings)
    analytics: AnalyticsSettings = field(default_factory=AnalyticsSettings)

    def to_dict(self) -> dict:
        return {
            "field_mappings": {
                platform.value: dict(mapping)
                for platform, mapping in self.field_mappings.items()
            },
            "analytics": self.analytics.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: dict | None) -> "PipelineConfig":
        """Build a config, validating any field-mapping overrides.

        Raises:
            ValueError: On an unknown platform name or unified field.
        """
        d = d or {}
        mappings = _default_mappings()
        for name, mapping in (d.get("field_mappings") or {}).items():
            mappings[Platform(name)] = {str(k): str(v) for k, v in mapping.items()}
        validate_mappings(mappings)
        return cls(
            field_mappings=mappings,
            analytics=AnalyticsSettings.from_dict(d.get("analytics") or {}),
        )


def save_config(config: PipelineConfig, path: str | Path) -> None:
    """Serialize a PipelineConfig to a YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False,
                  allow_unicode=True, width=120)


def load_config(path: str | Path | None = None) -> PipelineConfig:
    """Deserialize a PipelineConfig from a YAML file (defaults if *path* is None)."""
    if path is None:
        return PipelineConfig()
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return PipelineConfig.from_dict(data)
