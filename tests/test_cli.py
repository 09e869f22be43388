"""Tests for the CLI entry point (social_metrics.cli).

Covers argument parsing, the process / inspect / snapshot / validate
commands and error exits.  Uses small real files in tmp_path; the
pipeline is patched out only where a failure has to be forced.
"""

import json
from unittest.mock import patch

import pandas as pd
import pytest

from social_metrics.cli import build_parser, cmd_inspect, main
from social_metrics.errors import PipelineError
from social_metrics.snapshot.repository import JsonFileBackend, SnapshotRepository


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def parser():
    return build_parser()


@pytest.fixture
def douyin_csv(tmp_path):
    path = tmp_path / "douyin.csv"
    path.write_text(
        "作品名称,播放量,点赞量,发布时间,体裁\n"
        "视频一,1200,30,2024-05-01 10:00:00,视频\n"
        "视频二,80000,900,2024-05-03 18:00:00,视频\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def xhs_xlsx(tmp_path):
    path = tmp_path / "xhs.xlsx"
    pd.DataFrame([
        {"笔记标题": "笔记", "首次发布时间": "2024-05-02", "曝光": 900, "观看量": 300},
    ]).to_excel(path, index=False)
    return path


@pytest.fixture
def store(tmp_path):
    return tmp_path / "snapshots.json"


def _saved_snapshot_id(store):
    (meta,) = SnapshotRepository(JsonFileBackend(store)).list()
    return meta.id


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

class TestParser:
    def test_process_args(self, parser):
        args = parser.parse_args(["process", "a.xlsx", "b.csv", "-o", "out.xlsx"])
        assert args.files == ["a.xlsx", "b.csv"]
        assert args.output == "out.xlsx"
        assert args.snapshot is None
        assert args.skip_qa is False

    def test_process_requires_files(self, parser):
        with pytest.raises(SystemExit):
            parser.parse_args(["process"])

    def test_command_required(self, parser):
        with pytest.raises(SystemExit):
            parser.parse_args([])

    def test_snapshot_action_choices(self, parser):
        with pytest.raises(SystemExit):
            parser.parse_args(["snapshot", "rename", "--store", "s.json"])

    def test_snapshot_requires_store(self, parser):
        with pytest.raises(SystemExit):
            parser.parse_args(["snapshot", "list"])

    def test_validate_args(self, parser):
        args = parser.parse_args(["validate", "--store", "s.json", "--snapshot", "id1"])
        assert args.store == "s.json"
        assert args.snapshot == "id1"
        assert args.config is None


# ---------------------------------------------------------------------------
# process
# ---------------------------------------------------------------------------

class TestProcess:
    def test_writes_workbook_and_analytics(self, tmp_path, douyin_csv, xhs_xlsx, capsys):
        output = tmp_path / "out" / "merged.xlsx"
        analytics_json = tmp_path / "out" / "analytics.json"

        main(["process", str(douyin_csv), str(xhs_xlsx), "-o", str(output),
              "--analytics-json", str(analytics_json)])

        assert output.exists()
        assert len(pd.read_excel(output, sheet_name="统一数据")) == 3
        data = json.loads(analytics_json.read_text(encoding="utf-8"))
        assert data["performanceMetrics"]["viralContentCount"] == 1
        assert len(data["timeSeriesData"]) == 3

        err = capsys.readouterr().err
        assert "douyin.csv: 抖音, 2/2 row(s) valid" in err
        assert "growth +3245.8%" in err
        assert "QA PASS" in err

    def test_saves_snapshot(self, tmp_path, douyin_csv, store):
        main(["process", str(douyin_csv), "-o", str(tmp_path / "m.xlsx"),
              "--snapshot", "五月", "--description", "weekly", "--store", str(store)])

        (meta,) = SnapshotRepository(JsonFileBackend(store)).list()
        assert meta.name == "五月"
        assert meta.description == "weekly"
        assert meta.total_records == 2

    def test_corrupt_store(self, tmp_path, douyin_csv, store, capsys):
        store.write_text("garbage", encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            main(["process", str(douyin_csv), "-o", str(tmp_path / "m.xlsx"),
                  "--snapshot", "x", "--store", str(store)])
        assert exc_info.value.code == 1
        assert "Snapshot not saved" in capsys.readouterr().err
        assert store.read_text(encoding="utf-8") == "garbage"

    def test_snapshot_without_store(self, tmp_path, douyin_csv):
        with pytest.raises(SystemExit) as exc_info:
            main(["process", str(douyin_csv), "-o", str(tmp_path / "m.xlsx"),
                  "--snapshot", "x"])
        assert exc_info.value.code == 1

    def test_missing_file(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["process", str(tmp_path / "missing.xlsx")])
        assert exc_info.value.code == 1
        assert "Data file not found" in capsys.readouterr().err

    def test_pipeline_error(self, douyin_csv, capsys):
        with patch("social_metrics.cli.process_files",
                   side_effect=PipelineError("No valid data was processed")):
            with pytest.raises(SystemExit) as exc_info:
                main(["process", str(douyin_csv)])
        assert exc_info.value.code == 1
        assert "No valid data was processed" in capsys.readouterr().err

    def test_skipped_file_warns(self, tmp_path, douyin_csv, capsys):
        weibo = tmp_path / "weibo.csv"
        weibo.write_text("微博正文,阅读数\nx,1\n", encoding="utf-8")
        main(["process", str(weibo), str(douyin_csv), "-o", str(tmp_path / "m.xlsx")])
        assert "WARNING: weibo.csv: Could not identify" in capsys.readouterr().err

    def test_config_override(self, tmp_path, douyin_csv):
        config = tmp_path / "config.yaml"
        config.write_text("analytics:\n  viral_threshold: 1000\n", encoding="utf-8")
        analytics_json = tmp_path / "a.json"
        main(["process", str(douyin_csv), "-o", str(tmp_path / "m.xlsx"),
              "--config", str(config), "--analytics-json", str(analytics_json)])
        data = json.loads(analytics_json.read_text(encoding="utf-8"))
        assert data["performanceMetrics"]["viralContentCount"] == 2

    def test_invalid_config(self, tmp_path, douyin_csv, capsys):
        config = tmp_path / "config.yaml"
        config.write_text("field_mappings:\n  微博:\n    标题: 标题描述\n", encoding="utf-8")
        with pytest.raises(SystemExit):
            main(["process", str(douyin_csv), "--config", str(config)])
        assert "Invalid config" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# inspect
# ---------------------------------------------------------------------------

class TestInspect:
    def test_default_mappings(self, parser, capsys):
        cmd_inspect(parser.parse_args(["inspect"]))
        out = capsys.readouterr().out
        assert "Platforms:   抖音, 视频号, 小红书" in out
        assert "抖音: 11 mapped column(s)" in out
        assert "作品名称 -> 标题描述" not in out

    def test_keys(self, capsys):
        main(["inspect", "--keys"])
        assert "作品名称 -> 标题描述" in capsys.readouterr().out

    def test_verbose_reference(self, capsys):
        main(["inspect", "-v"])
        out = capsys.readouterr().out
        assert "标题/描述: 作品名称 | 视频描述 | 笔记标题 (3/3)" in out

    def test_missing_config(self, tmp_path):
        with pytest.raises(SystemExit):
            main(["inspect", "--config", str(tmp_path / "none.yaml")])


# ---------------------------------------------------------------------------
# snapshot / validate
# ---------------------------------------------------------------------------

class TestSnapshotCommands:
    @pytest.fixture
    def saved(self, tmp_path, douyin_csv, store):
        main(["process", str(douyin_csv), "-o", str(tmp_path / "m.xlsx"),
              "--snapshot", "五月", "--store", str(store)])
        return _saved_snapshot_id(store)

    def test_list(self, saved, store, capsys):
        main(["snapshot", "list", "--store", str(store)])
        out = capsys.readouterr().out
        assert saved in out
        assert "五月" in out

    def test_list_empty(self, store, capsys):
        main(["snapshot", "list", "--store", str(store)])
        assert "No snapshots stored" in capsys.readouterr().err

    def test_show(self, saved, store, capsys):
        main(["snapshot", "show", "--store", str(store), "--id", saved])
        out = capsys.readouterr().out
        assert "Records:     2" in out
        assert "2024-05-01 10:00:00 - 2024-05-03 18:00:00" in out

    def test_show_requires_id(self, store):
        with pytest.raises(SystemExit):
            main(["snapshot", "show", "--store", str(store)])

    def test_show_unknown(self, saved, store, capsys):
        with pytest.raises(SystemExit):
            main(["snapshot", "show", "--store", str(store), "--id", "nope"])
        assert "Snapshot not found" in capsys.readouterr().err

    def test_export_import(self, tmp_path, saved, store):
        exported = tmp_path / "export.json"
        main(["snapshot", "export", "--store", str(store), "--id", saved,
              "--file", str(exported)])
        assert json.loads(exported.read_text(encoding="utf-8"))["id"] == saved

        other = tmp_path / "other.json"
        main(["snapshot", "import", "--store", str(other), "--file", str(exported)])
        assert _saved_snapshot_id(other) == saved

    def test_import_invalid(self, tmp_path, store, capsys):
        bad = tmp_path / "bad.json"
        bad.write_text('{"id": 1}', encoding="utf-8")
        with pytest.raises(SystemExit):
            main(["snapshot", "import", "--store", str(store), "--file", str(bad)])
        assert "Invalid snapshot file format" in capsys.readouterr().err

    def test_delete(self, saved, store):
        main(["snapshot", "delete", "--store", str(store), "--id", saved])
        assert SnapshotRepository(JsonFileBackend(store)).list() == []
        with pytest.raises(SystemExit):
            main(["snapshot", "delete", "--store", str(store), "--id", saved])

    def test_validate_passes(self, saved, store, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["validate", "--store", str(store), "--snapshot", saved])
        assert exc_info.value.code == 0
        assert "QA PASS" in capsys.readouterr().out

    def test_validate_detects_tampering(self, saved, store, capsys):
        repo = SnapshotRepository(JsonFileBackend(store))
        snapshot = repo.get(saved)
        snapshot.data["analytics"]["performanceMetrics"]["totalViews"] += 5
        repo.save(snapshot)

        with pytest.raises(SystemExit) as exc_info:
            main(["validate", "--store", str(store), "--snapshot", saved])
        assert exc_info.value.code == 1
        assert "QA FAIL" in capsys.readouterr().out
