"""CLI entry point for social-metrics.

Orchestrates the full pipeline: config loading, file ingestion, platform
detection, merge, summary/analytics, workbook export and snapshots.

Usage::

    # Merge platform exports into one workbook
    social-metrics process douyin.xlsx channels.csv xhs.xlsx \\
        --output output/merged.xlsx \\
        --analytics-json output/analytics.json

    # Same, with custom field mappings, saved as a snapshot
    social-metrics process douyin.xlsx \\
        --config mappings.yaml \\
        --snapshot "June review" --store output/snapshots.json

    # Show the active field mappings
    social-metrics inspect --config mappings.yaml --keys

    # Manage snapshots
    social-metrics snapshot list --store output/snapshots.json
    social-metrics snapshot export --store output/snapshots.json --id <ID>

    # Re-check a stored snapshot's analytics against its records
    social-metrics validate --store output/snapshots.json --snapshot <ID>
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import yaml

from social_metrics.config import load_config
from social_metrics.errors import SocialMetricsError
from social_metrics.export.workbook import default_export_name, export_workbook
from social_metrics.pipeline import process_files
from social_metrics.qa.validator import AnalyticsValidator
from social_metrics.schema.field_mapping import MISSING_COLUMN, mapping_reference_rows
from social_metrics.schema.formatting import (
    format_file_size,
    format_number,
    format_percentage,
    format_variance_percentage,
)
from social_metrics.schema.models import Platform
from social_metrics.snapshot.repository import JsonFileBackend, SnapshotRepository


# ---------------------------------------------------------------------------
# Config / store loading
# ---------------------------------------------------------------------------

def _load_config(args):
    """Load a PipelineConfig from --config, or the defaults."""
    path = getattr(args, "config", None)
    if path and not Path(path).exists():
        _error(f"Config file not found: {path}")
    try:
        return load_config(path)
    except (ValueError, yaml.YAMLError) as exc:
        _error(f"Invalid config {path}: {exc}")


def _repository(args):
    return SnapshotRepository(JsonFileBackend(args.store))


def _get_snapshot(repo, snapshot_id):
    try:
        snapshot = repo.get(snapshot_id)
    except SocialMetricsError as exc:
        _error(str(exc))
    if snapshot is None:
        _error(f"Snapshot not found: {snapshot_id}")
    return snapshot


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_process(args):
    """Merge platform export files and write the unified workbook."""
    config = _load_config(args)

    paths = [Path(p) for p in args.files]
    for p in paths:
        if not p.exists():
            _error(f"Data file not found: {p}")

    _info(f"Processing {len(paths)} file(s)...")
    try:
        result = process_files(paths, config)
    except SocialMetricsError as exc:
        _error(str(exc))

    for outcome in result.files:
        if outcome.ok:
            _info(f"{outcome.file_name}: {outcome.platform.value}, "
                  f"{outcome.result.valid_rows}/{outcome.result.total_rows} row(s) valid")
    for w in result.warnings:
        _warn(w)

    summary = result.summary
    _info(f"Merged {summary['总数据量']} record(s), "
          f"follower delta {format_number(summary['总涨粉数'])}")
    if result.analytics is not None:
        perf = result.analytics.performance
        _info(f"Views {format_number(perf.total_views)}, engagement rate "
              f"{format_percentage(perf.avg_engagement_rate)}, best platform "
              f"{perf.best_performing_platform}, growth "
              f"{format_variance_percentage(perf.content_growth_rate)}")

        if not args.skip_qa:
            qa_result = AnalyticsValidator(config.analytics).validate(
                result.records, result.analytics
            )
            if qa_result.passed:
                _info(qa_result.summary())
            else:
                _warn(qa_result.summary())
                if args.verbose:
                    print(qa_result.report(), file=sys.stderr)

    output = Path(args.output) if args.output else Path(default_export_name())
    written = export_workbook(result.records, output, config.field_mappings)
    _info(f"Written: {written} ({format_file_size(written.stat().st_size)})")

    if args.analytics_json:
        if result.analytics is None:
            _warn("Analytics unavailable, --analytics-json not written")
        else:
            target = Path(args.analytics_json)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(
                json.dumps(result.analytics.to_dict(), ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
            _info(f"Written: {target}")

    if args.snapshot:
        if not args.store:
            _error("--snapshot requires --store")
        repo = _repository(args)
        snapshot = repo.create(result.records, result.analytics, summary,
                               name=args.snapshot, description=args.description)
        try:
            repo.save(snapshot)
        except (SocialMetricsError, OSError) as exc:
            _error(f"Snapshot not saved: {exc}")
        _info(f"Snapshot saved: {snapshot.id} "
              f"({format_file_size(snapshot.file_size)})")


def cmd_inspect(args):
    """Show the active field mappings and platform signatures."""
    config = _load_config(args)

    print(f"Platforms:   {', '.join(p.value for p in Platform)}")
    print(f"Viral views: {format_number(config.analytics.viral_threshold)}")
    print(f"Top content: {config.analytics.top_content_limit}")
    print(f"Genres from: {config.analytics.content_type_platform.value}")
    print()

    for platform in Platform:
        mapping = config.field_mappings[platform]
        print(f"  {platform.value}: {len(mapping)} mapped column(s)")
        if args.keys:
            for native, unified in mapping.items():
                print(f"       {native} -> {unified}")

    if args.verbose:
        print()
        for row in mapping_reference_rows(config.field_mappings):
            cells = [row[p.value] for p in Platform]
            covered = sum(1 for c in cells if c != MISSING_COLUMN)
            print(f"  {row['统一字段']}: {' | '.join(cells)} ({covered}/{len(cells)})")


def cmd_snapshot(args):
    """List, show, delete, export or import snapshots."""
    repo = _repository(args)
    try:
        if args.action == "list":
            items = repo.list()
            if not items:
                _info("No snapshots stored")
            for meta in items:
                print(f"{meta.id}  {meta.timestamp}  {meta.name}  "
                      f"{meta.total_records} record(s)  "
                      f"{', '.join(meta.platforms)}  {format_file_size(meta.file_size)}")

        elif args.action == "show":
            snapshot = _get_snapshot(repo, _require_id(args))
            meta = snapshot.metadata
            print(f"ID:          {meta.id}")
            print(f"Name:        {meta.name}")
            print(f"Created:     {meta.timestamp}")
            print(f"Description: {meta.description or ''}")
            print(f"Records:     {meta.total_records}")
            print(f"Platforms:   {', '.join(meta.platforms)}")
            print(f"Date range:  {meta.date_range.get('start', '')} - "
                  f"{meta.date_range.get('end', '')}")
            print(f"Size:        {format_file_size(meta.file_size)}")

        elif args.action == "delete":
            snapshot_id = _require_id(args)
            if not repo.delete(snapshot_id):
                _error(f"Snapshot not found: {snapshot_id}")
            _info(f"Deleted: {snapshot_id}")

        elif args.action == "export":
            snapshot = _get_snapshot(repo, _require_id(args))
            target = Path(args.file) if args.file else Path(repo.export_filename(snapshot))
            target.write_text(repo.export_json(snapshot), encoding="utf-8")
            _info(f"Written: {target}")

        elif args.action == "import":
            if not args.file:
                _error("snapshot import requires --file")
            snapshot = repo.import_json(Path(args.file).read_text(encoding="utf-8"))
            repo.save(snapshot)
            _info(f"Imported: {snapshot.id} ({snapshot.name})")
    except (SocialMetricsError, OSError) as exc:
        _error(str(exc))


def cmd_validate(args):
    """Check a stored snapshot's analytics against its records."""
    repo = _repository(args)
    snapshot = _get_snapshot(repo, args.snapshot)
    analytics = snapshot.analytics()
    if analytics is None:
        _error(f"Snapshot {snapshot.id} has no analytics to validate")

    config = _load_config(args)
    _info(f"Validating {snapshot.id} ({snapshot.name})")
    qa_result = AnalyticsValidator(config.analytics).validate(snapshot.records(), analytics)

    print(qa_result.report())
    sys.exit(0 if qa_result.passed else 1)


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------

def _info(msg):
    print(f"  {msg}", file=sys.stderr)


def _warn(msg):
    print(f"  WARNING: {msg}", file=sys.stderr)


def _error(msg):
    print(f"  ERROR: {msg}", file=sys.stderr)
    sys.exit(1)


def _require_id(args):
    if not args.id:
        _error(f"snapshot {args.action} requires --id")
    return args.id


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def build_parser():
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="social-metrics",
        description="Merge and analyze short-video platform data exports.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # ---- process ----
    proc = subparsers.add_parser(
        "process",
        help="Merge platform export files into a unified workbook.",
    )
    proc.add_argument(
        "files",
        nargs="+",
        help="Platform export files (.xlsx, .xls, .csv).",
    )
    _add_config_args(proc)
    proc.add_argument(
        "-o", "--output",
        help="Output workbook path (default: 自媒体数据整合_<date>.xlsx).",
    )
    proc.add_argument(
        "--analytics-json",
        dest="analytics_json",
        help="Also write the analytics views as JSON to this path.",
    )
    proc.add_argument(
        "--snapshot",
        help="Save the result as a snapshot with this name (needs --store).",
    )
    proc.add_argument(
        "--description",
        help="Snapshot description.",
    )
    proc.add_argument(
        "--store",
        help="Snapshot store JSON file.",
    )
    proc.add_argument(
        "--skip-qa",
        action="store_true",
        default=False,
        help="Skip the analytics consistency check.",
    )
    _add_verbose_arg(proc)
    proc.set_defaults(func=cmd_process)

    # ---- inspect ----
    insp = subparsers.add_parser(
        "inspect",
        help="Show the active field mappings.",
    )
    _add_config_args(insp)
    insp.add_argument(
        "--keys",
        action="store_true",
        default=False,
        help="List every native column mapping.",
    )
    _add_verbose_arg(insp)
    insp.set_defaults(func=cmd_inspect)

    # ---- snapshot ----
    snap = subparsers.add_parser(
        "snapshot",
        help="Manage stored snapshots.",
    )
    snap.add_argument(
        "action",
        choices=["list", "show", "delete", "export", "import"],
    )
    snap.add_argument(
        "--store",
        required=True,
        help="Snapshot store JSON file.",
    )
    snap.add_argument(
        "--id",
        help="Snapshot ID (show / delete / export).",
    )
    snap.add_argument(
        "--file",
        help="Snapshot JSON file (export target / import source).",
    )
    _add_verbose_arg(snap)
    snap.set_defaults(func=cmd_snapshot)

    # ---- validate ----
    val = subparsers.add_parser(
        "validate",
        help="Check a stored snapshot's analytics against its records.",
    )
    val.add_argument(
        "--store",
        required=True,
        help="Snapshot store JSON file.",
    )
    val.add_argument(
        "--snapshot",
        required=True,
        help="Snapshot ID to validate.",
    )
    _add_config_args(val)
    _add_verbose_arg(val)
    val.set_defaults(func=cmd_validate)

    return parser


def _add_config_args(parser):
    """Add --config to a subparser."""
    parser.add_argument(
        "--config",
        help="YAML file with field mapping / analytics overrides.",
    )


def _add_verbose_arg(parser):
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=False,
        help="Show detailed output and debug logging.",
    )


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv=None):
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    args.func(args)


if __name__ == "__main__":
    main()
