"""Command line interface: ``trailer upload|download|prune|migrate``.

Every command maps fatal conditions onto ``TrailerError`` subclasses;
``main`` reports them and exits with status 1.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from trailer.config import Config, reload_config
from trailer.errors import ConfigurationError, TrailerError
from trailer.reconcile.catalog import case_records, fetch_catalog
from trailer.reconcile.engine import reconcile
from trailer.reconcile.overrides import load_overrides
from trailer.suite_store import (
    SuiteSnapshot,
    load_snapshot,
    merge_updated_cases,
    prune_cases,
    save_snapshot,
)
from trailer.testrail.client import client_from_config
from trailer.transfer.csv_report import read_report
from trailer.transfer.junit import ResultUpdates, parse_junit_file
from trailer.transfer.pipeline import create_and_submit, submit_results, translate
from trailer.utils.logger import log_error, log_info, log_warning, set_log_level


def _add_verbose(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('-v', '--verbose', action='store_true', help='turn on debug logs')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="trailer", description="TestRail command line utility")
    sub = parser.add_subparsers(dest="command", required=True)

    upload = sub.add_parser("upload", aliases=["u"], help="Upload JUnit XML reports to TestRail")
    _add_verbose(upload)
    upload.add_argument('-d', '--dry', action='store_true', help='print readable results without updating TestRail run')
    upload.add_argument('-i', '--ignore-failures', dest='retries', type=int, help='ignore failures and retry this number of times')
    upload.add_argument('-r', '--run-id', type=int, default=0, help='TestRail run ID to target for the update')
    upload.add_argument('-c', '--comment', default="", help='prefix to use when commenting on TestRail updates')
    upload.add_argument('files', nargs='*', metavar='FILE', help='input *.xml files')
    upload.set_defaults(handler=cmd_upload)

    download = sub.add_parser("download", aliases=["d"], help="Download case specs from TestRail")
    _add_verbose(download)
    download.add_argument('-p', '--project-id', type=int, default=0, help='TestRail project ID to download cases from')
    download.add_argument('-s', '--suite-id', type=int, default=0, help='TestRail suite ID to download cases from')
    download.add_argument('-f', '--file', default="", help='File to write downloaded cases to')
    download.set_defaults(handler=cmd_download)

    prune = sub.add_parser("prune", aliases=["p"], help="Prune case specs from a cases file")
    _add_verbose(prune)
    prune.add_argument('-f', '--file', default="", help='Cases file to prune')
    prune.add_argument('case_ids', nargs='*', metavar='CASE_ID', help='case IDs to remove')
    prune.set_defaults(handler=cmd_prune)

    migrate = sub.add_parser("migrate", help="Migrate run results from the source account to the target account")
    _add_verbose(migrate)
    migrate.add_argument('--dry', action='store_true', help='translate reports without creating runs')
    migrate.add_argument('-i', '--ignore-failures', dest='retries', type=int, help='ignore failures and retry this number of times')
    migrate.add_argument('--overrides', help='YAML file of manual source → target case ID matches')
    migrate.add_argument('--source-project', type=int, help='Source project ID')
    migrate.add_argument('--source-suite', type=int, help='Source suite ID')
    migrate.add_argument('--target-project', type=int, help='Target project ID')
    migrate.add_argument('--target-suite', type=int, help='Target suite ID')
    migrate.add_argument('directory', help='directory of exported run reports (*.csv)')
    migrate.set_defaults(handler=cmd_migrate)

    return parser


def _config_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Command line flags as ``Config`` field values; unset flags are left out."""
    overrides: Dict[str, Any] = {}
    if getattr(args, "verbose", False):
        overrides['log_level'] = 'DEBUG'
    if getattr(args, "retries", None) is not None:
        overrides['upload_retries'] = args.retries
    for attr, field_name in (
        ("source_project", "source_project_id"),
        ("source_suite", "source_suite_id"),
        ("target_project", "target_project_id"),
        ("target_suite", "target_suite_id"),
    ):
        if getattr(args, attr, None) is not None:
            overrides[field_name] = getattr(args, attr)
    return overrides


def _require_valid(config: Config, require_target: bool = False) -> None:
    issues = config.validate_configuration(require_target=require_target)
    if issues:
        raise ConfigurationError("; ".join(issues))


def cmd_upload(args: argparse.Namespace, config: Config) -> int:
    if not args.run_id:
        raise ConfigurationError("Must set --run-id to a non-zero integer")

    updates = ResultUpdates()
    for name in args.files:
        updates.add_cases(args.comment, parse_junit_file(Path(name)))
    log_info("JUnit reports loaded", files=len(args.files), cases=len(updates.result_map))

    if args.dry:
        for line in updates.describe():
            print(line)
        return 0

    _require_valid(config)
    with client_from_config(config=config) as client:
        report = submit_results(client, args.run_id, updates.create_payload(),
                                retries=config.upload_retries, prune=True)
    for record in report.outcome.records:
        print(record)
    return 0


def cmd_download(args: argparse.Namespace, config: Config) -> int:
    if not args.project_id:
        raise ConfigurationError("Must set --project-id to a non-zero integer")
    if not args.suite_id:
        raise ConfigurationError("Must set --suite-id to a non-zero integer")
    _require_valid(config)

    with client_from_config(config=config) as client:
        cases = case_records(client.get_cases(args.project_id, args.suite_id))

    if args.file:
        snapshot = load_snapshot(Path(args.file), project_id=args.project_id, suite_id=args.suite_id)
    else:
        snapshot = SuiteSnapshot(project_id=args.project_id, suite_id=args.suite_id)

    if merge_updated_cases(snapshot, cases):
        if args.file:
            save_snapshot(snapshot, Path(args.file))
        else:
            print(snapshot.to_yaml())
    else:
        log_info("No updated cases since last download", last_updated=snapshot.last_updated)
    return 0


def cmd_prune(args: argparse.Namespace, config: Config) -> int:
    if not args.file:
        raise ConfigurationError("Must specify an input cases file")
    path = Path(args.file)
    if not path.exists():
        raise ConfigurationError(f"Cases file not found: {path}")

    case_ids: List[int] = []
    for raw in args.case_ids:
        try:
            case_ids.append(int(raw))
        except ValueError:
            raise ConfigurationError(f"Cannot convert string to int: {raw!r}") from None

    snapshot = load_snapshot(path)
    if prune_cases(snapshot, case_ids):
        save_snapshot(snapshot, path)
    else:
        log_info("None of the given cases are in the cases file", path=str(path))
    return 0


def cmd_migrate(args: argparse.Namespace, config: Config) -> int:
    directory = Path(args.directory)
    if not directory.is_dir():
        raise ConfigurationError(f"Incorrect usage: trailer migrate <directory> ({directory} is not a directory)")
    _require_valid(config, require_target=True)

    overrides = load_overrides(Path(args.overrides)) if args.overrides else {}
    status_codes = config.get_status_codes()

    with client_from_config(config=config) as source_client, \
            client_from_config(target=True, config=config) as target_client:
        source = fetch_catalog(source_client, config.source_project_id, config.source_suite_id, "source")
        target = fetch_catalog(target_client, config.target_project_id, config.target_suite_id, "target")
        mapping = reconcile(source, target, overrides)

        for path in sorted(directory.rglob("*.csv")):
            payload = translate(read_report(path), mapping, status_codes)
            if not payload.name:
                log_warning("Report has no rows; skipping", path=str(path))
                continue

            print(f"Migrating {payload.name}")
            if args.dry:
                print(f"{payload.name}: {len(payload.member_case_ids)} case(s), {len(payload.results)} result(s)")
                continue
            create_and_submit(target_client, payload, config.target_project_id, config.target_suite_id,
                              retries=config.upload_retries)
    return 0


def _load_config(overrides: Dict[str, Any]) -> Config:
    try:
        return reload_config(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = _load_config(_config_overrides(args))
        set_log_level(config.log_level)
        config.log_configuration()
        return args.handler(args, config)
    except TrailerError as e:
        log_error("trailer command failed", command=args.command, error=str(e))
        print(f"❌ {e}", file=sys.stderr)
        return 1
