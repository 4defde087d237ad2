# Copyright 2025 device-cleanup contributors
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# This file was created or modified with the assistance of an AI (Large Language Model).
# Review required for correctness, security, and licensing.
"""CLI entrypoint."""

from __future__ import annotations

import argparse
import logging
from datetime import datetime
from pathlib import Path
from typing import Sequence

from device_cleanup.config import DEFAULT_TIMEOUT_SECONDS, GraphCredentials
from device_cleanup.deletion import DEFAULT_PREVIEW_LIMIT, DeleteFn, execute_deletions
from device_cleanup.duplicates import classify_duplicates
from device_cleanup.errors import (
    ConfigurationError,
    DeleteError,
    DeviceSourceError,
    InvalidArgumentError,
)
from device_cleanup.graph import GraphDeviceSource, GraphSession
from device_cleanup.inactivity import partition_inactive
from device_cleanup.inventory import load_device_snapshot, save_device_snapshot
from device_cleanup.models import Candidate, ConfirmationRequest, DeletionSummary, DeviceRecord
from device_cleanup.normalize import NAME_MATCH_CASEFOLD, NAME_MATCH_EXACT, utc_now
from device_cleanup.output import (
    default_report_name,
    write_deletion_summary,
    write_deletion_summary_json,
    write_duplicate_report,
    write_duplicate_report_json,
    write_stale_report,
    write_stale_report_json,
)

_LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_SOURCE_ERROR = 1
EXIT_DELETE_FAILED = 2
EXIT_INVALID_INPUT = 3


def build_parser() -> argparse.ArgumentParser:
    """Build argument parser."""

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--out-dir", default=".", help="directory for reports (default: .)")
    common.add_argument(
        "--output-format",
        default="csv",
        choices=["csv", "json", "both"],
        help="report format (default: csv)",
    )
    common.add_argument("--delete", action="store_true", help="delete the reported devices")
    common.add_argument(
        "--dry-run",
        action="store_true",
        help="walk the deletion batch without deleting anything",
    )
    common.add_argument("--yes", action="store_true", help="skip the DELETE confirmation prompt")
    common.add_argument(
        "--preview-limit",
        type=int,
        default=DEFAULT_PREVIEW_LIMIT,
        help="devices listed in the confirmation prompt",
    )
    common.add_argument(
        "--load-devices",
        type=str,
        help="load devices from a JSON snapshot instead of Microsoft Graph",
    )
    common.add_argument(
        "--save-devices",
        type=str,
        help="save fetched devices to a JSON snapshot for later replay",
    )
    common.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT_SECONDS,
        help="Graph request timeout seconds",
    )
    common.add_argument(
        "--log-level",
        default="INFO",
        choices=["INFO", "DEBUG", "WARN"],
        help="log level",
    )

    parser = argparse.ArgumentParser(
        description="Report and remove stale or duplicate directory devices"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    stale = subparsers.add_parser(
        "stale", parents=[common], help="devices inactive beyond a threshold"
    )
    stale.add_argument(
        "--threshold-days",
        type=int,
        required=True,
        help="inactive days at which a device is stale",
    )
    stale.add_argument(
        "--include-disabled", action="store_true", help="also evaluate disabled devices"
    )
    stale.add_argument(
        "--include-never-active",
        action="store_true",
        help="treat devices that never signed in as stale",
    )

    duplicates = subparsers.add_parser(
        "duplicates",
        parents=[common],
        help="registered devices superseded by a hybrid joined device",
    )
    duplicates.add_argument(
        "--min-days-old",
        type=int,
        default=0,
        help="only report duplicates registered at least this many days ago",
    )
    duplicates.add_argument(
        "--name-match",
        default=NAME_MATCH_EXACT,
        choices=[NAME_MATCH_EXACT, NAME_MATCH_CASEFOLD],
        help="display name comparison (default: exact)",
    )
    return parser


def configure_logging(level: str) -> None:
    """Configure logging."""

    logging.basicConfig(level=getattr(logging, level), format="%(levelname)s %(message)s")


def console_confirm(request: ConfirmationRequest) -> str:
    """Show the deletion preview and read the operator's answer."""

    action = "simulate deletion of" if request.dry_run else "permanently delete"
    print(f"About to {action} {request.total} device(s):")
    for candidate in request.preview:
        device = candidate.device
        print(f"  {device.display_name} ({device.identifier or 'missing id'})")
    if request.total > len(request.preview):
        print(f"  ... and {request.total - len(request.preview)} more")
    try:
        return input(f"Type {request.token} to continue: ")
    except EOFError:
        return ""


def main(argv: Sequence[str] | None = None) -> int:
    """Run device-cleanup."""

    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        _validate_args(args)
    except InvalidArgumentError as exc:
        _LOGGER.error("Invalid input: %s", exc)
        return EXIT_INVALID_INPUT

    out_dir = Path(args.out_dir)
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        _LOGGER.error("Cannot create output directory: %s", exc)
        return EXIT_INVALID_INPUT
    now = utc_now()

    graph_source: GraphDeviceSource | None = None
    try:
        if args.load_devices:
            _LOGGER.info("Loading devices from %s", args.load_devices)
            devices = load_device_snapshot(args.load_devices)
        else:
            graph_source = _build_graph_source(args.timeout)
            devices = graph_source.fetch_all_devices()
    except (ValueError, OSError) as exc:
        _LOGGER.error("Invalid input: %s", exc)
        return EXIT_INVALID_INPUT
    except ConfigurationError as exc:
        _LOGGER.error("Configuration error: %s", exc)
        return EXIT_INVALID_INPUT
    except DeviceSourceError as exc:
        _LOGGER.error("Failed to fetch devices: %s", exc)
        return EXIT_SOURCE_ERROR
    _LOGGER.info("Loaded %s devices", len(devices))

    try:
        if args.save_devices:
            save_device_snapshot(args.save_devices, devices)
            _LOGGER.info("Saved devices to %s", args.save_devices)
        candidates = _classify_and_report(args, devices, out_dir, now)
    except OSError as exc:
        _LOGGER.error("Failed to write output: %s", exc)
        return EXIT_INVALID_INPUT

    if not (args.delete or args.dry_run):
        return EXIT_OK

    try:
        delete_fn = _resolve_delete_fn(args, graph_source)
    except ConfigurationError as exc:
        _LOGGER.error("Configuration error: %s", exc)
        return EXIT_INVALID_INPUT

    summary = execute_deletions(
        candidates,
        skip_confirmation=args.yes,
        confirm_fn=console_confirm,
        delete_fn=delete_fn,
        dry_run=args.dry_run,
        preview_limit=args.preview_limit,
    )
    for failure in summary.failed:
        device = failure.candidate.device
        _LOGGER.error(
            "Not deleted: %s (%s): %s", device.display_name, device.identifier, failure.reason
        )
    try:
        _write_summary(args, summary, out_dir, now)
    except OSError as exc:
        _LOGGER.error("Failed to write deletion summary: %s", exc)
        if not summary.failed:
            return EXIT_INVALID_INPUT

    if summary.failed:
        return EXIT_DELETE_FAILED
    return EXIT_OK


def _validate_args(args: argparse.Namespace) -> None:
    """Reject bad numeric options before any network call."""

    if args.command == "stale" and args.threshold_days <= 0:
        raise InvalidArgumentError(
            f"--threshold-days must be positive, got {args.threshold_days}"
        )
    if args.command == "duplicates" and args.min_days_old < 0:
        raise InvalidArgumentError(
            f"--min-days-old must not be negative, got {args.min_days_old}"
        )
    if args.preview_limit < 0:
        raise InvalidArgumentError(
            f"--preview-limit must not be negative, got {args.preview_limit}"
        )


def _build_graph_source(timeout: float) -> GraphDeviceSource:
    credentials = GraphCredentials.from_env()
    return GraphDeviceSource(GraphSession(credentials, timeout=timeout))


def _classify_and_report(
    args: argparse.Namespace,
    devices: list[DeviceRecord],
    out_dir: Path,
    now: datetime,
) -> list[Candidate]:
    """Run the selected classifier and write its report."""

    if args.command == "stale":
        result = partition_inactive(
            devices,
            args.threshold_days,
            include_disabled=args.include_disabled,
            include_never_active=args.include_never_active,
            now=now,
        )
        _LOGGER.info(
            "Stale=%s active=%s unclassified=%s disabled_excluded=%s",
            len(result.stale),
            len(result.active),
            len(result.unclassified),
            len(result.disabled_excluded),
        )
        stale = list(result.stale)
        stem = out_dir / default_report_name("stale_devices", now)
        if args.output_format in ("csv", "both"):
            path = write_stale_report(stem.with_suffix(".csv"), stale)
            _LOGGER.info("Wrote %s", path)
        if args.output_format in ("json", "both"):
            path = write_stale_report_json(stem.with_suffix(".json"), stale)
            _LOGGER.info("Wrote %s", path)
        return stale

    duplicates = classify_duplicates(
        devices,
        minimum_days_old=args.min_days_old,
        now=now,
        name_match=args.name_match,
    )
    _LOGGER.info("Duplicate registered devices: %s", len(duplicates))
    stem = out_dir / default_report_name("duplicate_devices", now)
    if args.output_format in ("csv", "both"):
        path = write_duplicate_report(stem.with_suffix(".csv"), duplicates)
        _LOGGER.info("Wrote %s", path)
    if args.output_format in ("json", "both"):
        path = write_duplicate_report_json(stem.with_suffix(".json"), duplicates)
        _LOGGER.info("Wrote %s", path)
    return list(duplicates)


def _resolve_delete_fn(
    args: argparse.Namespace, graph_source: GraphDeviceSource | None
) -> DeleteFn:
    """Pick the delete collaborator; snapshot dry runs need no Graph session."""

    if graph_source is not None:
        return graph_source.delete_device
    if args.dry_run:
        return _snapshot_dry_run_delete
    return _build_graph_source(args.timeout).delete_device


def _snapshot_dry_run_delete(identifier: str, dry_run: bool) -> None:
    if not dry_run:
        raise DeleteError("snapshot replay cannot delete devices")
    _LOGGER.info("Dry run: skipping DELETE for device %s", identifier)


def _write_summary(
    args: argparse.Namespace,
    summary: DeletionSummary,
    out_dir: Path,
    now: datetime,
) -> None:
    if summary.cancelled:
        return
    stem = out_dir / default_report_name("deletion_summary", now)
    if args.output_format in ("csv", "both"):
        write_deletion_summary(stem.with_suffix(".txt"), summary)
    if args.output_format in ("json", "both"):
        write_deletion_summary_json(stem.with_suffix(".json"), summary)


if __name__ == "__main__":
    raise SystemExit(main())
