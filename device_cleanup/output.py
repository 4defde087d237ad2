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
"""Output rendering for reports."""

from __future__ import annotations

import csv
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Sequence

from device_cleanup.models import (
    DeletionSummary,
    DeviceRecord,
    DuplicateCandidate,
    StaleCandidate,
)
from device_cleanup.normalize import format_timestamp

_DEVICE_COLUMNS = [
    "identifier",
    "device_id",
    "display_name",
    "trust_type",
    "enabled",
    "operating_system",
    "operating_system_version",
    "registered_at",
    "created_at",
    "last_activity_at",
]
_STALE_COLUMNS = [*_DEVICE_COLUMNS, "inactive_days", "never_active"]
_DUPLICATE_COLUMNS = [*_DEVICE_COLUMNS, "age_days", "hybrid_sibling_count", "reason"]


def default_report_name(prefix: str, now: datetime) -> str:
    """Build a timestamped report file stem."""

    return f"{prefix}_{now.strftime('%Y%m%d_%H%M%S')}"


def write_stale_report(path: str | Path, candidates: Sequence[StaleCandidate]) -> Path:
    """Write stale device CSV."""

    target = Path(path)
    with target.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.writer(handle)
        writer.writerow(_STALE_COLUMNS)
        for candidate in candidates:
            row = _stale_row(candidate)
            writer.writerow([_csv_value(row[column]) for column in _STALE_COLUMNS])
    return target


def write_duplicate_report(path: str | Path, candidates: Sequence[DuplicateCandidate]) -> Path:
    """Write duplicate device CSV."""

    target = Path(path)
    with target.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.writer(handle)
        writer.writerow(_DUPLICATE_COLUMNS)
        for candidate in candidates:
            row = _duplicate_row(candidate)
            writer.writerow([_csv_value(row[column]) for column in _DUPLICATE_COLUMNS])
    return target


def write_stale_report_json(path: str | Path, candidates: Sequence[StaleCandidate]) -> Path:
    """Write stale device JSON."""

    return _write_json(path, [_stale_row(candidate) for candidate in candidates])


def write_duplicate_report_json(
    path: str | Path, candidates: Sequence[DuplicateCandidate]
) -> Path:
    """Write duplicate device JSON."""

    return _write_json(path, [_duplicate_row(candidate) for candidate in candidates])


def write_deletion_summary(path: str | Path, summary: DeletionSummary) -> Path:
    """Write deletion summary report."""

    target = Path(path)
    with target.open("w", encoding="utf-8") as handle:
        handle.write(f"dry_run: {str(summary.dry_run).lower()}\n")
        handle.write(f"cancelled: {str(summary.cancelled).lower()}\n")
        handle.write(f"interrupted: {str(summary.interrupted).lower()}\n")
        handle.write(f"attempted: {summary.attempted}\n")
        handle.write(f"succeeded: {len(summary.succeeded)}\n")
        handle.write(f"failed: {len(summary.failed)}\n")
        handle.write(f"skipped: {len(summary.skipped)}\n")
        for failure in summary.failed:
            device = failure.candidate.device
            handle.write(
                f"failed_device: {device.display_name} ({device.identifier}): {failure.reason}\n"
            )
        for candidate in summary.skipped:
            handle.write(f"skipped_device: {candidate.device.display_name} (missing identifier)\n")
    return target


def write_deletion_summary_json(path: str | Path, summary: DeletionSummary) -> Path:
    """Write deletion summary report JSON."""

    data = {
        "dry_run": summary.dry_run,
        "cancelled": summary.cancelled,
        "interrupted": summary.interrupted,
        "attempted": summary.attempted,
        "succeeded": [candidate.device.identifier for candidate in summary.succeeded],
        "failed": [
            {
                "identifier": failure.candidate.device.identifier,
                "display_name": failure.candidate.device.display_name,
                "reason": failure.reason,
            }
            for failure in summary.failed
        ],
        "skipped": [candidate.device.display_name for candidate in summary.skipped],
    }
    return _write_json(path, data)


def _device_row(device: DeviceRecord) -> dict[str, Any]:
    return {
        "identifier": device.identifier,
        "device_id": device.device_id,
        "display_name": device.display_name,
        "trust_type": device.trust_type.label,
        "enabled": device.enabled,
        "operating_system": device.operating_system,
        "operating_system_version": device.operating_system_version,
        "registered_at": format_timestamp(device.registered_at),
        "created_at": format_timestamp(device.created_at),
        "last_activity_at": format_timestamp(device.last_activity_at),
    }


def _stale_row(candidate: StaleCandidate) -> dict[str, Any]:
    row = _device_row(candidate.device)
    row["inactive_days"] = candidate.inactive_days
    row["never_active"] = candidate.never_active
    return row


def _duplicate_row(candidate: DuplicateCandidate) -> dict[str, Any]:
    row = _device_row(candidate.device)
    row["trust_type"] = candidate.trust_label
    row["age_days"] = candidate.age_days
    row["hybrid_sibling_count"] = candidate.hybrid_sibling_count
    row["reason"] = candidate.reason
    return row


def _csv_value(value: Any) -> str:
    """Render CSV cells: booleans lowercase, None empty."""

    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _write_json(path: str | Path, data: Any) -> Path:
    target = Path(path)
    with target.open("w", encoding="utf-8") as handle:
        json.dump(data, handle, indent=2, ensure_ascii=False)
        handle.write("\n")
    return target
