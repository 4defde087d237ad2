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
"""Tests for the CLI entrypoint."""

from __future__ import annotations

import csv
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from device_cleanup import cli
from device_cleanup.errors import ConnectivityError, DeleteError
from device_cleanup.inventory import save_device_snapshot
from device_cleanup.models import DeviceRecord, TrustType


def _snapshot(tmp_path: Path) -> Path:
    now = datetime.now(timezone.utc)
    devices = [
        DeviceRecord("h1", "HOST1", TrustType.HYBRID_JOINED, True, registered_at=now),
        DeviceRecord(
            "r1",
            "HOST1",
            TrustType.REGISTERED,
            True,
            registered_at=now - timedelta(days=60),
            last_activity_at=now - timedelta(days=200),
        ),
        DeviceRecord(
            "c1",
            "LAPTOP9",
            TrustType.CLOUD_JOINED,
            True,
            last_activity_at=now - timedelta(days=5),
        ),
    ]
    return save_device_snapshot(tmp_path / "devices.json", devices)


class FakeSource:
    def __init__(self, devices: list[DeviceRecord], failing: set[str] | None = None) -> None:
        self._devices = devices
        self._failing = failing or set()
        self.deleted: list[tuple[str, bool]] = []

    def fetch_all_devices(self) -> list[DeviceRecord]:
        return list(self._devices)

    def delete_device(self, identifier: str, dry_run: bool = False) -> None:
        self.deleted.append((identifier, dry_run))
        if identifier in self._failing:
            raise DeleteError("HTTP 403: denied")


def test_stale_report_from_snapshot(tmp_path: Path) -> None:
    snapshot = _snapshot(tmp_path)
    out_dir = tmp_path / "out"

    code = cli.main(
        [
            "stale",
            "--threshold-days",
            "90",
            "--load-devices",
            str(snapshot),
            "--out-dir",
            str(out_dir),
        ]
    )

    assert code == cli.EXIT_OK
    reports = list(out_dir.glob("stale_devices_*.csv"))
    assert len(reports) == 1
    with reports[0].open(encoding="utf-8", newline="") as handle:
        rows = list(csv.DictReader(handle))
    assert [row["identifier"] for row in rows] == ["r1"]


def test_duplicates_dry_run_from_snapshot(tmp_path: Path) -> None:
    snapshot = _snapshot(tmp_path)
    out_dir = tmp_path / "out"

    code = cli.main(
        [
            "duplicates",
            "--min-days-old",
            "30",
            "--load-devices",
            str(snapshot),
            "--out-dir",
            str(out_dir),
            "--output-format",
            "json",
            "--dry-run",
            "--yes",
        ]
    )

    assert code == cli.EXIT_OK
    report = json.loads(next(out_dir.glob("duplicate_devices_*.json")).read_text(encoding="utf-8"))
    assert [row["identifier"] for row in report] == ["r1"]
    summary = json.loads(next(out_dir.glob("deletion_summary_*.json")).read_text(encoding="utf-8"))
    assert summary["dry_run"] is True
    assert summary["succeeded"] == ["r1"]


def test_declined_prompt_deletes_nothing(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    source = FakeSource([DeviceRecord("x", "OLD", TrustType.CLOUD_JOINED, True)])
    monkeypatch.setattr(cli, "_build_graph_source", lambda timeout: source)
    monkeypatch.setattr("builtins.input", lambda prompt: "no")

    code = cli.main(
        [
            "stale",
            "--threshold-days",
            "30",
            "--include-never-active",
            "--delete",
            "--out-dir",
            str(tmp_path),
        ]
    )

    assert code == cli.EXIT_OK
    assert source.deleted == []
    assert list(tmp_path.glob("deletion_summary_*")) == []


def test_delete_failure_sets_exit_code(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    devices = [
        DeviceRecord("a", "A", TrustType.CLOUD_JOINED, True),
        DeviceRecord("b", "B", TrustType.CLOUD_JOINED, True),
    ]
    source = FakeSource(devices, failing={"a"})
    monkeypatch.setattr(cli, "_build_graph_source", lambda timeout: source)
    monkeypatch.setattr("builtins.input", lambda prompt: "DELETE")

    code = cli.main(
        [
            "stale",
            "--threshold-days",
            "30",
            "--include-never-active",
            "--delete",
            "--out-dir",
            str(tmp_path),
        ]
    )

    assert code == cli.EXIT_DELETE_FAILED
    assert source.deleted == [("a", False), ("b", False)]
    text = next(tmp_path.glob("deletion_summary_*.txt")).read_text(encoding="utf-8")
    assert "failed: 1" in text
    assert "succeeded: 1" in text


def test_source_error_exit_code(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    class BrokenSource:
        def fetch_all_devices(self) -> list[DeviceRecord]:
            raise ConnectivityError("HTTP 503: unavailable")

    monkeypatch.setattr(cli, "_build_graph_source", lambda timeout: BrokenSource())

    code = cli.main(["duplicates", "--out-dir", str(tmp_path)])

    assert code == cli.EXIT_SOURCE_ERROR
    assert list(tmp_path.glob("duplicate_devices_*")) == []


def test_missing_credentials_exit_code(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("AZURE_TENANT_ID", "AZURE_CLIENT_ID", "AZURE_CLIENT_SECRET"):
        monkeypatch.delenv(name, raising=False)

    code = cli.main(["duplicates", "--out-dir", str(tmp_path)])

    assert code == cli.EXIT_INVALID_INPUT


def test_invalid_threshold_fails_before_fetch(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    def _unexpected(timeout: float) -> FakeSource:
        raise AssertionError("source should not be built")

    monkeypatch.setattr(cli, "_build_graph_source", _unexpected)

    code = cli.main(["stale", "--threshold-days", "0", "--out-dir", str(tmp_path)])

    assert code == cli.EXIT_INVALID_INPUT


def test_snapshot_save(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    source = FakeSource([DeviceRecord("a", "A", TrustType.CLOUD_JOINED, True)])
    monkeypatch.setattr(cli, "_build_graph_source", lambda timeout: source)
    snapshot = tmp_path / "saved.json"

    code = cli.main(
        ["duplicates", "--out-dir", str(tmp_path), "--save-devices", str(snapshot)]
    )

    assert code == cli.EXIT_OK
    assert json.loads(snapshot.read_text(encoding="utf-8"))[0]["identifier"] == "a"


def test_unwritable_snapshot_path_exit_code(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    source = FakeSource([DeviceRecord("a", "A", TrustType.CLOUD_JOINED, True)])
    monkeypatch.setattr(cli, "_build_graph_source", lambda timeout: source)
    snapshot = tmp_path / "missing" / "saved.json"

    code = cli.main(
        ["duplicates", "--out-dir", str(tmp_path), "--save-devices", str(snapshot)]
    )

    assert code == cli.EXIT_INVALID_INPUT
    assert not snapshot.exists()


def test_out_dir_that_is_a_file_exit_code(tmp_path: Path) -> None:
    snapshot = _snapshot(tmp_path)
    blocker = tmp_path / "report.txt"
    blocker.write_text("", encoding="utf-8")

    code = cli.main(
        ["duplicates", "--load-devices", str(snapshot), "--out-dir", str(blocker)]
    )

    assert code == cli.EXIT_INVALID_INPUT


def test_corrupt_snapshot_timestamp_exit_code(tmp_path: Path) -> None:
    snapshot = tmp_path / "devices.json"
    snapshot.write_text(
        '[{"identifier": "1", "display_name": "A", "trust_type": "AzureAd", "enabled": true,'
        ' "last_activity_at": "not a date"}]',
        encoding="utf-8",
    )

    code = cli.main(
        [
            "stale",
            "--threshold-days",
            "30",
            "--include-never-active",
            "--load-devices",
            str(snapshot),
            "--out-dir",
            str(tmp_path / "out"),
        ]
    )

    assert code == cli.EXIT_INVALID_INPUT
    assert list((tmp_path / "out").glob("stale_devices_*")) == []
