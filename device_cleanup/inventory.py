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
"""Device snapshot files for offline replay."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Sequence

from device_cleanup.models import DeviceRecord, TrustType
from device_cleanup.normalize import isoformat_timestamp, parse_optional_timestamp

_SNAPSHOT_REQUIRED_KEYS = ("identifier", "display_name", "trust_type", "enabled")


def load_device_snapshot(path: str | Path) -> list[DeviceRecord]:
    """Load devices previously written by ``save_device_snapshot``."""

    with Path(path).open(encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON list of devices")

    devices: list[DeviceRecord] = []
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ValueError(f"{path} entry {index} is not an object")
        _validate_entry(path, index, entry)
        devices.append(
            DeviceRecord(
                identifier=str(entry.get("identifier") or "").strip(),
                display_name=str(entry.get("display_name") or ""),
                trust_type=TrustType.from_graph(entry.get("trust_type")),
                enabled=entry["enabled"],
                registered_at=_timestamp(path, index, entry, "registered_at"),
                created_at=_timestamp(path, index, entry, "created_at"),
                last_activity_at=_timestamp(path, index, entry, "last_activity_at"),
                device_id=str(entry.get("device_id") or "").strip(),
                operating_system=str(entry.get("operating_system") or "").strip(),
                operating_system_version=str(entry.get("operating_system_version") or "").strip(),
            )
        )
    return devices


def save_device_snapshot(path: str | Path, devices: Sequence[DeviceRecord]) -> Path:
    """Write devices as a JSON list."""

    data = [_device_to_dict(device) for device in devices]
    target = Path(path)
    with target.open("w", encoding="utf-8") as handle:
        json.dump(data, handle, indent=2, ensure_ascii=False)
        handle.write("\n")
    return target


def _device_to_dict(device: DeviceRecord) -> dict[str, Any]:
    return {
        "identifier": device.identifier,
        "device_id": device.device_id,
        "display_name": device.display_name,
        "trust_type": device.trust_type.value,
        "enabled": device.enabled,
        "operating_system": device.operating_system,
        "operating_system_version": device.operating_system_version,
        "registered_at": isoformat_timestamp(device.registered_at),
        "created_at": isoformat_timestamp(device.created_at),
        "last_activity_at": isoformat_timestamp(device.last_activity_at),
    }


def _validate_entry(path: str | Path, index: int, entry: dict[str, Any]) -> None:
    """Ensure required keys are present and ``enabled`` is a boolean."""

    missing = [name for name in _SNAPSHOT_REQUIRED_KEYS if name not in entry]
    if missing:
        raise ValueError(f"{path} entry {index} is missing required keys: {', '.join(missing)}")
    if not isinstance(entry["enabled"], bool):
        raise ValueError(
            f"{path} entry {index} has non-boolean enabled value: {entry['enabled']!r}"
        )


def _timestamp(path: str | Path, index: int, entry: dict[str, Any], key: str) -> datetime | None:
    """Parse an optional timestamp field; corrupt values are rejected, not treated as absent."""

    try:
        return parse_optional_timestamp(entry.get(key))
    except ValueError as exc:
        raise ValueError(f"{path} entry {index} has invalid {key}: {exc}") from exc
