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
"""Data models for device-cleanup."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Sequence, Union

UNKNOWN_VALUE = "unknown"


class TrustType(Enum):
    """How a device joined the directory."""

    CLOUD_JOINED = "AzureAd"
    HYBRID_JOINED = "ServerAd"
    REGISTERED = "Workplace"
    UNKNOWN = UNKNOWN_VALUE

    @classmethod
    def from_graph(cls, raw: str | None) -> TrustType:
        """Map a Graph ``trustType`` value, tolerating case and unknown values."""

        if not raw:
            return cls.UNKNOWN
        lowered = raw.strip().lower()
        for member in cls:
            if member.value.lower() == lowered:
                return member
        return cls.UNKNOWN

    @property
    def label(self) -> str:
        return TRUST_TYPE_LABELS[self]


TRUST_TYPE_LABELS: dict[TrustType, str] = {
    TrustType.CLOUD_JOINED: "Microsoft Entra joined",
    TrustType.HYBRID_JOINED: "Microsoft Entra hybrid joined",
    TrustType.REGISTERED: "Microsoft Entra registered",
    TrustType.UNKNOWN: "Unknown",
}


@dataclass(frozen=True)
class DeviceRecord:
    """Directory device as returned by the device source."""

    identifier: str
    display_name: str
    trust_type: TrustType
    enabled: bool
    registered_at: datetime | None = None
    created_at: datetime | None = None
    last_activity_at: datetime | None = None
    device_id: str = ""
    operating_system: str = ""
    operating_system_version: str = ""


@dataclass(frozen=True)
class StaleCandidate:
    """Device evaluated by the inactivity classifier."""

    device: DeviceRecord
    inactive_days: int | None
    never_active: bool


@dataclass(frozen=True)
class DuplicateCandidate:
    """Registered device superseded by a hybrid joined device of the same name."""

    device: DeviceRecord
    trust_label: str
    age_days: int | None
    hybrid_sibling_count: int
    reason: str


Candidate = Union[StaleCandidate, DuplicateCandidate]


@dataclass(frozen=True)
class InactivityResult:
    """Stale / active / unclassified partition of a device list."""

    stale: tuple[StaleCandidate, ...]
    active: tuple[StaleCandidate, ...]
    unclassified: tuple[StaleCandidate, ...]
    disabled_excluded: tuple[DeviceRecord, ...] = ()


@dataclass(frozen=True)
class DeletionFailure:
    """Delete call that raised for a single candidate."""

    candidate: Candidate
    reason: str


@dataclass(frozen=True)
class ConfirmationRequest:
    """Context handed to the confirmation prompt."""

    total: int
    preview: Sequence[Candidate]
    token: str
    dry_run: bool


@dataclass
class DeletionSummary:
    """Outcome of a deletion batch."""

    attempted: int = 0
    succeeded: list[Candidate] = field(default_factory=list)
    failed: list[DeletionFailure] = field(default_factory=list)
    skipped: list[Candidate] = field(default_factory=list)
    cancelled: bool = False
    interrupted: bool = False
    dry_run: bool = False
