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
"""Duplicate registration detection."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime
from typing import Iterable

from device_cleanup.errors import InvalidArgumentError
from device_cleanup.models import DeviceRecord, DuplicateCandidate, TrustType
from device_cleanup.normalize import (
    NAME_MATCH_EXACT,
    ensure_aware,
    name_key_for,
    utc_now,
    whole_days_between,
)

_LOGGER = logging.getLogger(__name__)

PREFERRED_TRUST_TYPE = TrustType.HYBRID_JOINED
REDUNDANT_TRUST_TYPE = TrustType.REGISTERED


def classify_duplicates(
    devices: Iterable[DeviceRecord],
    minimum_days_old: int = 0,
    now: datetime | None = None,
    name_match: str = NAME_MATCH_EXACT,
) -> list[DuplicateCandidate]:
    """Find registered devices that share a display name with a hybrid joined device.

    Args:
        devices: Devices fetched from the source, in provider order
        minimum_days_old: Skip candidates registered fewer days ago than this (0 disables)
        now: Evaluation instant, defaults to the current UTC time
        name_match: Display-name comparison strategy ("exact" or "casefold")

    Returns:
        Candidates ordered by group name, then provider order within a group
    """

    if isinstance(minimum_days_old, bool) or not isinstance(minimum_days_old, int):
        raise InvalidArgumentError(
            f"minimum_days_old must be an integer, got {minimum_days_old!r}"
        )
    if minimum_days_old < 0:
        raise InvalidArgumentError(
            f"minimum_days_old must not be negative, got {minimum_days_old}"
        )
    name_key = name_key_for(name_match)
    evaluated_at = ensure_aware(now) if now is not None else utc_now()

    grouped: dict[str, list[DeviceRecord]] = defaultdict(list)
    for device in devices:
        if not device.display_name.strip():
            _LOGGER.debug("Skipping device %s with blank display name", device.identifier)
            continue
        grouped[name_key(device.display_name)].append(device)

    candidates: list[DuplicateCandidate] = []
    for key in sorted(grouped):
        members = grouped[key]
        if len(members) < 2:
            continue
        preferred = [item for item in members if item.trust_type is PREFERRED_TRUST_TYPE]
        redundant = [item for item in members if item.trust_type is REDUNDANT_TRUST_TYPE]
        if not preferred or not redundant:
            continue

        for device in redundant:
            age_days = _age_in_days(device, evaluated_at)
            if minimum_days_old > 0 and (age_days is None or age_days < minimum_days_old):
                _LOGGER.debug(
                    "Skipping %s (%s): age %s below minimum %s",
                    device.display_name,
                    device.identifier,
                    age_days,
                    minimum_days_old,
                )
                continue
            candidates.append(
                DuplicateCandidate(
                    device=device,
                    trust_label=device.trust_type.label,
                    age_days=age_days,
                    hybrid_sibling_count=len(preferred),
                    reason=_duplicate_reason(preferred),
                )
            )

    _LOGGER.debug("Found %s duplicate candidates in %s name groups", len(candidates), len(grouped))
    return candidates


def _age_in_days(device: DeviceRecord, now: datetime) -> int | None:
    """Days since registration, falling back to creation time."""

    started = device.registered_at or device.created_at
    if started is None:
        return None
    return whole_days_between(ensure_aware(started), now)


def _duplicate_reason(preferred: list[DeviceRecord]) -> str:
    """Build the reason string for a duplicate candidate."""

    name = preferred[0].display_name
    return f"Duplicate of {len(preferred)} hybrid joined device(s) named '{name}'"
