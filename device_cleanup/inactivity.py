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
"""Inactivity classification for stale device cleanup."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable

from device_cleanup.errors import InvalidArgumentError
from device_cleanup.models import DeviceRecord, InactivityResult, StaleCandidate
from device_cleanup.normalize import ensure_aware, utc_now, whole_days_between

_LOGGER = logging.getLogger(__name__)


def classify_inactive(
    devices: Iterable[DeviceRecord],
    threshold_days: int,
    include_disabled: bool = False,
    include_never_active: bool = False,
    now: datetime | None = None,
) -> list[StaleCandidate]:
    """Return devices inactive for at least ``threshold_days``.

    Never-active devices come first, then the longest inactive, with ties
    broken by display name.
    """

    result = partition_inactive(
        devices,
        threshold_days,
        include_disabled=include_disabled,
        include_never_active=include_never_active,
        now=now,
    )
    return list(result.stale)


def partition_inactive(
    devices: Iterable[DeviceRecord],
    threshold_days: int,
    include_disabled: bool = False,
    include_never_active: bool = False,
    now: datetime | None = None,
) -> InactivityResult:
    """Split devices into stale, active and unclassified buckets.

    Args:
        devices: Devices fetched from the source
        threshold_days: Inactive days at which a device becomes stale
        include_disabled: Keep disabled devices instead of filtering them out
        include_never_active: Treat devices with no activity as stale
        now: Evaluation instant, defaults to the current UTC time

    Returns:
        Partition of the evaluated devices
    """

    _validate_threshold(threshold_days)
    evaluated_at = ensure_aware(now) if now is not None else utc_now()

    stale: list[StaleCandidate] = []
    active: list[StaleCandidate] = []
    unclassified: list[StaleCandidate] = []
    disabled: list[DeviceRecord] = []

    for device in devices:
        if not include_disabled and not device.enabled:
            disabled.append(device)
            continue

        if device.last_activity_at is None:
            candidate = StaleCandidate(device=device, inactive_days=None, never_active=True)
            if include_never_active:
                stale.append(candidate)
            else:
                unclassified.append(candidate)
            continue

        inactive_days = whole_days_between(ensure_aware(device.last_activity_at), evaluated_at)
        candidate = StaleCandidate(
            device=device, inactive_days=inactive_days, never_active=False
        )
        if inactive_days >= threshold_days:
            stale.append(candidate)
        else:
            active.append(candidate)

    _LOGGER.debug(
        "Inactivity partition: stale=%s active=%s unclassified=%s disabled=%s",
        len(stale),
        len(active),
        len(unclassified),
        len(disabled),
    )
    return InactivityResult(
        stale=tuple(sorted(stale, key=_staleness_order)),
        active=tuple(sorted(active, key=_staleness_order)),
        unclassified=tuple(sorted(unclassified, key=lambda item: item.device.display_name)),
        disabled_excluded=tuple(disabled),
    )


def _validate_threshold(threshold_days: int) -> None:
    """Reject non-positive or non-integer thresholds."""

    if isinstance(threshold_days, bool) or not isinstance(threshold_days, int):
        raise InvalidArgumentError(f"threshold_days must be an integer, got {threshold_days!r}")
    if threshold_days <= 0:
        raise InvalidArgumentError(f"threshold_days must be positive, got {threshold_days}")


def _staleness_order(candidate: StaleCandidate) -> tuple[int, int, str]:
    """Sort key: never active first, then most inactive, then name."""

    return (
        0 if candidate.never_active else 1,
        -(candidate.inactive_days or 0),
        candidate.device.display_name,
    )
