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
"""Confirmation-gated deletion of classified devices."""

from __future__ import annotations

import logging
from typing import Callable, Sequence

from device_cleanup.errors import DeleteError, InvalidArgumentError
from device_cleanup.models import (
    Candidate,
    ConfirmationRequest,
    DeletionFailure,
    DeletionSummary,
)

_LOGGER = logging.getLogger(__name__)

CONFIRMATION_TOKEN = "DELETE"
DEFAULT_PREVIEW_LIMIT = 10

ConfirmFn = Callable[[ConfirmationRequest], str]
DeleteFn = Callable[[str, bool], None]


def execute_deletions(
    candidates: Sequence[Candidate],
    skip_confirmation: bool,
    confirm_fn: ConfirmFn,
    delete_fn: DeleteFn,
    dry_run: bool = False,
    preview_limit: int = DEFAULT_PREVIEW_LIMIT,
    should_cancel: Callable[[], bool] | None = None,
) -> DeletionSummary:
    """Delete candidates one at a time, recording each outcome.

    A failed delete is recorded and the batch moves on. Candidates without an
    identifier are skipped without calling ``delete_fn``. ``dry_run`` is
    forwarded to ``delete_fn`` untouched.
    """

    if candidates is None:
        raise InvalidArgumentError("candidates must not be None")
    if preview_limit < 0:
        raise InvalidArgumentError(f"preview_limit must not be negative, got {preview_limit}")

    summary = DeletionSummary(dry_run=dry_run)
    if not candidates:
        _LOGGER.info("No devices to delete.")
        return summary

    if not skip_confirmation:
        request = ConfirmationRequest(
            total=len(candidates),
            preview=tuple(candidates[:preview_limit]),
            token=CONFIRMATION_TOKEN,
            dry_run=dry_run,
        )
        response = confirm_fn(request)
        if response != CONFIRMATION_TOKEN:
            _LOGGER.warning("Deletion cancelled by operator; no devices were deleted.")
            summary.cancelled = True
            return summary

    for index, candidate in enumerate(candidates):
        if should_cancel is not None and should_cancel():
            _LOGGER.warning(
                "Deletion interrupted after %s of %s devices", index, len(candidates)
            )
            summary.interrupted = True
            break

        device = candidate.device
        if not device.identifier:
            _LOGGER.warning("Skipping %s: missing device identifier", device.display_name)
            summary.skipped.append(candidate)
            continue

        summary.attempted += 1
        try:
            delete_fn(device.identifier, dry_run)
        except DeleteError as exc:
            _LOGGER.error(
                "Failed to delete %s (%s): %s", device.display_name, device.identifier, exc.reason
            )
            summary.failed.append(DeletionFailure(candidate=candidate, reason=exc.reason))
            continue
        _LOGGER.info(
            "%s %s (%s)",
            "Would delete" if dry_run else "Deleted",
            device.display_name,
            device.identifier,
        )
        summary.succeeded.append(candidate)

    _LOGGER.info(
        "Deletion finished: attempted=%s succeeded=%s failed=%s skipped=%s",
        summary.attempted,
        len(summary.succeeded),
        len(summary.failed),
        len(summary.skipped),
    )
    return summary
