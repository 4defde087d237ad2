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
"""Normalization utilities."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from device_cleanup.errors import InvalidArgumentError

NAME_MATCH_EXACT = "exact"
NAME_MATCH_CASEFOLD = "casefold"

_SECONDS_PER_DAY = 86400

_NAME_KEYS: dict[str, Callable[[str], str]] = {
    NAME_MATCH_EXACT: lambda name: name,
    NAME_MATCH_CASEFOLD: lambda name: name.casefold(),
}


def name_key_for(strategy: str) -> Callable[[str], str]:
    """Return the display-name grouping key for a comparison strategy."""

    try:
        return _NAME_KEYS[strategy]
    except KeyError:
        choices = ", ".join(sorted(_NAME_KEYS))
        raise InvalidArgumentError(
            f"unknown name match strategy {strategy!r} (expected one of: {choices})"
        ) from None


def parse_graph_timestamp(raw: str | None) -> datetime | None:
    """Parse an ISO 8601 Graph timestamp into an aware UTC datetime.

    Graph emits ``2024-01-31T08:15:00Z`` and sometimes seven fractional
    digits, which ``fromisoformat`` rejects on older interpreters, so the
    fraction is trimmed to microseconds first.
    """

    if not raw:
        return None
    candidate = raw.strip()
    if not candidate:
        return None
    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"
    if "." in candidate:
        head, _, tail = candidate.partition(".")
        digits = ""
        for char in tail:
            if not char.isdigit():
                break
            digits += char
        candidate = f"{head}.{digits[:6].ljust(6, '0')}{tail[len(digits):]}"
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_optional_timestamp(raw: object) -> datetime | None:
    """Parse a timestamp that may be absent.

    ``None`` and blank strings mean absent. Any other value that does not
    parse raises ``ValueError`` so corrupt data is never read as "missing".
    """

    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ValueError(f"timestamp must be a string, got {raw!r}")
    if not raw.strip():
        return None
    parsed = parse_graph_timestamp(raw)
    if parsed is None:
        raise ValueError(f"unparseable timestamp {raw!r}")
    return parsed


def isoformat_timestamp(value: datetime | None) -> str | None:
    """Full-precision UTC ISO 8601 rendering, ``None`` when absent."""

    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat()


def format_timestamp(value: datetime | None) -> str:
    """Render a timestamp for reports, empty when absent."""

    if value is None:
        return ""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def whole_days_between(start: datetime, now: datetime) -> int:
    """Floor of the elapsed days from ``start`` to ``now``; never negative."""

    elapsed = (now - start).total_seconds()
    if elapsed <= 0:
        return 0
    return int(elapsed // _SECONDS_PER_DAY)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
