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
"""Tests for normalization utilities."""

from datetime import datetime, timedelta, timezone

import pytest

from device_cleanup.errors import InvalidArgumentError
from device_cleanup.normalize import (
    format_timestamp,
    isoformat_timestamp,
    name_key_for,
    parse_graph_timestamp,
    parse_optional_timestamp,
    whole_days_between,
)


def test_parse_graph_timestamp_variants() -> None:
    expected = datetime(2024, 1, 31, 8, 15, tzinfo=timezone.utc)

    assert parse_graph_timestamp("2024-01-31T08:15:00Z") == expected
    assert parse_graph_timestamp("2024-01-31T10:15:00+02:00") == expected
    assert parse_graph_timestamp("2024-01-31T08:15:00") == expected
    assert parse_graph_timestamp("2024-01-31T08:15:00.5Z") == expected.replace(microsecond=500000)


def test_parse_graph_timestamp_rejects_garbage() -> None:
    assert parse_graph_timestamp(None) is None
    assert parse_graph_timestamp("  ") is None
    assert parse_graph_timestamp("last tuesday") is None


def test_whole_days_between_floors() -> None:
    now = datetime(2025, 6, 1, tzinfo=timezone.utc)

    assert whole_days_between(now - timedelta(days=30, hours=23), now) == 30
    assert whole_days_between(now - timedelta(days=30), now) == 30
    assert whole_days_between(now + timedelta(days=1), now) == 0


def test_format_timestamp() -> None:
    assert format_timestamp(None) == ""
    assert format_timestamp(datetime(2024, 1, 31, 8, 15, 30, tzinfo=timezone.utc)) == (
        "2024-01-31T08:15:30Z"
    )


def test_name_key_strategies() -> None:
    assert name_key_for("exact")("Host1") == "Host1"
    assert name_key_for("casefold")("Host1") == "host1"
    with pytest.raises(InvalidArgumentError):
        name_key_for("soundex")


def test_parse_optional_timestamp_distinguishes_absent_from_corrupt() -> None:
    assert parse_optional_timestamp(None) is None
    assert parse_optional_timestamp("   ") is None
    assert parse_optional_timestamp("2024-01-31T08:15:00Z") == datetime(
        2024, 1, 31, 8, 15, tzinfo=timezone.utc
    )
    with pytest.raises(ValueError, match="unparseable timestamp"):
        parse_optional_timestamp("last tuesday")
    with pytest.raises(ValueError, match="must be a string"):
        parse_optional_timestamp(1717243200)


def test_isoformat_timestamp_keeps_microseconds() -> None:
    value = datetime(2025, 5, 1, 9, 30, 15, 123456, tzinfo=timezone.utc)

    assert isoformat_timestamp(None) is None
    assert isoformat_timestamp(value) == "2025-05-01T09:30:15.123456+00:00"
    assert parse_optional_timestamp(isoformat_timestamp(value)) == value
