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
"""Exceptions raised by device-cleanup."""

from __future__ import annotations


class DeviceCleanupError(Exception):
    """Base error for device-cleanup."""


class InvalidArgumentError(DeviceCleanupError, ValueError):
    """Classifier or executor parameter is malformed."""


class ConfigurationError(DeviceCleanupError):
    """Required configuration, such as Graph credentials, is missing."""


class DeviceSourceError(DeviceCleanupError):
    """Device collection could not be fetched."""


class ConnectivityError(DeviceSourceError):
    """Directory service unreachable or returned an unexpected response."""


class AuthorizationError(DeviceSourceError):
    """Credentials were rejected or lack the required permissions."""


class DeleteError(DeviceCleanupError):
    """A single device deletion failed."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason
