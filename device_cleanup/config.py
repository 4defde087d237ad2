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
"""Graph connection settings loaded from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping

from device_cleanup.errors import ConfigurationError

DEFAULT_GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
DEFAULT_LOGIN_URL = "https://login.microsoftonline.com"
DEFAULT_TIMEOUT_SECONDS = 30.0

ENV_TENANT_ID = "AZURE_TENANT_ID"
ENV_CLIENT_ID = "AZURE_CLIENT_ID"
ENV_CLIENT_SECRET = "AZURE_CLIENT_SECRET"
ENV_GRAPH_BASE_URL = "GRAPH_BASE_URL"
ENV_LOGIN_URL = "GRAPH_LOGIN_URL"


@dataclass(frozen=True)
class GraphCredentials:
    """App registration used for the client credentials grant."""

    tenant_id: str
    client_id: str
    client_secret: str = field(repr=False)
    graph_base_url: str = DEFAULT_GRAPH_BASE_URL
    login_url: str = DEFAULT_LOGIN_URL

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> GraphCredentials:
        env = os.environ if environ is None else environ

        def _required(name: str) -> str:
            value = (env.get(name) or "").strip()
            if not value:
                raise ConfigurationError(f"{name} must be set")
            return value

        return cls(
            tenant_id=_required(ENV_TENANT_ID),
            client_id=_required(ENV_CLIENT_ID),
            client_secret=_required(ENV_CLIENT_SECRET),
            graph_base_url=(env.get(ENV_GRAPH_BASE_URL) or DEFAULT_GRAPH_BASE_URL).rstrip("/"),
            login_url=(env.get(ENV_LOGIN_URL) or DEFAULT_LOGIN_URL).rstrip("/"),
        )

    @property
    def token_url(self) -> str:
        return f"{self.login_url}/{self.tenant_id}/oauth2/v2.0/token"

    @property
    def scope(self) -> str:
        root = self.graph_base_url.rsplit("/", 1)[0]
        return f"{root}/.default"
