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
"""Microsoft Graph device source and delete collaborator."""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any, Callable

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from device_cleanup.config import DEFAULT_TIMEOUT_SECONDS, GraphCredentials
from device_cleanup.errors import (
    AuthorizationError,
    ConnectivityError,
    DeleteError,
    DeviceSourceError,
)
from device_cleanup.models import DeviceRecord, TrustType
from device_cleanup.normalize import parse_optional_timestamp

_LOGGER = logging.getLogger(__name__)

PAGE_SIZE = 999
DEVICE_SELECT_FIELDS = (
    "id",
    "deviceId",
    "displayName",
    "trustType",
    "accountEnabled",
    "registrationDateTime",
    "approximateLastSignInDateTime",
    "operatingSystem",
    "operatingSystemVersion",
)
_TOKEN_REFRESH_MARGIN_SECONDS = 300
_AUTH_STATUSES = {401, 403}


class GraphSession:
    """Authenticated handle shared by the device source and the deleter."""

    def __init__(
        self,
        credentials: GraphCredentials,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: Any | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._credentials = credentials
        self._timeout = timeout
        self._session = session if session is not None else _build_http_session()
        self._clock = clock
        self._access_token: str | None = None
        self._expires_at = 0.0

    @property
    def base_url(self) -> str:
        return self._credentials.graph_base_url

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """Send an authenticated request; transport failures raise ConnectivityError."""

        headers = dict(kwargs.pop("headers", None) or {})
        headers["Authorization"] = f"Bearer {self._token()}"
        headers.setdefault("Accept", "application/json")
        try:
            return self._session.request(
                method, url, headers=headers, timeout=self._timeout, **kwargs
            )
        except requests.RequestException as exc:
            raise ConnectivityError(f"{method} {url} failed: {exc}") from exc

    def _token(self) -> str:
        if self._access_token is None or self._clock() >= self._expires_at:
            self._access_token = self._acquire_token()
        return self._access_token

    def _acquire_token(self) -> str:
        """Run the OAuth2 client credentials grant."""

        _LOGGER.debug("Requesting Graph access token for tenant %s", self._credentials.tenant_id)
        data = {
            "client_id": self._credentials.client_id,
            "client_secret": self._credentials.client_secret,
            "scope": self._credentials.scope,
            "grant_type": "client_credentials",
        }
        try:
            response = self._session.request(
                "POST", self._credentials.token_url, data=data, timeout=self._timeout
            )
        except requests.RequestException as exc:
            raise ConnectivityError(f"token request failed: {exc}") from exc
        if response.status_code in {400, 401, 403}:
            raise AuthorizationError(f"token request rejected: {_error_message(response)}")
        if not 200 <= response.status_code < 300:
            raise ConnectivityError(f"token request failed: {_error_message(response)}")
        payload = _json_body(response, "token response")
        token = payload.get("access_token")
        if not token:
            raise AuthorizationError("token response did not include an access_token")
        expires_in = int(payload.get("expires_in", 3600))
        self._expires_at = self._clock() + max(expires_in - _TOKEN_REFRESH_MARGIN_SECONDS, 0)
        _LOGGER.info("Obtained Graph access token (expires in %s seconds)", expires_in)
        return token


class GraphDeviceSource:
    """Fetch and delete directory devices through Microsoft Graph."""

    def __init__(self, session: GraphSession) -> None:
        self._session = session

    def fetch_all_devices(self) -> list[DeviceRecord]:
        """Return every device, following ``@odata.nextLink`` pages."""

        devices: list[DeviceRecord] = []
        url: str | None = devices_url(self._session.base_url)
        page = 0
        while url:
            page += 1
            response = self._session.request("GET", url)
            _raise_for_source(response)
            body = _json_body(response, "device page")
            rows = body.get("value", [])
            try:
                devices.extend(device_from_graph(row) for row in rows)
            except ValueError as exc:
                raise ConnectivityError(f"malformed device in page {page}: {exc}") from exc
            _LOGGER.debug("Fetched page %s (%s devices)", page, len(rows))
            url = body.get("@odata.nextLink")
        _LOGGER.info("Fetched %s devices", len(devices))
        return devices

    def delete_device(self, identifier: str, dry_run: bool = False) -> None:
        """Delete one device; any failure raises DeleteError."""

        if dry_run:
            _LOGGER.info("Dry run: skipping DELETE for device %s", identifier)
            return
        url = f"{self._session.base_url}/devices/{identifier}"
        try:
            response = self._session.request("DELETE", url)
        except DeviceSourceError as exc:
            raise DeleteError(str(exc)) from exc
        if response.status_code not in {200, 204}:
            raise DeleteError(_error_message(response))


def devices_url(base_url: str) -> str:
    """First page URL of the device listing."""

    return f"{base_url}/devices?$select={','.join(DEVICE_SELECT_FIELDS)}&$top={PAGE_SIZE}"


def device_from_graph(payload: dict[str, Any]) -> DeviceRecord:
    """Map a Graph device object to a DeviceRecord.

    Display names are kept verbatim for exact-match grouping. A timestamp that
    is present but unparseable raises ``ValueError``.
    """

    identifier = (payload.get("id") or "").strip()
    return DeviceRecord(
        identifier=identifier,
        display_name=payload.get("displayName") or "",
        trust_type=TrustType.from_graph(payload.get("trustType")),
        enabled=bool(payload.get("accountEnabled")),
        registered_at=_timestamp(payload, "registrationDateTime", identifier),
        created_at=_timestamp(payload, "createdDateTime", identifier),
        last_activity_at=_timestamp(payload, "approximateLastSignInDateTime", identifier),
        device_id=(payload.get("deviceId") or "").strip(),
        operating_system=(payload.get("operatingSystem") or "").strip(),
        operating_system_version=(payload.get("operatingSystemVersion") or "").strip(),
    )


def _timestamp(payload: dict[str, Any], key: str, identifier: str) -> datetime | None:
    try:
        return parse_optional_timestamp(payload.get(key))
    except ValueError as exc:
        raise ValueError(f"device {identifier or '<missing id>'} has invalid {key}: {exc}") from exc


def _build_http_session() -> requests.Session:
    """Create a requests session that retries throttled reads."""

    session = requests.Session()
    retry_strategy = Retry(
        total=3,
        connect=0,
        read=0,
        status=3,
        status_forcelist=[429, 503, 504],
        allowed_methods=["GET"],
        backoff_factor=1,
        respect_retry_after_header=True,
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def _raise_for_source(response: requests.Response) -> None:
    """Map non-success responses to source errors."""

    if response.status_code in _AUTH_STATUSES:
        raise AuthorizationError(_error_message(response))
    if not 200 <= response.status_code < 300:
        raise ConnectivityError(_error_message(response))


def _error_message(response: requests.Response) -> str:
    """Extract the Graph error message, falling back to the HTTP reason."""

    detail = ""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            detail = error.get("message") or error.get("code") or ""
        elif isinstance(error, str):
            detail = body.get("error_description") or error
    if not detail:
        detail = (getattr(response, "text", "") or getattr(response, "reason", "") or "").strip()
    return f"HTTP {response.status_code}: {detail}" if detail else f"HTTP {response.status_code}"


def _json_body(response: requests.Response, what: str) -> dict[str, Any]:
    """Decode a JSON object body; anything else is a source failure."""

    try:
        body = response.json()
    except ValueError as exc:
        raise ConnectivityError(
            f"{what} was not valid JSON (HTTP {response.status_code})"
        ) from exc
    if not isinstance(body, dict):
        raise ConnectivityError(f"{what} was not a JSON object (HTTP {response.status_code})")
    return body
