"""Synchronous JSON and file fetching shared by the remote collaborators."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 20.0
USER_AGENT = "folio-site (https://pypi.org/project/folio-site/)"


class FetchError(RuntimeError):
    """Raised when a remote service request fails or returns an unusable body."""


def create_client(*, timeout: float = DEFAULT_TIMEOUT) -> httpx.Client:
    return httpx.Client(
        timeout=timeout,
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
    )


def get_json(
    client: httpx.Client,
    url: str,
    *,
    params: Mapping[str, Any] | None = None,
    headers: Mapping[str, str] | None = None,
) -> Any:
    """GET ``url`` once and decode its JSON body."""
    response = _get(client, url, params=params, headers=headers)
    try:
        return response.json()
    except ValueError as exc:
        raise FetchError(f"Response from '{url}' is not valid JSON: {exc}") from exc


def get_bytes(
    client: httpx.Client,
    url: str,
    *,
    headers: Mapping[str, str] | None = None,
) -> bytes:
    return _get(client, url, headers=headers).content


def _get(
    client: httpx.Client,
    url: str,
    *,
    params: Mapping[str, Any] | None = None,
    headers: Mapping[str, str] | None = None,
) -> httpx.Response:
    logger.debug("GET %s", url)
    try:
        response = client.get(url, params=params, headers=headers)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise FetchError(f"Request to '{url}' failed: {exc}") from exc
    return response
