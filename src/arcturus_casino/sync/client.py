"""
HTTP transport for the chip balance endpoint.

The controller only depends on the BalanceEndpoint protocol; this module
provides the aiohttp implementation used against a running server. A local,
in-process implementation lives in ledger.py.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Protocol

import aiohttp

from arcturus_casino.sync.protocol import CHIPS_UPDATE_PATH, ChipUpdateRequest, EndpointReply

logger = logging.getLogger(__name__)


class BalanceTransportError(Exception):
    """The endpoint could not be reached or did not answer with JSON."""


class BalanceEndpoint(Protocol):
    async def update_chips(self, request: ChipUpdateRequest) -> EndpointReply: ...


class AiohttpBalanceEndpoint:
    """POSTs chip updates to ``<base_url>/api/chips/update``.

    Args:
        base_url: Server root, e.g. 'https://casino.example'.
        session: Shared client session (cookies carry the auth). When omitted,
            a session is created per request.
        timeout: Total request timeout in seconds.
    """

    def __init__(
        self,
        base_url: str,
        session: aiohttp.ClientSession | None = None,
        timeout: float = 10,
    ) -> None:
        self.url = base_url.rstrip('/') + CHIPS_UPDATE_PATH
        self._session = session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def update_chips(self, request: ChipUpdateRequest) -> EndpointReply:
        payload = request.to_payload()
        logger.debug("POST %s %s", self.url, payload)
        try:
            if self._session is not None:
                return await self._post(self._session, payload)
            async with aiohttp.ClientSession() as session:
                return await self._post(session, payload)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise BalanceTransportError(f"Chip update request failed: {exc}") from exc

    async def _post(self, session: aiohttp.ClientSession, payload: dict) -> EndpointReply:
        async with session.post(self.url, json=payload, timeout=self._timeout) as resp:
            try:
                body = await resp.json(content_type=None)
            except (json.JSONDecodeError, aiohttp.ContentTypeError) as exc:
                text = await resp.text()
                raise BalanceTransportError(
                    f"Chip update failed: non-JSON response (HTTP {resp.status}): {text[:256]}"
                ) from exc
            if not isinstance(body, dict):
                raise BalanceTransportError(f"Chip update failed: unexpected body {body!r}")
            return EndpointReply(
                status=resp.status,
                body=body,
                retry_after=resp.headers.get('Retry-After'),
            )
