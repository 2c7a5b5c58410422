"""Lightweight JSON-RPC client for Ethereum-compatible nodes.

This module provides:
- `RPC`: an async client with sane timeouts/connection limits
- Helper utilities to format block tags and call data

Transport failures and JSON-RPC `error` members surface as
`UpstreamUnavailable`; callers never see raw httpx exceptions.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any

import httpx

from rainpm.core.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


def to_hex_block(x: int | str) -> str:
    """Return a 0x-prefixed hex block number, or pass a block tag through."""
    return hex(x) if isinstance(x, int) else x


def make_http_client(*, timeout_s: int = 20, max_connections: int = 64) -> httpx.AsyncClient:
    """Build the shared async HTTP client used by every rainpm client."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(
            connect=timeout_s,
            read=timeout_s,
            write=timeout_s,
            pool=max(30, timeout_s * 3),
        ),
        limits=httpx.Limits(
            max_connections=max_connections,
            max_keepalive_connections=max(1, max_connections // 2),
        ),
        http2=True,
    )


class RPC:
    """Minimal async RPC client.

    Parameters
    ----------
    url : str
        RPC endpoint URL.
    timeout_s : int
        Per-operation timeout in seconds (connect/read/write).
    max_connections : int
        Maximum concurrent connections to keep in the pool.
    client : httpx.AsyncClient | None
        Pre-built client to use instead of creating one (not closed by `aclose`).
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_s: int = 20,
        max_connections: int = 64,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self._owns_client = client is None
        self.client = client or make_http_client(timeout_s=timeout_s, max_connections=max_connections)
        self._ids = itertools.count(1)

    async def request(self, method: str, params: list[Any]) -> Any:
        """Send one JSON-RPC request and return its `result` member."""
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            r = await self.client.post(self.url, json=payload)
            r.raise_for_status()
            data = r.json()
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"RPC {method} failed: {e}") from e
        except ValueError as e:
            raise UpstreamUnavailable(f"RPC {method} returned invalid JSON") from e

        if "error" in data:
            e = data["error"]
            if isinstance(e, dict):
                raise UpstreamUnavailable(f"RPC error: {e.get('code')} {e.get('message')}")
            raise UpstreamUnavailable(f"RPC error: {e}")
        return data.get("result")

    async def latest_block(self) -> int:
        """Return the latest block number as an int."""
        return int(await self.request("eth_blockNumber", []), 16)

    async def eth_call(self, *, to: str, data: bytes, block: int | str = "latest") -> bytes:
        """Execute a read-only call and return the raw return data."""
        logger.debug("eth_call to=%s calldata=%d bytes", to, len(data))
        result = await self.request("eth_call", [{"to": to, "data": "0x" + data.hex()}, to_hex_block(block)])
        if not isinstance(result, str):
            raise UpstreamUnavailable(f"RPC eth_call returned {type(result).__name__}, expected hex string")
        return bytes.fromhex(result[2:] if result.startswith("0x") else result)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._owns_client:
            await self.client.aclose()
