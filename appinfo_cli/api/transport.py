"""
HTTP transport abstraction used by the store API client, plus the aiohttp
implementation used in production.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

import aiohttp

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportResponse:
    status: int
    body: bytes

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300


class HttpTransport(Protocol):
    """
    Minimal GET capability the client needs.

    Implementations raise ``ConnectionError`` (or another ``OSError``) when the
    request cannot be delivered and ``asyncio.TimeoutError`` when their own
    timeout elapses. Non-success statuses are returned, not raised.
    """

    async def get(self, url: str) -> TransportResponse: ...

    async def close(self) -> None: ...


class AiohttpTransport:
    """Shared-session aiohttp transport with a per-request total timeout."""

    USER_AGENT = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) "
        "Gecko/20100101 Firefox/121.0"
    )

    def __init__(self, request_timeout_s: float = 10.0, pool_size: int = 10):
        """
        Args:
            request_timeout_s: Total timeout applied by aiohttp to each request.
            pool_size: Connection pool limit, normally twice the gate capacity.
        """
        self.request_timeout_s = request_timeout_s
        self.pool_size = pool_size
        self._session: aiohttp.ClientSession | None = None

    async def _initialize_session(self) -> None:
        """Ensures an active aiohttp session is available with compression enabled."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.pool_size,
                ttl_dns_cache=300,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers={
                    "User-Agent": self.USER_AGENT,
                    "Accept": "application/json",
                    "Accept-Encoding": "gzip, deflate",
                },
                timeout=aiohttp.ClientTimeout(total=self.request_timeout_s),
            )

    async def get(self, url: str) -> TransportResponse:
        await self._initialize_session()
        try:
            async with self._session.get(url, max_redirects=5) as r:
                body = await r.read()
                return TransportResponse(status=r.status, body=body)
        except asyncio.TimeoutError:
            # ServerTimeoutError is also a ClientError; keep it a timeout
            raise
        except aiohttp.ClientError as e:
            raise ConnectionError(f"HTTP request to {url} failed: {e}") from e

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "AiohttpTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
