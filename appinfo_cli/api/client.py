"""
Async client for the store `appdetails` JSON API with a global concurrency
gate and latency-adaptive pacing.
"""

import asyncio
import json
import logging
import time
from typing import Any
from urllib.parse import quote

from pydantic import ValidationError

from appinfo_cli.exceptions import (
    FetchError,
    FetchTimeoutError,
    HTTPStatusError,
    NotFoundOrUnsuccessfulError,
    ParseError,
    TransportError,
)
from appinfo_cli.models.config import MetadataConfig, Priority
from appinfo_cli.models.metadata import AppDetails, FetchResult

from .gate import ConcurrencyGate
from .rate_limiter import AdaptivePacer, ResponseTimeTracker
from .transport import HttpTransport

log = logging.getLogger(__name__)


class StoreAPIClient:
    """
    Fetches the details of a single application key.

    Every call holds one gate permit for its whole duration, waits the
    pacer's delay, and is bounded by an outer timeout layered over the
    transport's own. Only successful calls feed the latency tracker.
    """

    def __init__(
        self,
        transport: HttpTransport,
        config: MetadataConfig,
        gate: ConcurrencyGate | None = None,
        tracker: ResponseTimeTracker | None = None,
    ):
        """
        Args:
            transport: The HTTP capability used for the GET requests.
            config: Timeouts, pacing constants and the endpoint template.
            gate: Shared concurrency gate. A new one sized from the config is
                created when omitted.
            tracker: Shared response time tracker, likewise created if omitted.
        """
        self._transport = transport
        self._config = config
        self._gate = gate or ConcurrencyGate(config.max_concurrent_requests)
        self._tracker = tracker or ResponseTimeTracker(
            max_samples=config.response_window,
            default_response_time=config.default_response_time_ms / 1000,
        )
        self._pacer = AdaptivePacer(self._tracker, config)

    @property
    def gate(self) -> ConcurrencyGate:
        return self._gate

    @property
    def tracker(self) -> ResponseTimeTracker:
        return self._tracker

    @property
    def pacer(self) -> AdaptivePacer:
        return self._pacer

    def details_url(self, key: str) -> str:
        return self._config.details_url_template.format(key=quote(key, safe=""))

    async def close(self) -> None:
        await self._transport.close()

    async def fetch_one(
        self, key: str, priority: Priority = Priority.NORMAL
    ) -> AppDetails:
        """
        Fetches and validates the details for ``key``.

        Raises:
            TransportError: The request could not be delivered or got a
                non-success status.
            FetchTimeoutError: The transport or outer timeout elapsed.
            ParseError: The body is not the expected JSON envelope.
            NotFoundOrUnsuccessfulError: The envelope has no usable entry for
                the key.
        """
        async with self._gate.permit():
            await self._pacer.wait(priority)
            log.debug(f"Fetching store details for {key} (priority: {priority.value})")

            start_time = time.monotonic()
            try:
                response = await asyncio.wait_for(
                    self._transport.get(self.details_url(key)),
                    timeout=self._config.call_timeout_s,
                )
            except asyncio.TimeoutError as e:
                raise FetchTimeoutError(
                    key, f"Timeout fetching store details for {key}"
                ) from e
            except OSError as e:
                raise TransportError(
                    key, f"HTTP error fetching store details for {key}: {e}"
                ) from e

            if not response.is_success:
                raise HTTPStatusError(key, response.status)

            record = self._parse_envelope(key, response.body)

            duration = time.monotonic() - start_time
            await self._tracker.record(duration)
            log.debug(
                f"Fetched details for {key}: {record.name} ({duration * 1000:.0f}ms)"
            )
            return record

    async def fetch_result(
        self, key: str, priority: Priority = Priority.NORMAL
    ) -> FetchResult:
        """
        Like :meth:`fetch_one` but captures any failure into the result.
        Errors outside the fetch taxonomy are wrapped in a plain FetchError.
        """
        try:
            return FetchResult.success(key, await self.fetch_one(key, priority))
        except FetchError as e:
            log.debug(f"Fetch failed for {key}: {e}")
            return FetchResult.failure(key, e)
        except Exception as e:
            log.warning(f"Unexpected error fetching {key}: {e}")
            return FetchResult.failure(key, FetchError(key, f"Unexpected error: {e}"))

    @staticmethod
    def _parse_envelope(key: str, body: bytes) -> AppDetails:
        """Extracts the key's entry from the ``{key: {success, data}}`` envelope."""
        try:
            envelope: Any = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ParseError(key, f"Failed to parse store response: {e}") from e

        if not isinstance(envelope, dict):
            raise ParseError(key, "Store response is not a JSON object.")

        entry = envelope.get(key)
        if entry is None:
            raise NotFoundOrUnsuccessfulError(
                key, f"Store response has no entry for {key}"
            )
        if not isinstance(entry, dict):
            raise ParseError(key, f"Store entry for {key} is not a JSON object.")

        data = entry.get("data")
        if entry.get("success") is not True or not data:
            raise NotFoundOrUnsuccessfulError(
                key, f"Store returned success=false or no data for {key}"
            )

        try:
            return AppDetails.model_validate(data)
        except ValidationError as e:
            raise ParseError(key, f"Invalid details payload for {key}: {e}") from e
