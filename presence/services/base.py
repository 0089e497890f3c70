"""Service adapter contract and shared HTTP handling."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from presence.errors import AuthRejected, NetworkFailure, UnexpectedResponse
from presence.models import ServiceIntent, ServiceName, Succeeded

LOGGER = logging.getLogger(__name__)

_MAX_RETRIES = 2
_RETRY_BACKOFF_SECONDS = [2.0, 5.0]


class ServiceAdapter(ABC):
    """Applies service intents to one backend.

    Adapters raise ``AdapterError`` subclasses on failure and never touch
    other services.
    """

    service: ServiceName
    base_url: str

    def __init__(
        self,
        token: str,
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token = token
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    @abstractmethod
    async def apply(self, intent: ServiceIntent) -> Succeeded:
        """Apply one intent and describe what changed."""

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self._timeout_seconds),
            transport=self._transport,
            headers=self._headers(),
        )

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._token}"}

    def _unsupported(self, intent: ServiceIntent) -> UnexpectedResponse:
        return UnexpectedResponse(self.service.label, f"cannot apply {type(intent).__name__}")

    async def _request_json(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> Any:
        """Send a request and return its JSON body.

        Rate-limited responses (429) are retried with a short backoff. Transport
        problems become ``NetworkFailure``, 401/403 become ``AuthRejected`` and
        anything else unexpected becomes ``UnexpectedResponse``.
        """
        label = self.service.label
        for attempt in range(_MAX_RETRIES + 1):
            try:
                response = await client.request(method, url, **kwargs)
            except httpx.HTTPError as exc:
                raise NetworkFailure(label, f"{method} {url}: {str(exc) or type(exc).__name__}") from exc
            if response.status_code == 429 and attempt < _MAX_RETRIES:
                wait = _retry_after(response, _RETRY_BACKOFF_SECONDS[attempt])
                LOGGER.warning(
                    "%s rate limited (429), retrying in %.0fs (attempt %d/%d)",
                    label,
                    wait,
                    attempt + 1,
                    _MAX_RETRIES,
                )
                await asyncio.sleep(wait)
                continue
            break

        if response.status_code in (401, 403):
            raise AuthRejected(label, f"{method} {url}: HTTP {response.status_code}, check the token")
        if response.status_code >= 400:
            raise UnexpectedResponse(label, f"{method} {url}: HTTP {response.status_code}")
        try:
            return response.json()
        except ValueError as exc:
            raise UnexpectedResponse(label, f"{method} {url}: response is not JSON") from exc


def _retry_after(response: httpx.Response, default: float) -> float:
    raw = response.headers.get("Retry-After", "")
    try:
        return max(float(raw), 0.0)
    except ValueError:
        return default
