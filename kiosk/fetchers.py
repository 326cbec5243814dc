import logging

import httpx
from asgiref.sync import sync_to_async

logger = logging.getLogger(__name__)

FETCH_FAILED_MESSAGE = 'Failed to fetch data'


class SnapshotUnavailable(Exception):
    """The aggregation endpoint could not deliver a snapshot."""


class HttpSnapshotFetcher:
    """Fetches the snapshot from the kiosk-data endpoint over HTTP."""

    def __init__(self, url: str, client: httpx.AsyncClient | None = None, timeout: float = 10.0):
        self.url = url
        self.timeout = timeout
        self._client = client

    async def _get(self) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(self.url)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.get(self.url)

    async def __call__(self) -> dict:
        try:
            response = await self._get()
        except httpx.HTTPError as e:
            logger.warning(f"Request to {self.url} failed: {e!r}")
            raise SnapshotUnavailable(FETCH_FAILED_MESSAGE) from e
        if not response.is_success:
            logger.warning(f"{self.url} answered {response.status_code}")
            raise SnapshotUnavailable(FETCH_FAILED_MESSAGE)
        try:
            payload = response.json()
        except ValueError as e:
            raise SnapshotUnavailable(FETCH_FAILED_MESSAGE) from e
        if not isinstance(payload, dict):
            raise SnapshotUnavailable(FETCH_FAILED_MESSAGE)
        return payload


class LocalSnapshotFetcher:
    """Reads the snapshot straight from a gateway inside the same Django process."""

    def __init__(self, gateway=None):
        self._gateway = gateway

    async def __call__(self) -> dict:
        gateway = self._gateway
        if gateway is None:
            from navigation.gateway import get_gateway
            gateway = get_gateway()
        try:
            return await sync_to_async(gateway.snapshot)()
        except Exception as e:
            logger.exception('Error building local snapshot')
            raise SnapshotUnavailable(FETCH_FAILED_MESSAGE) from e
