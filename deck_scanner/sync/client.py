"""Remote pricing/sync service contract and its aiohttp client."""

import asyncio
from typing import Any, Dict, Optional, Protocol

import aiohttp

from ..core.constants import BACKOFF_S
from ..core.types import PricingRecord, parse_timestamp, utc_now
from ..utils.error_handler import ErrorContext, SyncDispatchFailure, validate_required_fields
from ..utils.validation import validate_numeric_range

RETRYABLE_STATUS = (429, 500, 502, 503, 504)


class SyncClient(Protocol):
    async def refresh_pricing(self, catalog_id: str) -> PricingRecord:
        """Fetch the current pricing record for a deck."""
        ...

    async def upload_history(self, scan_record_id: str, payload: Dict[str, Any]) -> bool:
        """Store a scan record remotely; True on success."""
        ...


def parse_remote_pricing(catalog_id: str, data: Dict[str, Any]) -> PricingRecord:
    context = ErrorContext(operation="refresh pricing", module=__name__, function="parse_remote_pricing")
    validate_required_fields(data, ["buyPrice", "sellPrice"], context)
    metadata = data.get("metadata") or {}
    last_updated = metadata.get("lastUpdated") or data.get("lastUpdated")
    return PricingRecord(
        id=str(data.get("id") or f"pricing_{catalog_id}"),
        catalog_id=catalog_id,
        buy_price=validate_numeric_range(data["buyPrice"], min_value=0, field_name="buyPrice"),
        sell_price=validate_numeric_range(data["sellPrice"], min_value=0, field_name="sellPrice"),
        last_updated=parse_timestamp(last_updated) if last_updated else utc_now(),
        confidence_score=float(metadata.get("confidenceScore", data.get("confidenceScore", 0.0))),
        data_source=metadata.get("dataSource") or data.get("dataSource") or "remote",
    )


class HttpSyncClient:
    """Client for the deck pricing/sync API."""

    def __init__(self, base_url: str, api_key: Optional[str] = None, timeout_s: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = aiohttp.ClientTimeout(total=timeout_s)
        self.session: Optional[aiohttp.ClientSession] = None

    async def _ensure_session(self) -> None:
        """Ensure aiohttp session exists."""
        if self.session is None or self.session.closed:
            headers = {"X-Api-Key": self.api_key} if self.api_key else {}
            self.session = aiohttp.ClientSession(headers=headers, timeout=self.timeout)

    async def _request_with_backoff(
        self, method: str, url: str, json_body: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Make one logical request, backing off on rate limits and 5xx."""
        await self._ensure_session()

        for attempt, delay in enumerate([0.0, *BACKOFF_S]):
            if delay > 0:
                await asyncio.sleep(delay)

            try:
                async with self.session.request(method, url, json=json_body) as response:
                    if response.status in RETRYABLE_STATUS and attempt < len(BACKOFF_S):
                        continue
                    response.raise_for_status()
                    if response.status == 204:
                        return {}
                    return await response.json()
            except aiohttp.ClientResponseError as e:
                if e.status in RETRYABLE_STATUS and attempt < len(BACKOFF_S):
                    continue
                raise SyncDispatchFailure(
                    f"{method} {url} failed with HTTP {e.status}", details={"status": e.status}
                ) from e
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise SyncDispatchFailure(f"{method} {url} failed", details={"error": str(e)}) from e

        raise SyncDispatchFailure("All retry attempts failed", details={"url": url})

    async def refresh_pricing(self, catalog_id: str) -> PricingRecord:
        data = await self._request_with_backoff("GET", f"{self.base_url}/pricing/{catalog_id}")
        return parse_remote_pricing(catalog_id, data.get("data", data))

    async def upload_history(self, scan_record_id: str, payload: Dict[str, Any]) -> bool:
        data = await self._request_with_backoff(
            "PUT", f"{self.base_url}/history/{scan_record_id}", json_body=payload
        )
        return bool(data.get("ok", True))

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self.session and not self.session.closed:
            await self.session.close()
            self.session = None

    async def __aenter__(self) -> "HttpSyncClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
