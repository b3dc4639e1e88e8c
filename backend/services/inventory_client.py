"""
HTTP client for the inventory API, used by the reconciliation view.

Wraps the four endpoints the view needs (status, ipcheck GET/POST/DELETE)
plus the site endpoints, and turns error responses into
InventoryClientError carrying the server's ``{error, details}`` payload.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from config import settings
from schemas import DeviceIndexEntry, ProbeResult, SiteGroup

logger = logging.getLogger(__name__)


class InventoryClientError(Exception):
    """A request to the inventory API failed."""

    def __init__(self, status_code: Optional[int], error: str, details: Optional[str] = None):
        message = error if not details else f"{error}. Details: {details}"
        super().__init__(message)
        self.status_code = status_code
        self.error = error
        self.details = details


class InventoryClient:
    """
    Async client for the inventory API.

    Pass an existing ``httpx.AsyncClient`` (tests use one bound to the ASGI
    app) or let the client create its own from settings.
    """

    def __init__(
        self,
        http: Optional[httpx.AsyncClient] = None,
        base_url: str = settings.INVENTORY_API_URL,
        timeout: float = settings.INVENTORY_API_TIMEOUT_SECONDS,
    ):
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "InventoryClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.RequestError as e:
            logger.error(f"HTTP request error for {method} {url}: {e}")
            raise InventoryClientError(None, "Inventory API unreachable", str(e)) from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.is_error:
            error = "Unknown error"
            details = None
            if isinstance(payload, dict):
                error = payload.get("error") or payload.get("message") or error
                details = payload.get("details")
            logger.error(f"{method} {url} returned {response.status_code}: {error}")
            raise InventoryClientError(response.status_code, error, details)

        return payload

    # ── Sweeps ────────────────────────────────────────────────────────

    async def fetch_status(self, ip_range: str) -> List[ProbeResult]:
        payload = await self._request("GET", "/api/status", params={"ipRange": ip_range})
        return [ProbeResult.model_validate(item) for item in payload]

    # ── Device records ────────────────────────────────────────────────

    async def fetch_devices(self) -> List[DeviceIndexEntry]:
        payload = await self._request("GET", "/api/ipcheck")
        return [DeviceIndexEntry.model_validate(item) for item in payload]

    async def update_ip(self, ip: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Send a partial device-record update.  Only the given fields are written."""
        body = {"ip": ip, **changes}
        logger.debug(f"Sending device update for {ip}: {sorted(changes)}")
        return await self._request("POST", "/api/ipcheck", json=body)

    async def delete_ip(self, ip: str) -> Dict[str, Any]:
        return await self._request("DELETE", "/api/ipcheck", params={"ip": ip})

    # ── Sites ─────────────────────────────────────────────────────────

    async def fetch_site_groups(self) -> List[SiteGroup]:
        """Sites grouped by prefix with their assigned IPs, for the site picker."""
        payload = await self._request("GET", "/api/site/groups")
        return [SiteGroup.model_validate(item) for item in payload]
