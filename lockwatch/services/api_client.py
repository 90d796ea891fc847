"""
Dashboard REST API client.
Thin httpx wrapper; every failure surfaces as a transient FetchError.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from lockwatch.errors import FetchError, ValidationError
from lockwatch.schemas.accounts import (
    AccountStats,
    DashboardStats,
    HotAccountRecord,
    LiveFeeEstimate,
    PriorityFeeEstimate,
    parse_records,
)

logger = logging.getLogger("api_client")


class DashboardAPIClient:
    """Async client for the hot-accounts API."""

    def __init__(self, base_url: str, timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _request(self, method: str, path: str, failure: str, **kwargs) -> Any:
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise FetchError(f"{failure}: {e}", url=path)

        if not response.is_success:
            raise FetchError(failure, status_code=response.status_code, url=str(response.request.url))

        try:
            return response.json()
        except (ValueError, RecursionError):
            raise FetchError(f"{failure}: response is not JSON", status_code=response.status_code,
                             url=str(response.request.url))

    async def fetch_hot_accounts(self, limit: int = 20, window: int = 5) -> List[HotAccountRecord]:
        """GET /api/hot-accounts, ranked by contention."""
        data = await self._request("GET", "/api/hot-accounts", "Failed to fetch hot accounts",
                                   params={"limit": limit, "window": window})
        if not isinstance(data, list):
            raise FetchError("Failed to fetch hot accounts: expected a list")
        try:
            return parse_records(data)
        except (PydanticValidationError, TypeError) as e:
            raise FetchError(f"Failed to fetch hot accounts: {e}")

    async def fetch_dashboard_stats(self, window: int = 5) -> DashboardStats:
        data = await self._request("GET", "/api/stats", "Failed to fetch dashboard stats",
                                   params={"window": window})
        return self._validate(DashboardStats, data, "Failed to fetch dashboard stats")

    async def fetch_account_stats(self, pubkey: str, window: int = 24) -> AccountStats:
        """Per-account detail; ``window`` is in hours."""
        data = await self._request("GET", f"/api/accounts/{pubkey}/stats", "Failed to fetch account stats",
                                   params={"window": window})
        return self._validate(AccountStats, data, "Failed to fetch account stats")

    async def fetch_live_fee(self, pubkey: str) -> LiveFeeEstimate:
        data = await self._request("GET", f"/api/accounts/{pubkey}/fee-now", "Failed to fetch live fee")
        return self._validate(LiveFeeEstimate, data, "Failed to fetch live fee")

    async def estimate_priority_fee(self, accounts: List[str]) -> PriorityFeeEstimate:
        if not accounts:
            raise ValidationError("At least one account is required", {"accounts": accounts})
        data = await self._request("POST", "/api/priority-fees/estimate", "Failed to estimate priority fee",
                                   json={"accounts": accounts})
        return self._validate(PriorityFeeEstimate, data, "Failed to estimate priority fee")

    @staticmethod
    def _validate(model, data: Dict[str, Any], failure: str):
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            raise FetchError(f"{failure}: {e.error_count()} invalid fields")
