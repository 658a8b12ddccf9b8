"""USDA FoodData Central API client."""

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from calorie_optimizer.domain.errors import UpstreamError

_logger = logging.getLogger(__name__)


class FdcClient(Protocol):
    """Interface for FoodData Central API interactions."""

    async def search_foods(
        self, query: str, page_size: int = 10, data_type: str | None = None
    ) -> dict[str, object]:
        """Search foods by query and return raw API data."""

    async def get_food(self, fdc_id: int) -> dict[str, object]:
        """Fetch a food by FDC id and return raw API data."""


@dataclass
class HttpxFdcClient(FdcClient):
    """HTTPX-backed FDC client."""

    api_key: str
    base_url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 15

    @classmethod
    def create(cls, api_key: str, base_url: str) -> "HttpxFdcClient":
        """Create an FDC client with a managed httpx session."""
        return cls(api_key=api_key, base_url=base_url, http_client=httpx.AsyncClient())

    async def search_foods(
        self, query: str, page_size: int = 10, data_type: str | None = None
    ) -> dict[str, object]:
        """Search foods by query, optionally restricted to one data type."""
        url = f"{self.base_url}/foods/search"
        body: dict[str, object] = {"query": query, "pageSize": page_size}
        if data_type:
            body["dataType"] = [data_type]
        response = await self.http_client.post(
            url,
            params={"api_key": self.api_key},
            json=body,
            timeout=self.timeout_seconds,
        )
        if not response.is_success:
            _logger.error(
                "FDC search failed: query=%s status=%s data_type=%s",
                query,
                response.status_code,
                data_type,
            )
            raise UpstreamError(
                response.status_code, response.text, context="FDC search"
            )
        return response.json()

    async def get_food(self, fdc_id: int) -> dict[str, object]:
        """Fetch a food by FDC id."""
        url = f"{self.base_url}/food/{fdc_id}"
        response = await self.http_client.get(
            url,
            params={"api_key": self.api_key},
            timeout=self.timeout_seconds,
        )
        if not response.is_success:
            _logger.error(
                "FDC food lookup failed: fdc_id=%s status=%s",
                fdc_id,
                response.status_code,
            )
            raise UpstreamError(
                response.status_code, response.text, context="FDC food lookup"
            )
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
