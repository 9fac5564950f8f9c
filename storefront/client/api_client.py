import logging
from typing import Any
from urllib.parse import quote

import httpx

from storefront.core.errors import NotFound, StorefrontError, StoreUnavailable, Unauthorized

logger = logging.getLogger(__name__)

Params = list[tuple[str, str]]


class CatalogApiClient:
    """Thin async client for the catalog endpoints, mapping HTTP failures onto the error taxonomy."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        tenant: str | None = None,
        api_prefix: str = "/api",
    ):
        self.client = client
        self.api_prefix = api_prefix.rstrip("/")
        self.headers = {"X-Tenant-Id": tenant} if tenant else {}

    async def _get(self, path: str, params: Params | None = None) -> Any:
        try:
            response = await self.client.get(f"{self.api_prefix}{path}", params=params, headers=self.headers)
        except httpx.TimeoutException as e:
            raise StoreUnavailable("Request timed out") from e
        except httpx.HTTPError as e:
            logger.warning(f"Catalog request to {path} failed: {e}")
            raise StoreUnavailable("Catalog service is unreachable") from e

        if response.status_code == 404:
            raise NotFound(_detail(response, "Not found"))
        if response.status_code == 401:
            raise Unauthorized(_detail(response, "Not authenticated"))
        if response.status_code >= 500:
            raise StoreUnavailable(_detail(response, "Catalog service is unavailable"))
        if response.status_code >= 400:
            raise StorefrontError(_detail(response, f"Request failed with {response.status_code}"))
        return response.json()

    async def list_products(self, params: Params) -> dict[str, Any]:
        return await self._get("/products", params)

    async def get_product(self, code: str) -> dict[str, Any]:
        return await self._get(f"/products/{quote(code, safe='')}")

    async def list_categories(self, with_counts: bool = False) -> dict[str, Any]:
        return await self._get("/categories", [("with_counts", "true")] if with_counts else None)

    async def facets(self, params: Params) -> dict[str, Any]:
        return await self._get("/categories/facets", params)


def _detail(response: httpx.Response, default: str) -> str:
    try:
        return response.json().get("detail", default)
    except ValueError:
        return default
