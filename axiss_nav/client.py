# axiss_nav/client.py

import logging
from typing import Any, Dict, Optional

import httpx

from axiss_nav.config import BASE_URL
from axiss_nav.scroll import InfiniteFeed, Loader, PageResult

logger = logging.getLogger("axiss_nav.client")


class NavClient:
    """Thin async client for the link API, authenticated with an API key."""

    def __init__(self, api_key: str, base_url: str = BASE_URL, page_size: int = 20,
                 client: Optional[httpx.AsyncClient] = None, timeout: float = 10.0):
        self.page_size = page_size
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._headers = {"X-API-Key": api_key}

    async def __aenter__(self) -> "NavClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        r = await self._client.get(path, params=params, headers=self._headers)
        r.raise_for_status()
        return r.json()

    async def fetch_page(self, page: int, search: str = "") -> PageResult:
        data = await self._get("/api/links/page", {
            "page": page,
            "page_size": self.page_size,
            "search": search,
        })
        logger.debug("page %d (%r): %d item(s), has_more=%s", page, search, len(data["data"]), data["hasMore"])
        return PageResult(data=data["data"], has_more=bool(data["hasMore"]), total=data.get("total"))

    def page_loader(self) -> Loader:
        return self.fetch_page

    async def open_feed(self, search: str = "") -> InfiniteFeed:
        """Fetch page 1 and hand back a feed primed with it."""
        first = await self.fetch_page(1, search)
        return InfiniteFeed(self.page_loader(), initial_items=first.data,
                            total_count=first.total or len(first.data), search=search)

    async def record_click(self, link_id: int) -> int:
        r = await self._client.post("/api/links/click", json={"linkId": link_id}, headers=self._headers)
        r.raise_for_status()
        return r.json()["click_count"]
