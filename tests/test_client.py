"""Tests for the async API client driving an InfiniteFeed."""
import asyncio
import json

import httpx
import pytest

from axiss_nav.client import NavClient

LINKS = [{"id": i, "title": f"L{i}"} for i in range(1, 6)]


def api_handler(requests):
    def handler(request):
        requests.append(request)
        assert request.headers["x-api-key"] == "key-1"
        if request.url.path == "/api/links/page":
            page = int(request.url.params["page"])
            size = int(request.url.params["page_size"])
            search = request.url.params.get("search", "")
            items = [l for l in LINKS if search in l["title"]]
            chunk = items[(page - 1) * size:page * size]
            return httpx.Response(200, json={
                "data": chunk, "page": page, "total": len(items), "hasMore": page * size < len(items),
            })
        if request.url.path == "/api/links/click":
            body = json.loads(request.content)
            return httpx.Response(200, json={"success": True, "click_count": body["linkId"] * 10})
        return httpx.Response(404, json={"detail": "not found"})
    return handler


def make_client(requests, page_size=2):
    transport = httpx.MockTransport(api_handler(requests))
    http = httpx.AsyncClient(transport=transport, base_url="http://nav.test")
    return NavClient("key-1", page_size=page_size, client=http), http


def test_fetch_page():
    requests = []

    async def run():
        nav, http = make_client(requests)
        async with http:
            return await nav.fetch_page(2)

    result = asyncio.run(run())
    assert [l["id"] for l in result.data] == [3, 4]
    assert result.has_more
    assert result.total == 5
    assert requests[0].url.params["page_size"] == "2"


def test_feed_pages_until_exhausted():
    requests = []

    async def run():
        nav, http = make_client(requests)
        async with http:
            feed = await nav.open_feed()
            assert [l["id"] for l in feed.items] == [1, 2]
            while await feed.load_more():
                pass
            return feed

    feed = asyncio.run(run())
    assert [l["id"] for l in feed.items] == [1, 2, 3, 4, 5]
    assert not feed.has_more
    assert [int(r.url.params["page"]) for r in requests] == [1, 2, 3]


def test_feed_search():
    requests = []

    async def run():
        nav, http = make_client(requests, page_size=10)
        async with http:
            feed = await nav.open_feed()
            await feed.set_search("L3")
            return feed

    feed = asyncio.run(run())
    assert [l["id"] for l in feed.items] == [3]
    assert not feed.has_more
    assert requests[-1].url.params["search"] == "L3"


def test_record_click():
    requests = []

    async def run():
        nav, http = make_client(requests)
        async with http:
            return await nav.record_click(4)

    assert asyncio.run(run()) == 40


def test_http_errors_raise():
    async def run():
        transport = httpx.MockTransport(lambda request: httpx.Response(401, json={"detail": "nope"}))
        async with httpx.AsyncClient(transport=transport, base_url="http://nav.test") as http:
            await NavClient("bad", client=http).fetch_page(1)

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(run())


def test_owned_client_closed_on_exit():
    async def run():
        async with NavClient("k", base_url="http://nav.test") as nav:
            inner = nav._client
        return inner.is_closed

    assert asyncio.run(run())
