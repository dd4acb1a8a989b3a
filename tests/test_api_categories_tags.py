"""Tests for the category and tag endpoints."""
from unittest.mock import patch


class TestCategories:

    def test_create_and_list(self, client, make_link):
        r = client.post("/api/categories", json={"name": " 工具 ", "icon": "🔨", "order": 2})
        assert r.status_code == 201
        tools = r.json()["category"]
        assert tools["name"] == "工具"
        client.post("/api/categories", json={"name": "阅读", "order": 1})
        make_link("https://a.com", "A", categoryId=tools["id"])

        listed = client.get("/api/categories").json()
        assert [(c["name"], c["link_count"]) for c in listed] == [("阅读", 0), ("工具", 1)]

    def test_validation_and_duplicates(self, client, user):
        assert client.post("/api/categories", json={"name": " "}).status_code == 400
        assert client.post("/api/categories", json={"name": "工具"}).status_code == 201
        assert client.post("/api/categories", json={"name": "工具"}).status_code == 409

    def test_get_with_links(self, client, make_link):
        cat = client.post("/api/categories", json={"name": "工具"}).json()["category"]
        make_link("https://a.com", "A", categoryId=cat["id"])
        make_link("https://b.com", "B")
        body = client.get(f"/api/categories/{cat['id']}").json()
        assert body["link_count"] == 1
        assert [l["title"] for l in body["links"]] == ["A"]

    def test_update(self, client, user):
        a = client.post("/api/categories", json={"name": "A"}).json()["category"]
        client.post("/api/categories", json={"name": "B"})
        assert client.put(f"/api/categories/{a['id']}", json={"name": "B"}).status_code == 409
        r = client.put(f"/api/categories/{a['id']}", json={"name": "A2", "color": "#000"})
        assert r.status_code == 200
        assert r.json()["category"]["name"] == "A2"
        assert r.json()["category"]["color"] == "#000"

    def test_delete_detaches_links(self, client, make_link):
        cat = client.post("/api/categories", json={"name": "工具"}).json()["category"]
        link = make_link("https://a.com", "A", categoryId=cat["id"])
        assert client.delete(f"/api/categories/{cat['id']}").status_code == 200
        assert client.get(f"/api/categories/{cat['id']}").status_code == 404
        assert client.get(f"/api/links/{link['id']}").json()["category_id"] is None
        # name is free again once the old category is gone
        assert client.post("/api/categories", json={"name": "工具"}).status_code == 201

    def test_link_with_foreign_category(self, client, user, register_user):
        cat = client.post("/api/categories", json={"name": "Mine"}).json()["category"]
        register_user("other")
        r = client.post("/api/links", json={"url": "https://a.com", "title": "A", "categoryId": cat["id"]})
        assert r.status_code == 404


class TestTags:

    def test_counts_only_active_links(self, client, make_link):
        make_link("https://a.com", "A", tags=["开发", "前端"])
        make_link("https://b.com", "B", tags=["开发"])
        gone = make_link("https://c.com", "C", tags=["废弃"])
        client.delete(f"/api/links/{gone['id']}")

        data = client.get("/api/tags").json()["data"]
        counts = {t["name"]: t["count"] for t in data}
        assert counts == {"开发": 2, "前端": 1}
        assert {t["name"]: t["icon"] for t in data} == {"开发": "💻", "前端": "🎨"}

    def test_limit_and_suggest(self, client, make_link):
        make_link("https://a.com", "A", tags=["py1", "py2", "py3", "go"])
        assert len(client.get("/api/tags", params={"limit": 2}).json()["data"]) == 2
        names = {t["name"] for t in client.get("/api/tags", params={"suggest": "py"}).json()["data"]}
        assert names == {"py1", "py2", "py3"}

    def test_random_sample(self, client, make_link):
        make_link("https://a.com", "A", tags=["a", "b", "c"])
        with patch("axiss_nav.app.pick_random_tags", side_effect=lambda rows, limit: list(rows)[:1]) as pick:
            data = client.get("/api/tags", params={"limit": 1}).json()["data"]
        assert len(data) == 1
        assert pick.call_args.args[1] == 1

    def test_emoji_batch(self, client):
        r = client.post("/api/tags/emoji", json={"tags": ["前端", "zzz"]})
        assert r.json() == {"data": [{"name": "前端", "emoji": "🎨"}, {"name": "zzz", "emoji": "🏷️"}]}
