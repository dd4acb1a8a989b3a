"""Tests for bookmark export and import parsing."""
import json
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from axiss_nav.transfer import (
    IMPORT_DEFAULT_CATEGORY, IMPORT_DEFAULT_TAG, ImportFormatError, clean_link, export_filename,
    export_json, export_markdown, parse_import, parse_markdown, prepare_import, validate_link,
)

NOW = datetime(2025, 3, 4, 5, 6, 7, tzinfo=timezone.utc)


def fake_link(id, title, url, category=None, tags=(), description="", clicks=0):
    return SimpleNamespace(
        id=id, title=title, url=url, description=description, icon="", color="", order=0,
        click_count=clicks, created_at=NOW, updated_at=NOW,
        tags=[SimpleNamespace(name=t) for t in tags],
        category=SimpleNamespace(name=category) if category else None,
    )


LINKS = [
    fake_link(1, "GitHub", "https://github.com", "开发", ["代码", "开源"], "代码托管平台", clicks=3),
    fake_link(2, "Notes", "https://notes.example.com"),
]


# ── export ──────────────────────────────────────────────────────


class TestExport:

    def test_json_envelope(self):
        data = export_json(LINKS, now=NOW)
        assert data["version"] == "1.0"
        assert data["exportDate"] == NOW.isoformat()
        assert data["totalLinks"] == 2
        first = data["links"][0]
        assert first["clickCount"] == 3
        assert first["tags"] == ["代码", "开源"]
        assert first["category"] == "开发"
        assert first["createdAt"] == NOW.isoformat()
        assert data["links"][1]["description"] is None
        json.dumps(data, ensure_ascii=False)

    def test_markdown_groups_by_category(self):
        md = export_markdown(LINKS, now=NOW)
        assert md.startswith("# 收藏夹导出")
        assert "总计链接: 2 个" in md
        assert "## 开发" in md
        assert "## 未分类" in md
        assert "### [GitHub](https://github.com)" in md
        assert "**标签:** 代码, 开源" in md
        assert "- 点击次数: 3" in md
        assert md.index("## 开发") < md.index("## 未分类")

    def test_markdown_export_parses_back(self):
        rows = parse_markdown(export_markdown(LINKS, now=NOW))
        assert [r["url"] for r in rows] == ["https://github.com", "https://notes.example.com"]
        assert rows[0]["title"] == "GitHub"
        assert rows[0]["description"] == "代码托管平台"
        assert rows[0]["tags"] == ["代码", "开源"]
        assert rows[0]["category"] == "开发"
        assert rows[1]["category"] == IMPORT_DEFAULT_CATEGORY

    def test_filename(self):
        assert export_filename("json", NOW) == "bookmarks-2025-03-04.json"
        assert export_filename("markdown", NOW) == "bookmarks-2025-03-04.md"


# ── import ──────────────────────────────────────────────────────


class TestParseImport:

    def test_json_envelope_or_bare_list(self):
        rows = [{"title": "A", "url": "https://a.com"}]
        assert parse_import(json.dumps({"links": rows})) == rows
        assert parse_import(json.dumps(rows)) == rows

    @pytest.mark.parametrize("content", ["{not json", "[]", '{"links": "nope"}', "{}"])
    def test_bad_json(self, content):
        with pytest.raises(ImportFormatError):
            parse_import(content, "json")

    def test_unknown_format(self):
        with pytest.raises(ImportFormatError):
            parse_import("x", "csv")

    def test_markdown_heading_applies_to_following_links(self):
        md = "\n".join([
            "### [Loose](https://loose.example.com)",
            "## 工具",
            "### [One](https://one.example.com)",
            "first line",
            "second line",
            "---",
            "### [Two](https://two.example.com)",
        ])
        rows = parse_import(md, "markdown")
        assert [(r["title"], r["category"]) for r in rows] == [
            ("Loose", IMPORT_DEFAULT_CATEGORY),
            ("One", "工具"),
            ("Two", "工具"),
        ]
        assert rows[1]["description"] == "first line second line"

    def test_markdown_without_links(self):
        with pytest.raises(ImportFormatError):
            parse_import("# just a heading\n", "markdown")


class TestValidateAndClean:

    @pytest.mark.parametrize("row,message", [
        ("nope", "Row 3: not an object"),
        ({"url": "https://a.com"}, "Row 3: title is required"),
        ({"title": "  ", "url": "https://a.com"}, "Row 3: title is required"),
        ({"title": "A"}, "Row 3: url is required"),
        ({"title": "A", "url": "not a url"}, "Row 3: url is malformed"),
        ({"title": "A", "url": "javascript:alert(document.cookie)"}, "Row 3: url is malformed"),
        ({"title": "A", "url": "ftp://files.example.com/a"}, "Row 3: url is malformed"),
        ({"title": "A", "url": "https://"}, "Row 3: url is malformed"),
    ])
    def test_invalid_rows(self, row, message):
        assert validate_link(row, 3) == message

    def test_valid_row(self):
        assert validate_link({"title": "A", "url": "https://a.com"}, 1) is None

    def test_clean_defaults(self):
        cleaned = clean_link({"title": " A ", "url": " https://a.com ", "order": "x", "description": "  "})
        assert cleaned == {
            "title": "A",
            "url": "https://a.com",
            "description": None,
            "icon": None,
            "order": 0,
            "tags": [IMPORT_DEFAULT_TAG],
            "category": None,
            "color": None,
        }

    def test_clean_keeps_tags(self):
        assert clean_link({"title": "A", "url": "https://a.com", "tags": ["x", " ", "y"]})["tags"] == ["x", "y"]

    def test_prepare_import_reports_duplicates(self):
        rows = [
            {"title": "A", "url": "https://a.com"},
            {"title": "B", "url": "https://b.com"},
            {"title": "", "url": "https://c.com"},
            {"title": "A again", "url": "https://a.com"},
        ]
        valid, errors = prepare_import(rows, existing_urls=["https://b.com"])
        assert [v["url"] for v in valid] == ["https://a.com"]
        assert errors == [
            'Row 2: URL "https://b.com" already exists',
            "Row 3: title is required",
            'Row 4: URL "https://a.com" already exists',
        ]
