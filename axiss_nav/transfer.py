# axiss_nav/transfer.py
"""
Bookmark import/export in JSON and Markdown.

The Markdown layout is the one `export_markdown` writes, so an export can be
imported back:

    ## <category>
    ### [<title>](<url>)
    <description>
    **标签:** a, b
    - 添加时间: ...
    ---
"""

import json
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from axiss_nav.utils import is_valid_url

EXPORT_VERSION = "1.0"
UNCATEGORIZED = "未分类"
IMPORT_DEFAULT_TAG = "导入"
IMPORT_DEFAULT_CATEGORY = "导入"
TAGS_PREFIX = "**标签:**"

FORMATS = ("json", "markdown")

_LINK_RE = re.compile(r"^###\s*\[([^\]]+)\]\(([^)]+)\)")
_CATEGORY_RE = re.compile(r"^##\s*(.+)")
_TAGS_RE = re.compile(r"^\*\*标签:\*\*\s*(.+)")


class ImportFormatError(ValueError):
    pass


def _iso(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def link_to_export_dict(link) -> Dict[str, Any]:
    return {
        "id": link.id,
        "title": link.title,
        "url": link.url,
        "description": link.description or None,
        "icon": link.icon or None,
        "order": link.order or 0,
        "clickCount": link.click_count or 0,
        "createdAt": _iso(link.created_at),
        "updatedAt": _iso(link.updated_at),
        "tags": [t.name for t in link.tags],
        "category": link.category.name if link.category else None,
        "color": link.color or None,
    }


def export_json(links: Iterable, now: Optional[datetime] = None) -> Dict[str, Any]:
    rows = [link_to_export_dict(l) for l in links]
    return {
        "version": EXPORT_VERSION,
        "exportDate": _iso(now or datetime.now(timezone.utc)),
        "totalLinks": len(rows),
        "links": rows,
    }


def _local(ts: Optional[str]) -> str:
    if not ts:
        return ""
    return datetime.fromisoformat(ts).strftime("%Y-%m-%d %H:%M:%S")


def export_markdown(links: Iterable, now: Optional[datetime] = None) -> str:
    rows = [link_to_export_dict(l) for l in links]
    now = now or datetime.now(timezone.utc)

    out = ["# 收藏夹导出", ""]
    out.append(f"导出时间: {now.strftime('%Y-%m-%d %H:%M:%S')}")
    out.append(f"总计链接: {len(rows)} 个")
    out.append("")

    groups: Dict[str, List[Dict[str, Any]]] = {}
    for row in rows:
        groups.setdefault(row["category"] or UNCATEGORIZED, []).append(row)

    for category, items in groups.items():
        out += [f"## {category}", ""]
        for row in items:
            out += [f"### [{row['title']}]({row['url']})", ""]
            if row["description"]:
                out += [row["description"], ""]
            if row["tags"]:
                out += [f"{TAGS_PREFIX} {', '.join(row['tags'])}", ""]
            out.append(f"- 添加时间: {_local(row['createdAt'])}")
            out += [f"- 点击次数: {row['clickCount']}", ""]
            out += ["---", ""]

    return "\n".join(out)


def export_filename(fmt: str, now: Optional[datetime] = None) -> str:
    day = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%d")
    return f"bookmarks-{day}.{'md' if fmt == 'markdown' else 'json'}"


# ------------------------------------------------------------------------------
# Import
# ------------------------------------------------------------------------------
def parse_markdown(content: str) -> List[Dict[str, Any]]:
    links: List[Dict[str, Any]] = []
    current: Optional[Dict[str, Any]] = None
    category: Optional[str] = None
    in_block = False

    for raw in content.splitlines():
        line = raw.strip()

        m = _LINK_RE.match(line)
        if m:
            if current:
                links.append(current)
            current = {
                "title": m.group(1),
                "url": m.group(2),
                "description": "",
                "tags": [],
                "category": category or IMPORT_DEFAULT_CATEGORY,
            }
            in_block = True
            continue

        m = _CATEGORY_RE.match(line)
        if m and not line.startswith("###"):
            category = m.group(1).strip()
            if category == UNCATEGORIZED:
                category = None
            continue

        if current is None:
            continue

        m = _TAGS_RE.match(line)
        if m:
            current["tags"] = [t.strip() for t in m.group(1).split(",") if t.strip()]
            continue

        if line == "---":
            in_block = False
            continue

        if in_block and line and not line.startswith("**") and not line.startswith("-"):
            current["description"] = f"{current['description']} {line}".strip()

    if current:
        links.append(current)
    return links


def parse_import(content: str, fmt: str = "json") -> List[Any]:
    if fmt == "json":
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ImportFormatError("file is not valid JSON") from e
        rows = data.get("links") if isinstance(data, dict) else data
    elif fmt == "markdown":
        rows = parse_markdown(content)
    else:
        raise ImportFormatError(f"unsupported format: {fmt}")

    if not isinstance(rows, list) or not rows:
        raise ImportFormatError("no links found in file")
    return rows


def validate_link(row: Any, index: int) -> Optional[str]:
    """Error message for row `index` (1-based), or None when the row is usable."""
    if not isinstance(row, dict):
        return f"Row {index}: not an object"
    title = row.get("title")
    if not isinstance(title, str) or not title.strip():
        return f"Row {index}: title is required"
    url = row.get("url")
    if not isinstance(url, str) or not url.strip():
        return f"Row {index}: url is required"
    if not is_valid_url(url):
        return f"Row {index}: url is malformed"
    return None


def _clean_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def clean_link(row: Dict[str, Any]) -> Dict[str, Any]:
    tags = row.get("tags")
    if tags is None or tags == []:
        tags = [IMPORT_DEFAULT_TAG]
    elif not isinstance(tags, list):
        tags = [tags]
    tags = [str(t).strip() for t in tags if str(t).strip()] or [IMPORT_DEFAULT_TAG]
    return {
        "title": row["title"].strip(),
        "url": row["url"].strip(),
        "description": _clean_str(row.get("description")),
        "icon": _clean_str(row.get("icon")),
        "order": row["order"] if isinstance(row.get("order"), int) else 0,
        "tags": tags,
        "category": _clean_str(row.get("category")),
        "color": _clean_str(row.get("color")),
    }


def prepare_import(rows: List[Any], existing_urls: Iterable[str]) -> Tuple[List[Dict[str, Any]], List[str]]:
    """Split rows into cleaned links and per-row error messages. URLs already stored or repeated in the file are errors."""
    seen = set(existing_urls)
    valid: List[Dict[str, Any]] = []
    errors: List[str] = []
    for i, row in enumerate(rows, start=1):
        err = validate_link(row, i)
        if err:
            errors.append(err)
            continue
        cleaned = clean_link(row)
        if cleaned["url"] in seen:
            errors.append(f'Row {i}: URL "{cleaned["url"]}" already exists')
            continue
        seen.add(cleaned["url"])
        valid.append(cleaned)
    return valid, errors
