# axiss_nav/utils.py

import ipaddress
import logging
import re
import socket
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin, urlsplit

import httpx
from bs4 import BeautifulSoup

from axiss_nav.config import ALLOW_PRIVATE_FETCH, FETCH_TIMEOUT_SEC

logger = logging.getLogger("axiss_nav.utils")

UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/125.0 Safari/537.36"
)

PRIVATE_NETS = [ipaddress.ip_network(n) for n in [
    "10.0.0.0/8", "172.16.0.0/12", "192.168.0.0/16", "127.0.0.0/8", "169.254.0.0/16",
    "::1/128", "fc00::/7", "fe80::/10",
]]

TITLE_MAX = 100
BODY_DIGEST_MAX = 500
MAX_HTML_BYTES = 2_000_000


@dataclass
class SiteInfo:
    title: str
    description: str = ""
    keywords: str = ""
    icon: str = ""
    body_text: str = ""


def is_valid_url(url) -> bool:
    if not isinstance(url, str) or not url.strip():
        return False
    parts = urlsplit(url.strip())
    return parts.scheme in ("http", "https") and bool(parts.hostname)


def hostname_of(url: str) -> str:
    return urlsplit(url).hostname or url


def is_private_host(host: str) -> bool:
    try:
        infos = socket.getaddrinfo(host, None)
        for _, _, _, _, addr in infos:
            ip = ipaddress.ip_address(addr[0])
            if any(ip in net for net in PRIVATE_NETS):
                return True
        return False
    except (socket.gaierror, ValueError):
        return True


async def fetch_html(url: str, timeout: float = FETCH_TIMEOUT_SEC, max_bytes: int = MAX_HTML_BYTES,
                     client: Optional[httpx.AsyncClient] = None) -> str:
    if not is_valid_url(url):
        raise ValueError("invalid url")
    if not ALLOW_PRIVATE_FETCH and is_private_host(hostname_of(url)):
        raise ValueError("blocked host")
    headers = {
        "User-Agent": UA,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    }
    if client is not None:
        r = await client.get(url, headers=headers)
        r.raise_for_status()
        return r.text[:max_bytes]
    async with httpx.AsyncClient(follow_redirects=True, timeout=timeout) as c:
        r = await c.get(url, headers=headers)
        r.raise_for_status()
        return r.text[:max_bytes]


def _collapse(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def _meta(soup: BeautifulSoup, name: str) -> str:
    tag = soup.find("meta", attrs={"name": re.compile(f"^{name}$", re.I)})
    if tag and tag.get("content"):
        return _collapse(tag["content"])
    return ""


def _icon_href(soup: BeautifulSoup, page_url: str) -> str:
    for link in soup.find_all("link", href=True):
        rel = link.get("rel") or []
        rel = " ".join(rel).lower() if isinstance(rel, list) else str(rel).lower()
        if rel in ("icon", "shortcut icon"):
            return urljoin(page_url, link["href"].strip())
    return ""


def extract_site_info(html: str, url: str) -> SiteInfo:
    host = hostname_of(url)
    if not html:
        return SiteInfo(title=host)
    soup = BeautifulSoup(html, "html.parser")

    title = ""
    if soup.title and soup.title.string:
        title = _collapse(soup.title.string)
    if not title:
        ogt = soup.find("meta", property="og:title")
        if ogt and ogt.get("content"):
            title = _collapse(ogt["content"])
    title = (title or host)[:TITLE_MAX]

    description = _meta(soup, "description")
    keywords = _meta(soup, "keywords")
    icon = _icon_href(soup, url)

    body = soup.body or soup
    for tag in body(["script", "style", "noscript"]):
        tag.decompose()
    body_text = _collapse(body.get_text(" "))[:BODY_DIGEST_MAX]

    return SiteInfo(title=title, description=description, keywords=keywords,
                    icon=icon, body_text=body_text)


async def fetch_website_info(url: str, client: Optional[httpx.AsyncClient] = None) -> SiteInfo:
    try:
        html = await fetch_html(url, client=client)
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("fetching %s failed: %s", url, e)
        return SiteInfo(title=hostname_of(url))
    return extract_site_info(html, url)


def build_analysis_content(url: str, info: Optional[SiteInfo]) -> str:
    lines = [f"URL: {url}"]
    if info is None:
        lines.append("无法获取网页内容")
        return "\n".join(lines)
    if info.title:
        lines.append(f"标题: {info.title}")
    if info.description:
        lines.append(f"描述: {info.description}")
    if info.keywords:
        lines.append(f"关键词: {info.keywords}")
    if info.body_text:
        lines.append(f"内容摘要: {info.body_text}")
    return "\n".join(lines)
