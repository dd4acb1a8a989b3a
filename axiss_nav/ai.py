# axiss_nav/ai.py

import asyncio
import json
import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

import httpx
from openai import OpenAI, APIConnectionError
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from axiss_nav import config
from axiss_nav.emoji_matcher import match_tag_emoji, is_valid_emoji
from axiss_nav.utils import SiteInfo, build_analysis_content, fetch_website_info, hostname_of

logger = logging.getLogger("axiss_nav.ai")

MAX_TAGS = 5
TAG_NAME_MAX = 32
REQUEST_TIMEOUT_SEC = 30.0

DEEPSEEK_BASE_URL = "https://api.deepseek.com"
CLAUDE_ENDPOINT = "https://api.anthropic.com/v1/messages"
GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

SYSTEM_PROMPT = """你是一名网站内容分析师，负责为收藏的网址生成简洁、准确的中文描述和分类标签。

规则：
- 所有输出使用中文。
- description 为 20-50 个汉字，基于网站的实际内容，概括其核心功能。
- tags 为 1-3 个标签，每个标签有 name 和 emoji 两个字段，emoji 要与标签含义相符。
- 标签应覆盖网站的核心领域而非具体功能，使用行业术语，避免意思相近的重复标签。
- 只返回 JSON 对象，包含 title、description、tags 三个字段，不要输出任何其他内容。

示例：
{"title": "GitHub", "description": "全球最大的代码托管与开源协作平台", "tags": [{"name": "开发", "emoji": "💻"}, {"name": "开源", "emoji": "🌍"}]}
"""


class AIUnavailableError(RuntimeError):
    pass


class AIResponseError(ValueError):
    pass


@dataclass
class TagSuggestion:
    name: str
    emoji: str


@dataclass
class LinkAnalysis:
    title: str
    description: str
    tags: List[TagSuggestion] = field(default_factory=list)
    fallback: bool = field(default=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Provider:
    name: str
    api_key: str
    model: str


def configured_providers() -> List[Provider]:
    candidates = [
        Provider("OpenAI", config.OPENAI_API_KEY, config.OPENAI_MODEL),
        Provider("DeepSeek", config.DEEPSEEK_API_KEY, config.DEEPSEEK_MODEL),
        Provider("Claude", config.CLAUDE_API_KEY, config.CLAUDE_MODEL),
        Provider("Gemini", config.GEMINI_API_KEY, config.GEMINI_MODEL),
    ]
    return [p for p in candidates if p.api_key]


def get_available_provider() -> Optional[Provider]:
    providers = configured_providers()
    return providers[0] if providers else None


def is_ai_available() -> bool:
    return get_available_provider() is not None


def current_provider() -> Optional[str]:
    p = get_available_provider()
    return p.name if p else None


# ------------------------------------------------------------------------------
# Response parsing
# ------------------------------------------------------------------------------
def parse_analysis_json(content: Optional[str]) -> Dict[str, Any]:
    """Parse model output as JSON, salvaging the outermost {...} if it was wrapped in prose or fences."""
    if not content:
        raise AIResponseError("empty model response")
    text = content.strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        l = text.find("{")
        r = text.rfind("}")
        if l == -1 or r <= l:
            raise AIResponseError("model response is not JSON")
        try:
            data = json.loads(text[l:r + 1])
        except json.JSONDecodeError as e:
            raise AIResponseError("model response is not JSON") from e
    if not isinstance(data, dict):
        raise AIResponseError("model response is not a JSON object")
    return data


def normalize_analysis(data: Dict[str, Any], fallback_title: str = "") -> LinkAnalysis:
    title = str(data.get("title") or "").strip() or fallback_title
    description = str(data.get("description") or "").strip()

    raw_tags = data.get("tags")
    if not isinstance(raw_tags, list):
        raw_tags = []

    tags: List[TagSuggestion] = []
    seen = set()
    for t in raw_tags:
        if isinstance(t, dict):
            name, emoji = t.get("name"), t.get("emoji")
        else:
            name, emoji = t, None
        name = str(name or "").strip()[:TAG_NAME_MAX]
        if not name or name.lower() in seen:
            continue
        seen.add(name.lower())
        emoji = str(emoji or "").strip()
        if not is_valid_emoji(emoji):
            emoji = match_tag_emoji(name)
        tags.append(TagSuggestion(name=name, emoji=emoji))
        if len(tags) >= MAX_TAGS:
            break
    return LinkAnalysis(title=title, description=description, tags=tags)


def fallback_analysis(url: str) -> LinkAnalysis:
    host = hostname_of(url)
    label = host.split(".")[0] if host else url
    return LinkAnalysis(
        title=host,
        description=f"来自 {host} 的链接",
        tags=[TagSuggestion(name=label, emoji="🔗")],
        fallback=True,
    )


# ------------------------------------------------------------------------------
# Providers
# ------------------------------------------------------------------------------
async def _call_openai_compatible(provider: Provider, content: str, base_url: Optional[str] = None,
                                  json_mode: bool = False) -> str:
    client = OpenAI(api_key=provider.api_key, base_url=base_url, timeout=REQUEST_TIMEOUT_SEC)
    kwargs: Dict[str, Any] = {}
    if json_mode:
        kwargs["response_format"] = {"type": "json_object"}
    resp = await asyncio.to_thread(
        client.chat.completions.create,
        model=provider.model,
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": content},
        ],
        temperature=0.2,
        max_tokens=800,
        **kwargs,
    )
    return resp.choices[0].message.content or ""


async def _call_claude(provider: Provider, content: str) -> str:
    async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SEC) as client:
        r = await client.post(
            CLAUDE_ENDPOINT,
            headers={
                "x-api-key": provider.api_key,
                "anthropic-version": "2023-06-01",
                "content-type": "application/json",
            },
            json={
                "model": provider.model,
                "max_tokens": 800,
                "system": SYSTEM_PROMPT,
                "messages": [{"role": "user", "content": content}],
            },
        )
        r.raise_for_status()
        blocks = r.json().get("content") or []
    return "".join(b.get("text", "") for b in blocks if isinstance(b, dict))


async def _call_gemini(provider: Provider, content: str) -> str:
    async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SEC) as client:
        r = await client.post(
            GEMINI_ENDPOINT.format(model=provider.model),
            params={"key": provider.api_key},
            json={"contents": [{"parts": [{"text": f"{SYSTEM_PROMPT}\n\n{content}"}]}]},
        )
        r.raise_for_status()
        data = r.json()
    try:
        return data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as e:
        raise AIResponseError("unexpected Gemini response shape") from e


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, max=4),
    retry=retry_if_exception_type((httpx.TransportError, APIConnectionError)),
    reraise=True,
)
async def request_analysis(provider: Provider, content: str) -> str:
    if provider.name == "OpenAI":
        return await _call_openai_compatible(provider, content)
    if provider.name == "DeepSeek":
        return await _call_openai_compatible(provider, content, base_url=DEEPSEEK_BASE_URL, json_mode=True)
    if provider.name == "Claude":
        return await _call_claude(provider, content)
    if provider.name == "Gemini":
        return await _call_gemini(provider, content)
    raise AIUnavailableError(f"unsupported provider {provider.name}")


async def analyze_url(url: str, site_info: Optional[SiteInfo] = None) -> LinkAnalysis:
    """
    Ask the first configured provider for a title, description and tags.

    Raises AIUnavailableError when no provider key is set. Any failure past that
    point is logged and answered with a hostname-based fallback whose
    `fallback` flag is set, so callers can avoid caching it.
    """
    provider = get_available_provider()
    if provider is None:
        raise AIUnavailableError("no AI provider configured; set one of the provider API keys")

    try:
        info = site_info or await fetch_website_info(url)
        content = build_analysis_content(url, info)
        raw = await request_analysis(provider, content)
        analysis = normalize_analysis(parse_analysis_json(raw), fallback_title=info.title)
        logger.info("analyzed %s via %s: %d tag(s)", url, provider.name, len(analysis.tags))
        return analysis
    except Exception:
        logger.exception("analysis of %s via %s failed", url, provider.name)
        return fallback_analysis(url)
