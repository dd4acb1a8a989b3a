# axiss_nav/emoji_matcher.py
"""
Pick an emoji for a tag name by scoring it against a static category table.
"""

import random
import re
from typing import Dict, List, Optional, Tuple

DEFAULT_TAG_EMOJI = "🏷️"

CATEGORY_EMOJI_MAP: Dict[str, List[str]] = {
    # development
    "开发": ["💻", "🔧", "⚙️", "🛠️"],
    "代码": ["👨‍💻", "💻", "📝", "⌨️"],
    "编程": ["⌨️", "💻", "🔧", "📝"],
    "技术": ["🔧", "⚙️", "🛠️", "💡"],
    "框架": ["🏗️", "🔧", "📦", "⚙️"],

    # frontend
    "前端": ["🎨", "🖼️", "💄", "🎭"],
    "UI": ["🖼️", "🎨", "✨", "💄"],
    "UX": ["👥", "🤝", "❤️", "🎯"],
    "设计": ["🎨", "🎭", "✨", "🖌️"],
    "界面": ["📱", "🖼️", "💻", "📺"],
    "响应式": ["📱", "💻", "📟", "📺"],
    "移动端": ["📱", "📲", "📟", "⌚"],

    # backend
    "后端": ["⚙️", "🖥️", "🔧", "🗄️"],
    "服务器": ["🖥️", "🌐", "☁️", "📡"],
    "数据库": ["🗄️", "📊", "💾", "🗃️"],
    "API": ["🔌", "🌐", "📡", "🔗"],

    # languages
    "JavaScript": ["🟨", "⚡", "🔥", "💛"],
    "TypeScript": ["🔷", "💙", "📘", "🔹"],
    "Python": ["🐍", "🟢", "📗", "🐲"],
    "Java": ["☕", "🟤", "📕", "🔥"],
    "React": ["⚛️", "🔵", "💙", "🌊"],
    "Vue": ["💚", "🟢", "🌿", "🍃"],
    "Node.js": ["🟢", "⚡", "🚀", "💚"],

    # tooling
    "工具": ["🔨", "🛠️", "⚙️", "🔧"],
    "效率": ["⚡", "🚀", "💨", "⏰"],
    "自动化": ["🤖", "⚙️", "🔄", "🎯"],
    "测试": ["🧪", "🔬", "🎯", "✅"],
    "部署": ["🚀", "📦", "☁️", "🌐"],
    "Docker": ["🐳", "📦", "🚢", "🌊"],
    "Git": ["📁", "🔄", "🌿", "📝"],
    "GitHub": ["🐙", "📁", "⭐", "🔗"],

    # learning
    "文档": ["📖", "📚", "📝", "📋"],
    "教程": ["📚", "🎓", "📖", "👨‍🏫"],
    "学习": ["🎓", "📚", "💡", "🧠"],
    "博客": ["✍️", "📝", "📰", "💭"],
    "资源": ["💎", "📦", "🎁", "⭐"],
    "课程": ["🎯", "📚", "🎓", "👨‍🏫"],
    "指南": ["🧭", "📖", "🗺️", "💡"],

    # community
    "社区": ["👥", "🤝", "🌍", "💬"],
    "论坛": ["💬", "🗣️", "👥", "📢"],
    "问答": ["❓", "💬", "🤔", "💡"],
    "讨论": ["🗣️", "💭", "💬", "🤝"],
    "分享": ["📤", "🤝", "💝", "🎁"],
    "交流": ["💭", "🤝", "📞", "💬"],

    # entertainment
    "游戏": ["🎮", "🕹️", "🎯", "🏆"],
    "音乐": ["🎵", "🎶", "🎼", "🎤"],
    "视频": ["📹", "🎬", "📺", "🎥"],
    "电影": ["🎬", "🍿", "🎭", "🎪"],
    "动漫": ["🎭", "🎨", "🌸", "⭐"],
    "娱乐": ["🎪", "🎨", "🎭", "🎉"],

    # business
    "商业": ["💼", "📈", "💰", "🏢"],
    "金融": ["💰", "💳", "📈", "🏦"],
    "投资": ["📈", "💎", "💰", "🚀"],
    "创业": ["🚀", "💡", "🌱", "⭐"],
    "营销": ["📢", "📈", "🎯", "💡"],
    "电商": ["🛒", "💳", "📦", "🛍️"],

    # life
    "生活": ["🏠", "☀️", "🌱", "❤️"],
    "健康": ["🏥", "💊", "🏃", "❤️"],
    "美食": ["🍽️", "🍕", "🍰", "👨‍🍳"],
    "旅行": ["✈️", "🗺️", "🌍", "📸"],
    "购物": ["🛍️", "🛒", "💳", "🎁"],
    "时尚": ["👗", "💄", "✨", "👠"],
    "摄影": ["📷", "📸", "🎨", "🌅"],

    # misc
    "链接": ["🔗", "📎", "🌐", "🔄"],
    "收藏": ["⭐", "❤️", "📌", "💖"],
    "网站": ["🌐", "🏠", "📱", "💻"],
    "推荐": ["👍", "⭐", "💖", "🎯"],
    "热门": ["🔥", "⭐", "📈", "🚀"],
    "最新": ["🆕", "✨", "🌟", "⚡"],
    "精选": ["💎", "⭐", "👑", "🏆"],
    "实用": ["🛠️", "💡", "⚙️", "🎯"],
    "免费": ["🆓", "💝", "🎁", "💚"],
    "付费": ["💰", "💳", "💎", "👑"],
}

KEYWORD_WEIGHTS = {
    "exact": 10,
    "contains": 7,
    "similar": 5,
    "category": 3,
}

SIMILAR_WORDS: Dict[str, List[str]] = {
    "开发": ["dev", "develop", "coding", "编码", "程序"],
    "前端": ["frontend", "fe", "客户端", "client"],
    "后端": ["backend", "be", "服务端", "server"],
    "数据库": ["database", "db", "存储", "storage"],
    "框架": ["framework", "lib", "library", "库"],
    "工具": ["tool", "utils", "utility", "实用"],
    "文档": ["doc", "docs", "documentation", "说明"],
    "教程": ["tutorial", "guide", "course", "指南"],
    "社区": ["community", "forum", "论坛", "群组"],
    "游戏": ["game", "gaming", "娱乐", "play"],
    "音乐": ["music", "audio", "声音", "sound"],
    "视频": ["video", "media", "媒体", "film"],
}

ABBREVIATIONS: Dict[str, str] = {
    "js": "JavaScript",
    "ts": "TypeScript",
    "py": "Python",
    "css": "前端",
    "html": "前端",
    "sql": "数据库",
    "api": "API",
    "ui": "UI",
    "ux": "UX",
}

FIRST_CHAR_FALLBACK: Dict[str, str] = {
    "开": "💻", "前": "🎨", "后": "⚙️", "数": "🗄️", "工": "🔨",
    "学": "📚", "文": "📖", "社": "👥", "游": "🎮", "音": "🎵",
    "视": "📹", "商": "💼", "生": "🏠", "链": "🔗", "网": "🌐",
}

_EMOJI_RE = re.compile(
    "[\U0001F600-\U0001F64F]|[\U0001F300-\U0001F5FF]|[\U0001F680-\U0001F6FF]"
    "|[\U0001F1E0-\U0001F1FF]|[\U0001F900-\U0001FAFF]|[☀-⛿]|[✀-➿]|[⬀-⯿]"
)


def _candidates(tag_name: str) -> List[Tuple[str, int]]:
    normalized = tag_name.lower().strip()
    scores: List[Tuple[str, int]] = []

    if tag_name in CATEGORY_EMOJI_MAP:
        scores.append((CATEGORY_EMOJI_MAP[tag_name][0], KEYWORD_WEIGHTS["exact"]))

    for category, emojis in CATEGORY_EMOJI_MAP.items():
        key = category.lower()
        if key in normalized or normalized in key:
            scores.append((emojis[0], KEYWORD_WEIGHTS["contains"]))

    for keyword, synonyms in SIMILAR_WORDS.items():
        hit = any(s.lower() in normalized or normalized in s.lower() for s in synonyms)
        if hit and keyword in CATEGORY_EMOJI_MAP:
            scores.append((CATEGORY_EMOJI_MAP[keyword][0], KEYWORD_WEIGHTS["similar"]))

    for abbr, full_name in ABBREVIATIONS.items():
        if abbr in normalized and full_name in CATEGORY_EMOJI_MAP:
            scores.append((CATEGORY_EMOJI_MAP[full_name][0], KEYWORD_WEIGHTS["similar"]))

    return scores


def match_tag_emoji(tag_name) -> str:
    """
    Best emoji for a tag: exact category hit, then substring containment, then
    synonyms and abbreviations. Ties keep discovery order. With no hit, the first
    character decides, else the default tag emoji.

    Empty, whitespace-only and non-string names get the default tag emoji. They
    are never matched as an empty string, which every category key contains.
    """
    if not isinstance(tag_name, str) or not tag_name.strip():
        return DEFAULT_TAG_EMOJI

    scores = _candidates(tag_name)
    if scores:
        # sorted() is stable, so equal scores keep the order they were found in
        return sorted(scores, key=lambda s: s[1], reverse=True)[0][0]

    return FIRST_CHAR_FALLBACK.get(tag_name[0], DEFAULT_TAG_EMOJI)


def batch_match_tag_emojis(tags: List[str]) -> List[Dict[str, str]]:
    return [{"name": t, "emoji": match_tag_emoji(t)} for t in tags]


def random_tag_emoji(tag_name, rng: Optional[random.Random] = None) -> str:
    """Any emoji of the exact category set; falls back to match_tag_emoji."""
    if not isinstance(tag_name, str) or not tag_name.strip():
        return DEFAULT_TAG_EMOJI
    emojis = CATEGORY_EMOJI_MAP.get(tag_name)
    if emojis:
        return (rng or random).choice(emojis)
    return match_tag_emoji(tag_name)


def is_valid_emoji(text) -> bool:
    if not isinstance(text, str) or not text:
        return False
    return _EMOJI_RE.search(text) is not None
