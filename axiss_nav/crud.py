# axiss_nav/crud.py
"""Link, tag and category writes shared by the web app and the maintenance CLI."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, and_
from sqlalchemy.orm import Session

from axiss_nav.emoji_matcher import match_tag_emoji
from axiss_nav.models import User, Link, Tag, Category

logger = logging.getLogger("axiss_nav.crud")

TAG_NAME_MAX = 64


def find_active_link_by_url(db: Session, user_id: int, url: str) -> Optional[Link]:
    return db.execute(
        select(Link).where(and_(Link.user_id == user_id, Link.url == url, Link.is_active.is_(True)))
    ).scalars().first()


def upsert_tags(db: Session, user: User, names: List[str], emojis: Optional[Dict[str, str]] = None) -> List[Tag]:
    """Find or create the user's tags by name, in the given order, without duplicates."""
    emojis = emojis or {}
    clean: List[str] = []
    for n in names or []:
        n = str(n or "").strip()[:TAG_NAME_MAX]
        if n and n not in clean:
            clean.append(n)
    if not clean:
        return []

    existing = {
        t.name: t for t in db.execute(
            select(Tag).where(and_(Tag.user_id == user.id, Tag.name.in_(clean)))
        ).scalars().all()
    }
    out: List[Tag] = []
    for name in clean:
        tag = existing.get(name)
        if tag is None:
            tag = Tag(user_id=user.id, name=name, icon=emojis.get(name) or match_tag_emoji(name))
            db.add(tag)
        elif not tag.is_active:
            tag.is_active = True
        out.append(tag)
    db.flush()
    return out


def get_or_create_category(db: Session, user: User, name: Optional[str]) -> Optional[Category]:
    if not name:
        return None
    category = db.execute(
        select(Category).where(and_(Category.user_id == user.id, Category.name == name, Category.is_active.is_(True)))
    ).scalars().first()
    if category is None:
        category = Category(user_id=user.id, name=name)
        db.add(category)
        db.flush()
    return category


def import_cleaned_links(db: Session, user: User, rows: List[Dict[str, Any]]) -> int:
    """Insert rows already validated and cleaned by transfer.prepare_import, then commit."""
    for row in rows:
        category = get_or_create_category(db, user, row["category"])
        link = Link(
            user_id=user.id,
            title=row["title"],
            url=row["url"],
            description=row["description"] or "",
            icon=row["icon"] or "",
            color=row["color"] or "",
            order=row["order"],
            category_id=category.id if category else None,
        )
        link.tags = upsert_tags(db, user, row["tags"])
        db.add(link)
    db.commit()
    logger.info("imported %d link(s) for user %s", len(rows), user.id)
    return len(rows)
