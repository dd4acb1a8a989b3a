# axiss_nav/maintenance.py
"""Operations behind manage.py: seeding, admin bootstrap, cleanup, file import/export."""

import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, delete, and_
from sqlalchemy.orm import Session

from axiss_nav.crud import upsert_tags, get_or_create_category, import_cleaned_links
from axiss_nav.models import User, Link, Tag, Category, link_tags, ROLE_ADMIN, ROLE_USER
from axiss_nav.security import hash_password, is_valid_email, find_user_by_login, new_api_key, MIN_PASSWORD_LEN
from axiss_nav.transfer import export_json, export_markdown, parse_import, prepare_import

logger = logging.getLogger("axiss_nav.maintenance")

SEED_USERS = [
    {"username": "admin", "email": "admin@example.com", "password": "admin123", "role": ROLE_ADMIN},
    {"username": "user", "email": "user@example.com", "password": "user123", "role": ROLE_USER},
]

SEED_LINKS = [
    {"title": "GitHub", "url": "https://github.com", "description": "全球最大的代码托管平台",
     "icon": "https://github.com/favicon.ico", "tags": ["开发", "代码", "开源"], "category": "开发",
     "color": "#24292e", "order": 1},
    {"title": "Stack Overflow", "url": "https://stackoverflow.com", "description": "程序员问答社区",
     "icon": "https://stackoverflow.com/favicon.ico", "tags": ["问答", "编程", "技术"], "category": "技术",
     "color": "#f48024", "order": 2},
    {"title": "MDN Web Docs", "url": "https://developer.mozilla.org", "description": "Web开发文档",
     "icon": "https://developer.mozilla.org/favicon.ico", "tags": ["文档", "Web", "开发"], "category": "开发",
     "color": "#000000", "order": 3},
    {"title": "React", "url": "https://react.dev", "description": "React官方文档",
     "icon": "https://react.dev/favicon.ico", "tags": ["React", "前端", "框架"], "category": "前端",
     "color": "#61dafb", "order": 4},
    {"title": "Vue.js", "url": "https://vuejs.org", "description": "Vue.js官方文档",
     "icon": "https://vuejs.org/favicon.ico", "tags": ["Vue", "前端", "框架"], "category": "前端",
     "color": "#42b883", "order": 5},
]


class MaintenanceError(ValueError):
    pass


def create_user(db: Session, username: str, email: str, password: str, role: str = ROLE_USER) -> User:
    user = User(username=username, email=email, password_hash=hash_password(password),
                role=role, api_key=new_api_key())
    db.add(user)
    db.flush()
    return user


def create_admin(db: Session, username: str, email: str, password: str) -> User:
    existing = db.execute(select(User).where(User.role == ROLE_ADMIN)).scalars().first()
    if existing:
        raise MaintenanceError(f"admin account already exists: {existing.username} <{existing.email}>")
    if len(password or "") < MIN_PASSWORD_LEN:
        raise MaintenanceError(f"password must be at least {MIN_PASSWORD_LEN} characters")
    if not is_valid_email(email):
        raise MaintenanceError("invalid email address")
    if find_user_by_login(db, username) or find_user_by_login(db, email):
        raise MaintenanceError("username or email already exists")
    admin = create_user(db, username, email, password, role=ROLE_ADMIN)
    db.commit()
    return admin


def seed(db: Session) -> Dict[str, Any]:
    """Idempotent demo data: an admin, a regular user, and a handful of links owned by the admin."""
    users: Dict[str, User] = {}
    for entry in SEED_USERS:
        user = find_user_by_login(db, entry["username"]) or find_user_by_login(db, entry["email"])
        if user is None:
            user = create_user(db, entry["username"], entry["email"], entry["password"], role=entry["role"])
        users[entry["username"]] = user

    owner = users["admin"]
    created = 0
    for entry in SEED_LINKS:
        exists = db.execute(
            select(Link.id).where(and_(Link.user_id == owner.id, Link.url == entry["url"]))
        ).first()
        if exists:
            continue
        category = get_or_create_category(db, owner, entry["category"])
        link = Link(user_id=owner.id, title=entry["title"], url=entry["url"], description=entry["description"],
                    icon=entry["icon"], color=entry["color"], order=entry["order"], category_id=category.id)
        link.tags = upsert_tags(db, owner, entry["tags"])
        db.add(link)
        created += 1
    db.commit()
    logger.info("seeded %d link(s)", created)
    return {"users": sorted(users), "links_created": created}


def clean(db: Session) -> Dict[str, int]:
    """Delete all links, tags and categories, and every non-admin user."""
    db.execute(delete(link_tags))
    links = db.execute(delete(Link)).rowcount
    tags = db.execute(delete(Tag)).rowcount
    categories = db.execute(delete(Category)).rowcount
    users = db.execute(delete(User).where(User.role != ROLE_ADMIN)).rowcount
    db.commit()
    return {"links": links, "tags": tags, "categories": categories, "users": users}


def _require_user(db: Session, login: str) -> User:
    user = find_user_by_login(db, login)
    if user is None:
        raise MaintenanceError(f"no such user: {login}")
    return user


def export_user_links(db: Session, login: str, fmt: str = "json", category: Optional[str] = None) -> str:
    user = _require_user(db, login)
    stmt = select(Link).where(and_(Link.user_id == user.id, Link.is_active.is_(True)))
    if category:
        stmt = stmt.join(Category, Category.id == Link.category_id).where(Category.name == category)
    links: List[Link] = db.execute(stmt.order_by(Link.order.asc(), Link.created_at.desc())).scalars().all()
    if fmt == "markdown":
        return export_markdown(links)
    return json.dumps(export_json(links), ensure_ascii=False, indent=2)


def import_user_links(db: Session, login: str, content: str, fmt: str = "json") -> Dict[str, Any]:
    user = _require_user(db, login)
    rows = parse_import(content, fmt)
    existing = db.execute(
        select(Link.url).where(and_(Link.user_id == user.id, Link.is_active.is_(True)))
    ).scalars().all()
    valid, errors = prepare_import(rows, existing)
    imported = import_cleaned_links(db, user, valid)
    return {"total": len(rows), "imported": imported, "errors": errors}
