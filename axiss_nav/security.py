import re
import hmac
import secrets
import hashlib
from typing import Optional

from fastapi import Request, HTTPException, Depends
from sqlalchemy import select, or_
from sqlalchemy.orm import Session

from axiss_nav.db import get_db
from axiss_nav.models import User

PBKDF2_ITERATIONS = 200_000
MIN_PASSWORD_LEN = 6
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def new_api_key() -> str:
    return secrets.token_hex(32)


def hash_password(password: str, salt: Optional[str] = None, iterations: int = PBKDF2_ITERATIONS) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations)
    return f"pbkdf2_sha256${iterations}${salt}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        algo, iterations, salt, expected = (stored or "").split("$", 3)
        iterations = int(iterations)
    except ValueError:
        return False
    if algo != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations)
    return hmac.compare_digest(digest.hex(), expected)


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email or ""))


def find_user_by_login(db: Session, login: str) -> Optional[User]:
    return db.execute(
        select(User).where(or_(User.username == login, User.email == login))
    ).scalars().first()


def user_from_api_key(db: Session, api_key: str) -> Optional[User]:
    if not api_key:
        return None
    return db.execute(select(User).where(User.api_key == api_key)).scalars().first()


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """Session cookie first, then X-API-Key header or ?api_key=."""
    uid = request.session.get("user_id")
    if uid:
        user = db.get(User, uid)
        if user:
            return user
        request.session.clear()

    api_key = request.headers.get("x-api-key") or request.query_params.get("api_key") or ""
    if api_key:
        user = user_from_api_key(db, api_key)
        if not user:
            raise HTTPException(401, "invalid api key")
        return user

    raise HTTPException(401, "not authenticated")


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(403, "admin only")
    return user
