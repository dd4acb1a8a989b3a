# axiss_nav/ranking.py

import random
from datetime import datetime, timezone
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")

RECOMMEND_LIMIT = 7


def _as_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; they were stored as UTC
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def recommendation_score(click_count: int, created_at: Optional[datetime], now: datetime,
                         rng: Optional[random.Random] = None) -> float:
    """
    Favour links that are rarely clicked and have been around a while:
    up to 100 points for few clicks, up to 50 for age in days, and up to 20
    of noise so the list does not freeze.
    """
    click_score = max(0, 100 - (click_count or 0) * 5)
    age_score = 0.0
    if created_at is not None:
        days = (_as_utc(now) - _as_utc(created_at)).total_seconds() / 86400
        age_score = min(50.0, max(0.0, days) * 2)
    return click_score + age_score + (rng or random).random() * 20


def recommend(links: Sequence, now: Optional[datetime] = None, limit: int = RECOMMEND_LIMIT,
              rng: Optional[random.Random] = None) -> List:
    now = now or datetime.now(timezone.utc)
    scored = [(recommendation_score(l.click_count, l.created_at, now, rng), l) for l in links]
    scored.sort(key=lambda x: x[0], reverse=True)
    return [l for _, l in scored[:limit]]


def pick_random_tags(tags: Sequence[T], limit: int, rng: Optional[random.Random] = None) -> List[T]:
    if limit <= 0:
        return []
    if len(tags) <= limit:
        return list(tags)
    return (rng or random).sample(list(tags), limit)


def pick_random(items: Sequence[T], rng: Optional[random.Random] = None) -> Optional[T]:
    if not items:
        return None
    return (rng or random).choice(list(items))
