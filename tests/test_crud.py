"""Tests for the shared link, tag and category writes."""
from axiss_nav.crud import find_active_link_by_url, get_or_create_category, import_cleaned_links, upsert_tags
from axiss_nav.models import User


def make_user(db, name="carol"):
    user = User(username=name, email=f"{name}@example.com", password_hash="x")
    db.add(user)
    db.flush()
    return user


class TestUpsertTags:

    def test_dedupes_and_keeps_order(self, db):
        user = make_user(db)
        tags = upsert_tags(db, user, ["前端", " 前端 ", "", "zzz"], emojis={"zzz": "☕"})
        assert [(t.name, t.icon) for t in tags] == [("前端", "🎨"), ("zzz", "☕")]
        again = upsert_tags(db, user, ["zzz"])
        assert again[0].id == tags[1].id

    def test_reactivates_inactive_tag(self, db):
        user = make_user(db)
        tag = upsert_tags(db, user, ["旧"])[0]
        tag.is_active = False
        assert upsert_tags(db, user, ["旧"])[0].is_active


def test_get_or_create_category(db):
    user = make_user(db)
    assert get_or_create_category(db, user, None) is None
    first = get_or_create_category(db, user, "工具")
    assert get_or_create_category(db, user, "工具").id == first.id


def test_import_cleaned_links(db):
    user = make_user(db)
    rows = [{
        "title": "A", "url": "https://a.com", "description": None, "icon": None, "color": None,
        "order": 0, "category": "读物", "tags": ["阅读"],
    }]
    assert import_cleaned_links(db, user, rows) == 1
    link = find_active_link_by_url(db, user.id, "https://a.com")
    assert link.category.name == "读物"
    assert [t.name for t in link.tags] == ["阅读"]
    assert find_active_link_by_url(db, user.id, "https://b.com") is None
