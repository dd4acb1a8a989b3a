"""Tests for password hashing and credential helpers."""
from axiss_nav.models import User
from axiss_nav.security import (
    find_user_by_login, hash_password, is_valid_email, new_api_key, user_from_api_key, verify_password,
)


def test_hash_and_verify():
    stored = hash_password("hunter22", iterations=1000)
    assert stored.startswith("pbkdf2_sha256$1000$")
    assert verify_password("hunter22", stored)
    assert not verify_password("hunter23", stored)


def test_hash_is_salted():
    assert hash_password("same", iterations=1000) != hash_password("same", iterations=1000)


def test_verify_rejects_malformed_hashes():
    assert not verify_password("x", "")
    assert not verify_password("x", "plaintext")
    assert not verify_password("x", "md5$1$salt$abc")
    assert not verify_password("x", "pbkdf2_sha256$notanint$salt$abc")


def test_email_validation():
    assert is_valid_email("a@b.co")
    assert not is_valid_email("a@b")
    assert not is_valid_email("a b@c.com")
    assert not is_valid_email("")


def test_api_keys_are_unique():
    assert len({new_api_key() for _ in range(20)}) == 20


def test_lookup_by_username_email_and_key(db):
    user = User(username="bob", email="bob@example.com", password_hash=hash_password("pw", iterations=1000),
                api_key="k-123")
    db.add(user)
    db.commit()

    assert find_user_by_login(db, "bob").id == user.id
    assert find_user_by_login(db, "bob@example.com").id == user.id
    assert find_user_by_login(db, "nobody") is None
    assert user_from_api_key(db, "k-123").id == user.id
    assert user_from_api_key(db, "") is None
    assert user_from_api_key(db, "wrong") is None
