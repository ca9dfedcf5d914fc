"""Password hashing tests — bcrypt hashes, verification, automatic hashing."""

from taskboard.auth.password import (
    hash_password,
    hash_rounds,
    is_hashed,
    needs_rehash,
    verify_password,
)
from taskboard.db.models import User


def test_hash_is_not_plaintext_and_verifies():
    h = hash_password("s3cret-pass", rounds=4)
    assert h != "s3cret-pass"
    assert is_hashed(h)
    assert verify_password("s3cret-pass", h)
    assert not verify_password("wrong-pass", h)


def test_hashes_are_salted():
    assert hash_password("same", rounds=4) != hash_password("same", rounds=4)


def test_verify_rejects_garbage_hash():
    assert not verify_password("anything", "not-a-bcrypt-hash")
    assert not verify_password("anything", "")


def test_rounds_are_read_back_from_hash():
    h = hash_password("pw", rounds=5)
    assert hash_rounds(h) == 5
    assert needs_rehash(h, rounds=4)
    assert not needs_rehash(h, rounds=5)


def test_long_passwords_use_first_72_bytes():
    base = "x" * 72
    h = hash_password(base + "tail-one", rounds=4)
    assert verify_password(base + "tail-two", h)


def test_user_password_setter_hashes():
    user = User(username="u", email="u@example.com", password="plain-text-pw")
    assert user.password_hash != "plain-text-pw"
    assert verify_password("plain-text-pw", user.password_hash)


def test_user_password_setter_does_not_rehash_existing_hash():
    user = User(username="u", email="u@example.com", password="first-pw")
    original = user.password_hash
    user.password = original
    assert user.password_hash == original


def test_unrelated_update_keeps_hash():
    user = User(username="u", email="u@example.com", password="first-pw")
    original = user.password_hash
    user.username = "renamed"
    assert user.password_hash == original


def test_profile_excludes_credentials():
    user = User(username="u", email="u@example.com", password="first-pw")
    user.refresh_token = "abc"
    profile = user.to_profile()
    assert set(profile) == {"id", "username", "email"}
