"""Credential hasher tests."""

import pytest

from crmdash.auth.passwords import hash_password, is_hashed, verify_password
from crmdash.errors import InvalidInput


def test_hash_then_verify():
    hashed = hash_password("correct horse", rounds=4)
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)


def test_hash_is_salted():
    assert hash_password("same", rounds=4) != hash_password("same", rounds=4)


def test_hash_embeds_cost_factor():
    assert hash_password("pw", rounds=5).startswith("$2b$05$")


@pytest.mark.parametrize("value", ["", None])
def test_hash_rejects_empty(value):
    with pytest.raises(InvalidInput):
        hash_password(value, rounds=4)


def test_hash_rejects_over_long_input():
    with pytest.raises(InvalidInput):
        hash_password("x" * 73, rounds=4)


def test_verify_never_raises_on_bad_input():
    assert verify_password("pw", "not-a-bcrypt-hash") is False
    assert verify_password("", hash_password("pw", rounds=4)) is False
    assert verify_password("pw", None) is False


def test_is_hashed():
    assert is_hashed(hash_password("pw", rounds=4))
    assert not is_hashed("plaintext-password")
    assert not is_hashed("$2b$short")
