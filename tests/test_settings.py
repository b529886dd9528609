"""Configuration tests."""

import pytest
from pydantic import ValidationError

from crmdash.rest.app import create_app
from crmdash.settings import Settings, get_settings


def test_missing_secret_is_fatal(monkeypatch):
    monkeypatch.delenv("JWT_SECRET", raising=False)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_blank_secret_is_fatal():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, jwt_secret="   ")


def test_create_app_without_secret_fails(monkeypatch):
    monkeypatch.delenv("JWT_SECRET", raising=False)
    get_settings.cache_clear()
    try:
        with pytest.raises(ValidationError):
            create_app()
    finally:
        get_settings.cache_clear()


@pytest.mark.parametrize("rounds", [3, 32])
def test_bcrypt_rounds_bounded(rounds):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, jwt_secret="x" * 32, bcrypt_rounds=rounds)


def test_production_flag():
    assert Settings(_env_file=None, jwt_secret="x" * 32, environment="production").is_production
    assert not Settings(_env_file=None, jwt_secret="x" * 32).is_production
