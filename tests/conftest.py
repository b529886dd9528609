"""Shared fixtures: settings, token codec and an app backed by a temp SQLite file."""

from __future__ import annotations

import os

os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-long-enough-for-hs256")

import pytest
from fastapi.testclient import TestClient

from crmdash.auth.jwt import TokenCodec
from crmdash.rest.app import create_app
from crmdash.settings import Settings

TEST_SECRET = "test-secret-key-that-is-long-enough-for-hs256"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        jwt_secret=TEST_SECRET,
        database_url=f"sqlite+aiosqlite:///{tmp_path}/crmdash-test.db",
        bcrypt_rounds=4,
        log_format="console",
    )


@pytest.fixture
def codec(settings) -> TokenCodec:
    return TokenCodec(settings.jwt_secret, default_ttl=settings.token_ttl_seconds)


@pytest.fixture
def client(settings):
    """Full app, lifespan included, against a fresh database."""
    with TestClient(create_app(settings)) as tc:
        yield tc

