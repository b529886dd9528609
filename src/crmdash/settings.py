"""Service configuration via environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    environment: str = "development"

    # Database
    database_url: str = "sqlite+aiosqlite:///./data/crmdash.db"
    create_tables: bool = True

    # Service
    rest_port: int = 8080
    cors_allow_origins: list[str] = ["*"]
    frontend_url: str = "http://localhost:3000"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    # JWT Auth (JWT_SECRET has no default)
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    token_ttl_seconds: int = 7 * 24 * 60 * 60
    invitation_ttl_seconds: int = 7 * 24 * 60 * 60
    cookie_name: str = "token"

    # Password hashing
    bcrypt_rounds: int = 10

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @field_validator("jwt_secret")
    @classmethod
    def secret_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("JWT_SECRET must be set to a non-empty value")
        return v

    @field_validator("bcrypt_rounds")
    @classmethod
    def rounds_in_range(cls, v: int) -> int:
        if not 4 <= v <= 31:
            raise ValueError("bcrypt_rounds must be between 4 and 31")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process. Raises ValidationError when JWT_SECRET is missing."""
    return Settings()
