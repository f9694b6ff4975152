"""Settings — environment-driven configuration for the task manager service.

Invariants:
    - Every value can be overridden by an environment variable of the same
      name (case-insensitive) or a .env file
    - get_settings() is cached: one Settings instance per process
    - Limits that guard correctness (timeouts, validity, description length)
      are validated positive at startup, not at first use

Design Decisions:
    - cors_origins as a comma-separated string: one env var, no JSON quoting
    - An empty token_secret is legal: the identity provider then signs with a
      random per-process secret (tokens do not survive a restart)
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # ─── Storage ─────────────────────────────────────────────────
    database_url: str = "postgresql+asyncpg://stm:stm@db:5432/stm"
    database_pool_size: int = Field(20, ge=1)
    database_max_overflow: int = Field(10, ge=0)
    database_echo: bool = False

    # ─── Identity ────────────────────────────────────────────────
    token_secret: str = ""
    token_validity_hours: int = Field(24, gt=0)

    # ─── Domain limits ───────────────────────────────────────────
    max_description_length: int = Field(10_000, gt=0)
    request_timeout_seconds: float = Field(10.0, gt=0)

    # ─── HTTP & logging ──────────────────────────────────────────
    cors_origins: str = "http://localhost:4200"
    log_level: str = "INFO"
    log_format: str = "json"

    @field_validator("database_url", mode="before")
    @classmethod
    def use_async_driver(cls, v: str) -> str:
        """postgres:// and postgresql:// URLs get the asyncpg driver."""
        if isinstance(v, str):
            for scheme in ("postgres://", "postgresql://"):
                if v.startswith(scheme):
                    return "postgresql+asyncpg://" + v[len(scheme):]
        return v

    @field_validator("log_format")
    @classmethod
    def known_log_format(cls, v: str) -> str:
        if v not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return v

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
