"""Runtime configuration for the Antopolis battle server."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings read from the environment or ``.env``."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="ANTOPOLIS_"
    )

    database_url: str = Field(
        default="sqlite:///antopolis.db", description="SQLAlchemy URL of the colony database"
    )
    database_echo: bool = Field(default=False, description="Echo emitted SQL to the log")
    scheduler_autostart: bool = Field(
        default=False,
        description="Start one attack loop per active AI colony when the API boots",
    )
    scheduler_time_multiplier: float = Field(
        default=1.0,
        description="Multiplier applied to attack intervals and travel times in development",
        gt=0.0,
    )
    rng_seed: str | None = Field(
        default=None,
        description="Seed for combat and scheduling randomness; unset means nondeterministic",
    )
    log_level: str = Field(default="INFO", description="Root logging level")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"],
        description="Origins allowed to call the HTTP API",
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
