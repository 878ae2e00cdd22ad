from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    mongodb_uri: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection string",
    )
    mongodb_db_name: str = Field(
        default="rank_roller",
        description="Name of the MongoDB database",
    )
    mongodb_timeout_ms: int = Field(
        default=2000,
        ge=1,
        description="Server selection timeout before falling back to memory",
    )
    save_collection: str = Field(
        default="saves",
        description="MongoDB collection storing save envelopes",
    )
    allowed_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        description="Origins allowed to access the API",
    )
    save_version_tag: str = Field(
        default="RRSAVE2:",
        description="Prefix identifying an obfuscated save envelope",
    )
    save_xor_key: str = Field(
        default="rankroller",
        description="Repeating key used to obfuscate the save payload",
    )
    min_frame_interval_ms: int = Field(
        default=16,
        ge=1,
        description="Below this frame spacing rolls skip the animation",
    )
    min_auto_interval_ms: int = Field(
        default=20,
        ge=1,
        description="Lower bound for the auto roll timer period",
    )
    max_bulk_count: int = Field(
        default=10_000,
        ge=1,
        description="Upper bound for samples drawn in a single roll",
    )
    enable_cheats: bool = Field(
        default=False,
        description="Expose the debug endpoint that edits cheat-mutable counters",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="RANKROLLER_",
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()


settings = get_settings()
