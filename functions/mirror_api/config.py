"""
Configuration and settings for the mirror API and sync worker.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service and sync pipeline."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api")
    port: int = Field(default=3000, validation_alias="PORT")

    # Upstream API
    upstream_base_url: str = Field(default="https://ps99.biggamesapi.io")
    avatar_url_template: str = Field(
        default=(
            "https://www.roblox.com/Thumbs/Avatar.ashx"
            "?x=150&y=150&Format=Png&userId={image_id}"
        )
    )
    request_timeout_seconds: float = Field(default=15.0)
    fetch_max_attempts: int = Field(default=3, ge=1)
    fetch_base_delay_seconds: float = Field(default=2.0, ge=0)

    # Chunking (Firestore documents are capped at 1 MiB)
    chunk_threshold_bytes: int = Field(default=900_000, ge=0)
    sequence_chunk_size: int = Field(default=100, ge=1)
    keyed_chunk_size: int = Field(default=50, ge=1)

    # Clans listing pagination
    clans_page_size: int = Field(default=100, ge=1)
    clans_max_pages: Optional[int] = Field(default=None, ge=1)
    sample_clan_names: list[str] = Field(
        default=["SOPU", "RFIL", "V1LN", "GANG", "AR2Y"]
    )

    # Firestore
    google_application_credentials: Optional[str] = Field(
        default=None, validation_alias="GOOGLE_APPLICATION_CREDENTIALS"
    )
    firebase_project_id: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, validation_alias="MIRROR_USE_IN_MEMORY_BACKENDS"
    )

    # Queue (Redis) for manual sync triggers
    redis_url: Optional[str] = Field(default=None)
    redis_queue_key: str = Field(default="ps99-mirror:sync")

    # Worker schedule
    sync_interval_seconds: int = Field(default=24 * 60 * 60, ge=1)
    sync_jitter_seconds: int = Field(default=0, ge=0)
    sync_lock_lease_seconds: int = Field(default=30 * 60, ge=1)

    # Read cache TTLs
    cache_ttl_default_seconds: float = Field(default=5 * 60)
    cache_ttl_collections_seconds: float = Field(default=5 * 60)
    cache_ttl_collection_seconds: float = Field(default=5 * 60)
    cache_ttl_clans_seconds: float = Field(default=5 * 60)
    cache_ttl_exists_seconds: float = Field(default=60 * 60)
    cache_ttl_rap_seconds: float = Field(default=60 * 60)

    def cache_ttls(self) -> dict[str, float]:
        return {
            "collections": self.cache_ttl_collections_seconds,
            "collection": self.cache_ttl_collection_seconds,
            "clans": self.cache_ttl_clans_seconds,
            "exists": self.cache_ttl_exists_seconds,
            "rap": self.cache_ttl_rap_seconds,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
