"""
Identity store configuration loaded from environment variables.
"""
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings

DEFAULT_PARTITION_KEY_PATH = "/PartitionKey"


class Settings(BaseSettings):
    """Identity store settings from environment variables."""

    # Document store
    connection_string: str = ""
    database_id: str = ""
    container_id: str = ""
    partition_key_path: str = DEFAULT_PARTITION_KEY_PATH

    # Wiring: "shared" (one container, partition discriminator) or
    # "per_type" (one container per entity type)
    storage_strategy: str = "shared"

    # Query feeds
    page_size: int = 100

    # Flattened-field persistence
    auto_save_user: bool = True
    concurrency_retries: int = 3

    # Logging (bootstrap entry point only)
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_prefix = "IDENTITY_"
        extra = "ignore"

    @field_validator("connection_string")
    @classmethod
    def _require_connection_string(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("No connection string.")
        return value

    @field_validator("database_id")
    @classmethod
    def _require_database_id(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("No database id.")
        return value

    @field_validator("container_id")
    @classmethod
    def _require_container_id(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("No container id.")
        return value

    @field_validator("partition_key_path")
    @classmethod
    def _normalize_partition_key_path(cls, value: str) -> str:
        if not value or not value.strip():
            return DEFAULT_PARTITION_KEY_PATH
        value = value.strip()
        if not value.startswith("/"):
            value = "/" + value
        if "/" in value[1:] or len(value) == 1:
            raise ValueError(
                f"Partition key path {value!r} must name a single top-level field."
            )
        return value

    @field_validator("storage_strategy")
    @classmethod
    def _check_strategy(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in ("shared", "per_type"):
            raise ValueError(
                f"Invalid storage strategy: {value}. Expected 'shared' or 'per_type'"
            )
        return value

    @field_validator("page_size")
    @classmethod
    def _check_page_size(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("page_size must be positive")
        return value

    @field_validator("concurrency_retries")
    @classmethod
    def _check_retries(cls, value: int) -> int:
        if value < 1:
            raise ValueError("concurrency_retries must be at least 1")
        return value

    @property
    def partition_key_field(self) -> str:
        """Document field holding the partition discriminator."""
        return self.partition_key_path[1:]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
