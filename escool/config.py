"""
Configuration and settings for the storage layer and API.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    # DynamoDB (durable backend)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)
    aws_region: str = Field(default="us-east-1")
    dynamodb_endpoint_url: Optional[str] = Field(default=None)
    dynamodb_table_prefix: str = Field(default="escool_")
    dynamodb_probe_timeout_seconds: float = Field(default=3.0)

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, validation_alias="ESCOOL_USE_IN_MEMORY_BACKENDS"
    )
    seed_demo_data: bool = Field(
        default=True, validation_alias="ESCOOL_SEED_DEMO_DATA"
    )

    @property
    def has_aws_credentials(self) -> bool:
        return bool(self.aws_access_key_id and self.aws_secret_access_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
