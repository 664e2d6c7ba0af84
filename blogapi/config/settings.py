"""Environment-driven configuration.

Every field maps to an upper-case environment variable (``CASSANDRA_HOSTS``,
``UPLOAD_DIR``...) and may also come from a local ``.env`` file.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEV_SECRET_KEY = "dev-only-blogapi-signing-key-not-for-production"
MIN_SECRET_KEY_LENGTH = 32


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Service
    app_name: str = "blogapi"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production", "testing"] = (
        "development"
    )
    api_host: str = "0.0.0.0"
    api_port: int = 5000

    # Identity tokens
    auth_secret_key: str = Field(
        default=DEV_SECRET_KEY, min_length=MIN_SECRET_KEY_LENGTH
    )
    auth_algorithm: str = "HS256"
    auth_token_expire_days: int = Field(default=7, ge=1)

    # Cassandra
    cassandra_hosts: list[str] = ["localhost"]
    cassandra_port: int = 9042
    cassandra_keyspace: str = "blogapi"
    cassandra_username: str | None = None
    cassandra_password: str | None = None
    cassandra_protocol_version: int = 4
    cassandra_connect_timeout: float = 10.0
    cassandra_request_timeout: float = 10.0

    # Listing
    posts_default_page_size: int = Field(default=5, ge=1)
    posts_max_page_size: int = Field(default=100, ge=1)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"
    log_format: Literal["json", "console"] = "console"
    log_include_caller_info: bool = True
    log_dir: str = "logs"
    log_file_max_bytes: int = 10 * 1024 * 1024
    log_file_backup_count: int = 5
    log_requests: bool = True
    log_exclude_paths: list[str] = ["/health", "/uploads"]

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = False

    # Image uploads, served back under upload_url_prefix
    upload_dir: str = "uploads"
    upload_url_prefix: str = "/uploads"
    upload_max_file_size_mb: int = Field(default=10, ge=1)
    upload_allowed_image_types: list[str] = [
        "image/jpeg",
        "image/png",
        "image/webp",
        "image/gif",
    ]

    @model_validator(mode="after")
    def check_production_secret(self) -> "Settings":
        if self.is_production and self.auth_secret_key == DEV_SECRET_KEY:
            msg = "AUTH_SECRET_KEY must be set in production"
            raise ValueError(msg)
        return self

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_testing(self) -> bool:
        return self.environment == "testing"


@lru_cache
def get_settings() -> Settings:
    return Settings()
