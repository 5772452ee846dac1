"""Application configuration utilities."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings derived from environment variables."""

    database_url: str = Field(
        default="sqlite:///./accounting.db", alias="DATABASE_URL"
    )

    storage_provider: str = Field(default="Local", alias="STORAGE_PROVIDER")
    upload_container: str = Field(
        default="uploads", alias="STORAGE_UPLOAD_CONTAINER"
    )
    output_container: str = Field(
        default="outputs", alias="STORAGE_OUTPUT_CONTAINER"
    )
    local_storage_path: str = Field(
        default="storage/files", alias="LOCAL_STORAGE_PATH"
    )
    aws_region: str | None = Field(default=None, alias="AWS_REGION")
    aws_s3_bucket: str | None = Field(default=None, alias="AWS_S3_BUCKET")
    aws_s3_endpoint_url: str | None = Field(
        default=None, alias="AWS_S3_ENDPOINT_URL"
    )
    aws_access_key_id: str | None = Field(
        default=None, alias="AWS_ACCESS_KEY_ID"
    )
    aws_secret_access_key: str | None = Field(
        default=None, alias="AWS_SECRET_ACCESS_KEY"
    )

    worker_poll_interval_seconds: float = Field(
        default=3.0, alias="WORKER_POLL_INTERVAL_SECONDS"
    )
    worker_error_backoff_seconds: float = Field(
        default=5.0, alias="WORKER_ERROR_BACKOFF_SECONDS"
    )
    max_upload_bytes: int = Field(default=20_000_000, alias="MAX_UPLOAD_BYTES")

    jwt_signing_key: str = Field(
        default="change-this-signing-key-in-production-32+",
        alias="JWT_SIGNING_KEY",
    )
    jwt_issuer: str = Field(default="Accounting.Api", alias="JWT_ISSUER")
    jwt_audience: str = Field(default="Accounting.Web", alias="JWT_AUDIENCE")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


__all__ = ["Settings", "get_settings"]
