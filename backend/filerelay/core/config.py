from dataclasses import dataclass
from functools import lru_cache
from typing import Literal

from pydantic import Field, HttpUrl, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class StorageConfig:
    """Connection details for the S3 bucket, fixed for the process lifetime."""

    region: str
    access_key_id: str
    secret_access_key: str
    bucket: str
    endpoint_url: str | None = None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
    )

    env: Literal["local", "prod", "test"] = Field(default="local", alias="ENV")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    storage_backend: Literal["s3", "local"] = Field(default="s3", alias="STORAGE_BACKEND")
    local_storage_dir: str = Field(default="./storage", alias="LOCAL_STORAGE_DIR")
    download_chunk_size: int = Field(default=64 * 1024, gt=0, alias="DOWNLOAD_CHUNK_SIZE")

    aws_region: str | None = Field(default=None, alias="AWS_REGION")
    aws_access_key_id: str | None = Field(default=None, alias="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: str | None = Field(default=None, alias="AWS_SECRET_ACCESS_KEY")
    aws_bucket_name: str | None = Field(default=None, alias="AWS_BUCKET_NAME")
    s3_endpoint: HttpUrl | None = Field(default=None, alias="S3_ENDPOINT_URL")

    @model_validator(mode="after")
    def _require_s3_credentials(self) -> "Settings":
        if self.storage_backend != "s3":
            return self
        missing = [
            alias
            for alias, value in (
                ("AWS_REGION", self.aws_region),
                ("AWS_ACCESS_KEY_ID", self.aws_access_key_id),
                ("AWS_SECRET_ACCESS_KEY", self.aws_secret_access_key),
                ("AWS_BUCKET_NAME", self.aws_bucket_name),
            )
            if not value
        ]
        if missing:
            raise ValueError(f"Missing S3 settings: {', '.join(missing)}")
        return self

    def storage_config(self) -> StorageConfig:
        return StorageConfig(
            region=self.aws_region or "",
            access_key_id=self.aws_access_key_id or "",
            secret_access_key=self.aws_secret_access_key or "",
            bucket=self.aws_bucket_name or "",
            endpoint_url=str(self.s3_endpoint) if self.s3_endpoint else None,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
