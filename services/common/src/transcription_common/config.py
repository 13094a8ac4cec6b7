"""Shared configuration models for infrastructure components."""

from typing import Literal

from pydantic import BaseModel


class MinioConfig(BaseModel, frozen=True):
    """MinIO connection configuration."""

    endpoint: str
    user: str
    password: str
    secure: bool = False


class StorageConfig(BaseModel, frozen=True):
    """Object storage used for staging audio."""

    backend: Literal["gcs", "minio"] = "gcs"
    bucket_name: str = "speech-audio-files"
    staging_prefix: str = "audio/"
    upload_url_ttl_seconds: int = 900
    read_url_ttl_seconds: int = 3600
