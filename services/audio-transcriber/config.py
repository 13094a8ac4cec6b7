"""Application configuration loaded from environment variables."""

import os
from typing import Literal

from pydantic import BaseModel
from transcription_common import MinioConfig, StorageConfig

SERVICE_VERSION = "1.0.0"

GOOGLE_SCOPES = (
    "https://www.googleapis.com/auth/cloud-platform",
    "https://www.googleapis.com/auth/speech",
)


class GoogleConfig(BaseModel, frozen=True):
    """Google Cloud project and service account configuration."""

    project_id: str
    service_account_key: str
    scopes: tuple[str, ...] = GOOGLE_SCOPES


class AssemblyAIConfig(BaseModel, frozen=True):
    """AssemblyAI API configuration."""

    api_key: str


class ProviderConfig(BaseModel, frozen=True):
    """Selects the speech-recognition provider."""

    provider: Literal["google", "assemblyai"] = "google"


class OrchestratorConfig(BaseModel, frozen=True):
    """Limits and timings for the transcription orchestrator."""

    max_inline_mb: float = 1000
    max_chunk_mb: float = 50
    poll_interval_seconds: float = 5
    poll_timeout_seconds: float = 600
    transient_backoff_factor: float = 2.0
    chunk_workers: int = 4
    chunk_timeout_seconds: float = 600
    default_sample_rate_hertz: int = 16000
    # Approximate; only used when a chunk's duration cannot be derived exactly.
    assumed_bitrate_kbps: int = 128
    split_chunk_seconds: int = 55


class AppConfig(BaseModel, frozen=True):
    """Root application configuration."""

    storage: StorageConfig
    minio: MinioConfig
    provider: ProviderConfig
    google: GoogleConfig
    assemblyai: AssemblyAIConfig
    orchestrator: OrchestratorConfig


def load_config() -> AppConfig:
    """Loads configuration from environment variables."""
    return AppConfig(
        storage=StorageConfig(
            backend=os.getenv("STORAGE_BACKEND", "gcs"),
            bucket_name=os.getenv("STORAGE_BUCKET", "speech-audio-files"),
            staging_prefix=os.getenv("STORAGE_PREFIX", "audio/"),
        ),
        minio=MinioConfig(
            endpoint=os.getenv("MINIO_ENDPOINT", "minio:9000"),
            user=os.getenv("MINIO_USER", ""),
            password=os.getenv("MINIO_PASSWORD", ""),
        ),
        provider=ProviderConfig(
            provider=os.getenv("RECOGNITION_PROVIDER", "google"),
        ),
        google=GoogleConfig(
            project_id=os.getenv("GOOGLE_PROJECT_ID", ""),
            service_account_key=os.getenv("GOOGLE_SERVICE_ACCOUNT_KEY", ""),
        ),
        assemblyai=AssemblyAIConfig(
            api_key=os.getenv("ASSEMBLYAI_API_KEY", ""),
        ),
        orchestrator=OrchestratorConfig(
            max_inline_mb=float(os.getenv("MAX_INLINE_MB", "1000")),
            max_chunk_mb=float(os.getenv("MAX_CHUNK_MB", "50")),
            poll_interval_seconds=float(os.getenv("POLL_INTERVAL_SECONDS", "5")),
            poll_timeout_seconds=float(os.getenv("POLL_TIMEOUT_SECONDS", "600")),
            chunk_workers=int(os.getenv("CHUNK_WORKERS", "4")),
            chunk_timeout_seconds=float(os.getenv("CHUNK_TIMEOUT_SECONDS", "600")),
        ),
    )
