from transcription_common.config import MinioConfig, StorageConfig
from transcription_common.exceptions import (
    SignedUrlError,
    StorageCopyError,
    StorageDeleteError,
    StorageError,
    StorageUploadError,
)
from transcription_common.logging import setup_logging

__all__ = [
    "setup_logging",
    "StorageError",
    "StorageUploadError",
    "StorageCopyError",
    "StorageDeleteError",
    "SignedUrlError",
    "MinioConfig",
    "StorageConfig",
]
