"""Domain layer exports."""

from .config_validator import ConfigValidator
from .models import (
    AudioChunk,
    AudioEncoding,
    CleanupReport,
    DiarizationOptions,
    InlineAudio,
    ProcessingMode,
    RecognitionConfig,
    SignedUrl,
    StorageAudio,
    TranscriptionRequest,
    TranscriptionResult,
    UploadMetadata,
)
from .request_builder import RecognitionProfile, RecognitionRequestBuilder
from .transcript_builder import TranscriptBuilder

__all__ = [
    "AudioChunk",
    "AudioEncoding",
    "CleanupReport",
    "ConfigValidator",
    "DiarizationOptions",
    "InlineAudio",
    "ProcessingMode",
    "RecognitionConfig",
    "RecognitionProfile",
    "RecognitionRequestBuilder",
    "SignedUrl",
    "StorageAudio",
    "TranscriptBuilder",
    "TranscriptionRequest",
    "TranscriptionResult",
    "UploadMetadata",
]
