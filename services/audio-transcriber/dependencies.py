"""Dependency injection configuration for the audio-transcriber service."""

from datetime import timedelta

import assemblyai as aai
from google.cloud import speech_v1p1beta1 as speech
from google.cloud import storage
from transcription_common import setup_logging
from transcription_common.infrastructure import StorageClient
from transcription_common.minio import get_minio_client

from config import AppConfig, load_config
from domain import ConfigValidator, RecognitionRequestBuilder, TranscriptBuilder
from domain.chunk_orchestrator import ChunkOrchestrator
from domain.operation_poller import OperationPoller
from domain.storage_stager import StorageStager
from domain.strategy_selector import StrategySelector
from exceptions import ConfigurationError
from handlers import TranscriptionHandler
from infrastructure import (
    AssemblyAIRecognizer,
    GCSStorageClient,
    GoogleSpeechRecognizer,
    MinioStorageClient,
    ServiceAccountCredentialProvider,
    StaticKeyCredentialProvider,
)
from infrastructure.interfaces import CredentialProvider, RecognitionService

logger = setup_logging()

# Providers can only read staged audio from the matching storage backend.
_STORAGE_FOR_PROVIDER = {"google": "gcs", "assemblyai": "minio"}

_config = load_config()

if _STORAGE_FOR_PROVIDER[_config.provider.provider] != _config.storage.backend:
    raise ConfigurationError(
        f"Provider '{_config.provider.provider}' cannot read audio staged in "
        f"'{_config.storage.backend}'; use "
        f"STORAGE_BACKEND={_STORAGE_FOR_PROVIDER[_config.provider.provider]}"
    )


def _build_google(config: AppConfig) -> tuple[CredentialProvider, RecognitionService, StorageClient]:
    credentials = ServiceAccountCredentialProvider(config.google.service_account_key)
    project_id = config.google.project_id or credentials.project_id

    speech_client = speech.SpeechClient(credentials=credentials.credentials)
    storage_client = storage.Client(project=project_id, credentials=credentials.credentials)
    return (
        credentials,
        GoogleSpeechRecognizer(speech_client),
        GCSStorageClient(storage_client),
    )


def _build_assemblyai(
    config: AppConfig,
) -> tuple[CredentialProvider, RecognitionService, StorageClient]:
    credentials = StaticKeyCredentialProvider(config.assemblyai.api_key)
    aai.settings.api_key = config.assemblyai.api_key

    read_url_ttl = timedelta(seconds=config.storage.read_url_ttl_seconds)
    return (
        credentials,
        AssemblyAIRecognizer(aai.Transcriber()),
        MinioStorageClient(get_minio_client(config.minio), read_url_ttl=read_url_ttl),
    )


if _config.provider.provider == "assemblyai":
    _credentials, _recognition, _storage = _build_assemblyai(_config)
    _scopes: tuple[str, ...] = ()
else:
    _credentials, _recognition, _storage = _build_google(_config)
    _scopes = _config.google.scopes

_credentials.verify(_scopes)
_storage.ensure_bucket_exists(_config.storage.bucket_name)

_request_builder = RecognitionRequestBuilder(
    default_sample_rate_hertz=_config.orchestrator.default_sample_rate_hertz
)
_transcript_builder = TranscriptBuilder()
_stager = StorageStager(_storage, _config.storage)
_poller = OperationPoller(
    _recognition,
    poll_interval=_config.orchestrator.poll_interval_seconds,
    timeout=_config.orchestrator.poll_timeout_seconds,
    backoff_factor=_config.orchestrator.transient_backoff_factor,
)
_chunk_orchestrator = ChunkOrchestrator(
    _recognition, _request_builder, _transcript_builder, _config.orchestrator
)
_selector = StrategySelector(
    validator=ConfigValidator(),
    request_builder=_request_builder,
    transcript_builder=_transcript_builder,
    recognition=_recognition,
    stager=_stager,
    poller=_poller,
    chunk_orchestrator=_chunk_orchestrator,
    config=_config.orchestrator,
)
_handler = TranscriptionHandler(
    selector=_selector,
    stager=_stager,
    provider_name=_recognition.name,
    storage_backend=_config.storage.backend,
)

logger.info(
    "Transcription service configured",
    extra={
        "provider": _config.provider.provider,
        "storage_backend": _config.storage.backend,
        "bucket_name": _config.storage.bucket_name,
    },
)


def get_config() -> AppConfig:
    """Returns the loaded application configuration."""
    return _config


def get_storage() -> StorageClient:
    """Returns the configured storage client."""
    return _storage


def get_recognition_service() -> RecognitionService:
    """Returns the configured recognition service."""
    return _recognition


def get_handler() -> TranscriptionHandler:
    """Returns the configured transcription handler."""
    return _handler
