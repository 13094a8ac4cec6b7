"""Shared fakes and fixtures for the audio-transcriber unit tests."""

import base64
from collections.abc import Callable
from datetime import timedelta
from typing import BinaryIO

import pytest
from transcription_common import StorageCopyError, StorageDeleteError, StorageUploadError
from transcription_common.config import StorageConfig
from transcription_common.infrastructure import StorageClient

from config import OrchestratorConfig
from domain import ConfigValidator, RecognitionConfig, RecognitionRequestBuilder, TranscriptBuilder
from domain.chunk_orchestrator import ChunkOrchestrator
from domain.models import (
    OperationState,
    OperationStatus,
    ProviderRequest,
    RecognitionResponse,
)
from domain.operation_poller import OperationPoller
from domain.storage_stager import StorageStager
from domain.strategy_selector import StrategySelector
from infrastructure.interfaces import RecognitionService


# =============================================================================
# Fakes
# =============================================================================


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeCancelEvent:
    """Cancellation event whose waits advance a FakeClock instead of sleeping."""

    def __init__(self, clock: FakeClock, cancel_after_waits: int | None = None):
        self._clock = clock
        self._cancel_after_waits = cancel_after_waits
        self._set = False
        self.waits: list[float] = []

    def is_set(self) -> bool:
        return self._set

    def set(self) -> None:
        self._set = True

    def wait(self, timeout: float | None = None) -> bool:
        self.waits.append(timeout)
        self._clock.advance(timeout or 0.0)
        if self._cancel_after_waits is not None and len(self.waits) >= self._cancel_after_waits:
            self._set = True
        return self._set


class FakeRecognitionService(RecognitionService):
    """
    Scripted recognition backend.

    ``recognize_handler`` maps a ProviderRequest to a response (or raises).
    ``statuses`` is consumed one entry per ``get_operation`` call; exceptions are
    raised, and the last entry repeats once the script runs out.
    """

    name = "fake"

    def __init__(self):
        self.recognize_handler: Callable[[ProviderRequest], RecognitionResponse] = (
            lambda request: RecognitionResponse()
        )
        self.statuses: list[OperationStatus | Exception] = []
        self.start_error: Exception | None = None
        self.recognize_calls: list[ProviderRequest] = []
        self.started: list[ProviderRequest] = []
        self.poll_count = 0

    def recognize(self, request: ProviderRequest) -> RecognitionResponse:
        self.recognize_calls.append(request)
        return self.recognize_handler(request)

    def start_long_running(self, request: ProviderRequest) -> str:
        if self.start_error:
            raise self.start_error
        self.started.append(request)
        return f"operations/{len(self.started)}"

    def get_operation(self, name: str) -> OperationStatus:
        self.poll_count += 1
        if not self.statuses:
            return OperationStatus(name=name, state=OperationState.RUNNING)
        entry = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(entry, Exception):
            raise entry
        return entry.model_copy(update={"name": name})


class FakeStorageClient(StorageClient):
    """In-memory object storage that records every call."""

    def __init__(self):
        self.objects: dict[tuple[str, str], bytes] = {}
        self.uploads: list[str] = []
        self.deletes: list[str] = []
        self.copies: list[tuple[str, str]] = []
        self.fail_upload = False
        self.fail_copy = False
        self.fail_delete = False

    def upload(
        self,
        bucket_name: str,
        object_name: str,
        data: BinaryIO,
        size: int,
        content_type: str,
    ) -> None:
        if self.fail_upload:
            raise StorageUploadError(object_name, RuntimeError("disk full"))
        self.objects[(bucket_name, object_name)] = data.read()
        self.uploads.append(object_name)

    def copy(
        self,
        source_bucket: str,
        source_object: str,
        bucket_name: str,
        object_name: str,
    ) -> None:
        if self.fail_copy:
            raise StorageCopyError(object_name, RuntimeError("source not found"))
        self.objects[(bucket_name, object_name)] = self.objects.get(
            (source_bucket, source_object), b""
        )
        self.copies.append((source_object, object_name))

    def delete(self, bucket_name: str, object_name: str) -> None:
        self.deletes.append(object_name)
        if self.fail_delete:
            raise StorageDeleteError(object_name, RuntimeError("permission denied"))
        self.objects.pop((bucket_name, object_name), None)

    def generate_upload_url(
        self,
        bucket_name: str,
        object_name: str,
        content_type: str,
        ttl: timedelta,
    ) -> str:
        return f"https://storage.example/{bucket_name}/{object_name}?ttl={int(ttl.total_seconds())}"

    def object_uri(self, bucket_name: str, object_name: str) -> str:
        return f"gs://{bucket_name}/{object_name}"

    def ensure_bucket_exists(self, bucket_name: str) -> None:
        pass


# =============================================================================
# Helpers
# =============================================================================


def response_for(*results: tuple[str, float], end_times: list[float] | None = None):
    """Builds a RecognitionResponse with one single-alternative result per entry."""
    payload = []
    for position, (text, confidence) in enumerate(results):
        result = {"alternatives": [{"transcript": text, "confidence": confidence}]}
        if end_times:
            result["result_end_time"] = f"{end_times[position]}s"
        payload.append(result)
    return RecognitionResponse.from_provider_dict({"results": payload})


def chunk_label(request: ProviderRequest) -> str:
    """Returns the decoded inline audio of a chunk request (tests use text payloads)."""
    return base64.b64decode(request.audio["content"]).decode("utf-8")


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recognition() -> FakeRecognitionService:
    return FakeRecognitionService()


@pytest.fixture
def storage() -> FakeStorageClient:
    return FakeStorageClient()


@pytest.fixture
def storage_config() -> StorageConfig:
    return StorageConfig(bucket_name="test-bucket", staging_prefix="audio/")


@pytest.fixture
def orchestrator_config() -> OrchestratorConfig:
    return OrchestratorConfig(chunk_workers=4, chunk_timeout_seconds=30)


@pytest.fixture
def recognition_config() -> RecognitionConfig:
    return RecognitionConfig(encoding="LINEAR16", sample_rate_hertz=16000, language_code="ja-JP")


@pytest.fixture
def stager(storage, storage_config) -> StorageStager:
    return StorageStager(storage, storage_config)


@pytest.fixture
def poller(recognition, clock) -> OperationPoller:
    return OperationPoller(recognition, poll_interval=5, timeout=600, clock=clock)


@pytest.fixture
def chunk_orchestrator(recognition, orchestrator_config) -> ChunkOrchestrator:
    return ChunkOrchestrator(
        recognition, RecognitionRequestBuilder(), TranscriptBuilder(), orchestrator_config
    )


@pytest.fixture
def make_selector(recognition, stager, poller):
    """Factory for a StrategySelector wired to the fakes with a custom config."""

    def _make(config: OrchestratorConfig | None = None) -> StrategySelector:
        config = config or OrchestratorConfig()
        builder = RecognitionRequestBuilder()
        transcript_builder = TranscriptBuilder()
        return StrategySelector(
            validator=ConfigValidator(),
            request_builder=builder,
            transcript_builder=transcript_builder,
            recognition=recognition,
            stager=stager,
            poller=poller,
            chunk_orchestrator=ChunkOrchestrator(
                recognition, builder, transcript_builder, config
            ),
            config=config,
        )

    return _make


@pytest.fixture
def make_response():
    return response_for


@pytest.fixture
def label_of():
    return chunk_label


@pytest.fixture
def make_cancel(clock):
    """Factory for FakeCancelEvents bound to the shared FakeClock."""

    def _make(cancel_after_waits: int | None = None) -> FakeCancelEvent:
        return FakeCancelEvent(clock, cancel_after_waits)

    return _make
