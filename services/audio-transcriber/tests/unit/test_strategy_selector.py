"""Tests for StrategySelector routing."""

import pytest

from config import OrchestratorConfig
from domain import (
    AudioChunk,
    InlineAudio,
    ProcessingMode,
    RecognitionConfig,
    StorageAudio,
    TranscriptionRequest,
)
from domain.chunk_orchestrator import BYTES_PER_MB
from domain.models import OperationState, OperationStatus
from domain.strategy_selector import estimate_decoded_bytes
from exceptions import (
    OversizeError,
    ProviderError,
    RequestValidationError,
    TranscriptionTimeoutError,
)


@pytest.fixture
def mp3_config() -> RecognitionConfig:
    return RecognitionConfig(encoding="MP3", sample_rate_hertz=44100, language_code="ja-JP")


def _done(make_response, text="staged text") -> OperationStatus:
    return OperationStatus(
        name="op", state=OperationState.DONE_OK, response=make_response((text, 0.85))
    )


class TestValidation:
    def test_invalid_config_is_rejected_before_any_call(self, make_selector, recognition, storage):
        request = TranscriptionRequest(
            config=RecognitionConfig(encoding="WAV"),
            audio=InlineAudio.from_bytes(b"abc"),
        )

        with pytest.raises(RequestValidationError) as exc_info:
            make_selector().route(request)

        assert exc_info.value.errors == ["Unsupported encoding: WAV", "language_code is required"]
        assert recognition.recognize_calls == []
        assert storage.uploads == []

    def test_missing_audio_is_rejected(self, make_selector, mp3_config):
        with pytest.raises(RequestValidationError) as exc_info:
            make_selector().route(TranscriptionRequest(config=mp3_config))

        assert exc_info.value.errors == ["audio is required"]

    def test_invalid_chunks_are_rejected(self, make_selector, mp3_config):
        request = TranscriptionRequest(
            config=mp3_config,
            mode=ProcessingMode.CHUNKED,
            chunks=(AudioChunk(index=1, data=b"a"),),
        )

        with pytest.raises(RequestValidationError) as exc_info:
            make_selector().route(request)

        assert exc_info.value.errors == ["chunk indices must be contiguous from 0"]

    @pytest.mark.parametrize("mode", list(ProcessingMode))
    def test_malformed_base64_is_rejected_in_every_mode(
        self, make_selector, recognition, storage, mp3_config, mode
    ):
        request = TranscriptionRequest(
            config=mp3_config, mode=mode, audio=InlineAudio(content="!!!not base64@@")
        )

        with pytest.raises(RequestValidationError) as exc_info:
            make_selector().route(request)

        assert exc_info.value.errors == ["audio content is not valid base64"]
        assert recognition.recognize_calls == []
        assert storage.uploads == []

    @pytest.mark.parametrize("mode", list(ProcessingMode))
    def test_empty_inline_audio_is_rejected_in_every_mode(
        self, make_selector, recognition, mp3_config, mode
    ):
        request = TranscriptionRequest(
            config=mp3_config, mode=mode, audio=InlineAudio(content="")
        )

        with pytest.raises(RequestValidationError) as exc_info:
            make_selector().route(request)

        assert exc_info.value.errors == ["audio content is empty"]
        assert recognition.recognize_calls == []


class TestDirect:
    def test_five_megabytes_inline_goes_direct(self, make_selector, recognition, storage, mp3_config, make_response):
        recognition.recognize_handler = lambda request: make_response(("direct text", 0.95))
        request = TranscriptionRequest(
            config=mp3_config, audio=InlineAudio.from_bytes(b"\x00" * (5 * BYTES_PER_MB))
        )

        result = make_selector().route(request)

        assert result.success is True
        assert result.processing_mode is ProcessingMode.DIRECT
        assert result.transcript == "direct text"
        assert recognition.recognize_calls[0].is_inline
        assert recognition.recognize_calls[0].config["model"] == "latest_long"
        assert storage.uploads == []

    def test_oversized_inline_is_rejected_with_limit(self, make_selector, recognition, mp3_config):
        request = TranscriptionRequest(
            config=mp3_config, audio=InlineAudio.from_bytes(b"\x00" * (BYTES_PER_MB + BYTES_PER_MB // 5))
        )

        with pytest.raises(OversizeError) as exc_info:
            make_selector(OrchestratorConfig(max_inline_mb=1)).route(request)

        assert exc_info.value.limit_mb == 1
        assert "1MB limit" in str(exc_info.value)
        assert exc_info.value.suggested_modes == ("staged", "chunked")
        assert recognition.recognize_calls == []

    def test_twelve_hundred_megabyte_payload_exceeds_default_limit(self):
        encoded_length = 1200 * BYTES_PER_MB * 4 // 3

        estimated_mb = estimate_decoded_bytes(encoded_length) / BYTES_PER_MB

        assert estimated_mb > OrchestratorConfig().max_inline_mb
        assert estimated_mb == pytest.approx(1200, rel=1e-6)

    def test_storage_reference_is_resolved_to_uri(self, make_selector, recognition, mp3_config):
        request = TranscriptionRequest(
            config=mp3_config,
            audio=StorageAudio(bucket_name="test-bucket", object_name="audio/x.mp3"),
        )

        make_selector().route(request)

        assert recognition.recognize_calls[0].audio == {"uri": "gs://test-bucket/audio/x.mp3"}

    def test_provider_error_propagates(self, make_selector, recognition, mp3_config):
        def handler(request):
            raise ProviderError("fake", "invalid argument", code=400)

        recognition.recognize_handler = handler
        request = TranscriptionRequest(config=mp3_config, audio=InlineAudio.from_bytes(b"abc"))

        with pytest.raises(ProviderError):
            make_selector().route(request)


class TestStaged:
    def test_inline_audio_is_staged_polled_and_unstaged(
        self, make_selector, recognition, storage, mp3_config, make_cancel, make_response
    ):
        recognition.statuses = [
            OperationStatus(name="op", state=OperationState.RUNNING),
            _done(make_response),
        ]
        request = TranscriptionRequest(
            config=mp3_config, mode=ProcessingMode.STAGED, audio=InlineAudio.from_bytes(b"audio")
        )

        result = make_selector().route(request, make_cancel())

        assert result.success is True
        assert result.processing_mode is ProcessingMode.STAGED
        assert result.transcript == "staged text"
        assert result.operation_name == "operations/1"
        assert len(storage.uploads) == 1
        assert storage.deletes == storage.uploads
        assert storage.objects == {}
        assert recognition.started[0].audio == {"uri": f"gs://test-bucket/{storage.uploads[0]}"}

    def test_provider_failure_still_unstages_once(self, make_selector, recognition, storage, mp3_config):
        recognition.start_error = ProviderError("fake", "invalid audio", code=400)
        request = TranscriptionRequest(
            config=mp3_config, mode=ProcessingMode.STAGED, audio=InlineAudio.from_bytes(b"audio")
        )

        with pytest.raises(ProviderError):
            make_selector().route(request)

        assert len(storage.deletes) == 1
        assert storage.deletes == storage.uploads

    def test_operation_error_raises_provider_error(
        self, make_selector, recognition, storage, mp3_config, make_cancel
    ):
        recognition.statuses = [
            OperationStatus(name="op", state=OperationState.DONE_ERROR, error="bad encoding")
        ]
        request = TranscriptionRequest(
            config=mp3_config, mode=ProcessingMode.STAGED, audio=InlineAudio.from_bytes(b"audio")
        )

        with pytest.raises(ProviderError, match="bad encoding"):
            make_selector().route(request, make_cancel())

        assert len(storage.deletes) == 1

    def test_timeout_raises_and_unstages(self, make_selector, recognition, storage, mp3_config, make_cancel):
        request = TranscriptionRequest(
            config=mp3_config, mode=ProcessingMode.STAGED, audio=InlineAudio.from_bytes(b"audio")
        )

        with pytest.raises(TranscriptionTimeoutError):
            make_selector(OrchestratorConfig(poll_timeout_seconds=20)).route(request, make_cancel())

        assert len(storage.deletes) == 1

    def test_delete_failure_becomes_warning(
        self, make_selector, recognition, storage, mp3_config, make_cancel, make_response
    ):
        recognition.statuses = [_done(make_response)]
        storage.fail_delete = True
        request = TranscriptionRequest(
            config=mp3_config, mode=ProcessingMode.STAGED, audio=InlineAudio.from_bytes(b"audio")
        )

        result = make_selector().route(request, make_cancel())

        assert result.success is True
        assert len(result.warnings) == 1

    def test_client_uploaded_object_is_not_deleted(
        self, make_selector, recognition, storage, mp3_config, make_cancel, make_response
    ):
        recognition.statuses = [_done(make_response)]
        request = TranscriptionRequest(
            config=mp3_config,
            mode=ProcessingMode.STAGED,
            audio=StorageAudio(bucket_name="test-bucket", object_name="audio/client.mp3"),
        )

        result = make_selector().route(request, make_cancel())

        assert result.success is True
        assert storage.uploads == []
        assert storage.deletes == []

    def test_copied_object_is_transcribed_and_removed(
        self, make_selector, recognition, storage, mp3_config, make_cancel, make_response
    ):
        storage.objects[("drive-imports", "meetings/long.mp3")] = b"audio"
        recognition.statuses = [_done(make_response)]
        request = TranscriptionRequest(
            config=mp3_config,
            mode=ProcessingMode.STAGED,
            audio=StorageAudio(
                bucket_name="drive-imports",
                object_name="meetings/long.mp3",
                copy_to_staging=True,
            ),
        )

        result = make_selector().route(request, make_cancel())

        [(source, copied)] = storage.copies
        assert result.transcript == "staged text"
        assert source == "meetings/long.mp3"
        assert copied.startswith("audio/") and copied.endswith("-long.mp3")
        assert recognition.started[0].audio == {"uri": f"gs://test-bucket/{copied}"}
        assert storage.deletes == [copied]
        assert ("drive-imports", "meetings/long.mp3") in storage.objects

    def test_failed_copy_deletes_nothing(self, make_selector, recognition, storage, mp3_config):
        storage.fail_copy = True
        request = TranscriptionRequest(
            config=mp3_config,
            mode=ProcessingMode.STAGED,
            audio=StorageAudio(
                bucket_name="drive-imports", object_name="long.mp3", copy_to_staging=True
            ),
        )

        with pytest.raises(ProviderError):
            make_selector().route(request)

        assert recognition.started == []
        assert storage.deletes == []


class TestChunked:
    def test_pre_split_chunks_are_merged(self, make_selector, recognition, mp3_config, make_response, label_of):
        recognition.recognize_handler = lambda request: make_response((label_of(request), 0.9))
        request = TranscriptionRequest(
            config=mp3_config,
            mode=ProcessingMode.CHUNKED,
            chunks=(AudioChunk(index=1, data=b"world"), AudioChunk(index=0, data=b"hello")),
        )

        result = make_selector().route(request)

        assert result.success is True
        assert result.transcript == "hello world"

    def test_inline_linear16_is_split_server_side(self, make_selector, recognition, make_response):
        recognition.recognize_handler = lambda request: make_response(("part", 0.9))
        config = RecognitionConfig(encoding="LINEAR16", sample_rate_hertz=8000, language_code="ja-JP")
        audio = b"\x00" * (8000 * 2 * 55 + 10)
        request = TranscriptionRequest(
            config=config, mode=ProcessingMode.CHUNKED, audio=InlineAudio.from_bytes(audio)
        )

        result = make_selector().route(request)

        assert len(recognition.recognize_calls) == 2
        assert result.transcript == "part part"
