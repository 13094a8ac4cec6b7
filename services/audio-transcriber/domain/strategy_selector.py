"""Routes each request to direct, staged, or chunked recognition."""

import threading

from transcription_common import setup_logging

from config import OrchestratorConfig
from exceptions import (
    OversizeError,
    ProviderError,
    RequestValidationError,
    TranscriptionTimeoutError,
)
from infrastructure.interfaces import RecognitionService

from .chunk_orchestrator import BYTES_PER_MB, ChunkOrchestrator
from .config_validator import ConfigValidator
from .models import (
    InlineAudio,
    OperationOutcome,
    OutcomeKind,
    ProcessingMode,
    StorageAudio,
    TranscriptionRequest,
    TranscriptionResult,
    UploadMetadata,
)
from .operation_poller import OperationPoller
from .request_builder import RecognitionProfile, RecognitionRequestBuilder
from .storage_stager import StagingScope, StorageStager
from .transcript_builder import TranscriptBuilder

logger = setup_logging()

_STAGED_FILE_TYPES = {
    "LINEAR16": ("wav", "audio/wav"),
    "FLAC": ("flac", "audio/flac"),
    "MULAW": ("ulaw", "audio/basic"),
    "AMR": ("amr", "audio/amr"),
    "AMR_WB": ("awb", "audio/amr-wb"),
    "OGG_OPUS": ("ogg", "audio/ogg"),
    "SPEEX_WITH_HEADER_BYTE": ("spx", "audio/x-speex"),
    "WEBM_OPUS": ("webm", "audio/webm"),
    "MP3": ("mp3", "audio/mpeg"),
}


def estimate_decoded_bytes(encoded_length: int) -> int:
    """Approximates the decoded size of base64 text without decoding it."""
    return encoded_length * 3 // 4


class StrategySelector:
    """Validates a request and dispatches it to the matching processing path."""

    def __init__(
        self,
        validator: ConfigValidator,
        request_builder: RecognitionRequestBuilder,
        transcript_builder: TranscriptBuilder,
        recognition: RecognitionService,
        stager: StorageStager,
        poller: OperationPoller,
        chunk_orchestrator: ChunkOrchestrator,
        config: OrchestratorConfig,
    ):
        self._validator = validator
        self._request_builder = request_builder
        self._transcript_builder = transcript_builder
        self._recognition = recognition
        self._stager = stager
        self._poller = poller
        self._chunks = chunk_orchestrator
        self._config = config

    def route(
        self, request: TranscriptionRequest, cancel: threading.Event | None = None
    ) -> TranscriptionResult:
        """
        Transcribes a request using the path its mode and size call for.

        Args:
            request: The transcription request.
            cancel: Event that abandons polling or outstanding chunks when set.

        Returns:
            The TranscriptionResult. Chunked requests with failed chunks return
            ``success=False`` instead of raising.

        Raises:
            RequestValidationError: If the config or audio input is invalid.
            OversizeError: If direct-mode inline audio exceeds the limit.
            ProviderError: If recognition or storage fails.
            TranscriptionTimeoutError: If the job does not finish in time.
        """
        errors = list(self._validator.validate(request.config).errors)
        errors.extend(self._input_errors(request))
        if errors:
            logger.warning(
                "Transcription request rejected",
                extra={"request_id": request.request_id, "errors": errors},
            )
            raise RequestValidationError(errors)

        logger.info(
            "Routing transcription request",
            extra={
                "request_id": request.request_id,
                "mode": request.mode.value,
                "client_id": request.client_id,
            },
        )

        if request.mode is ProcessingMode.STAGED:
            return self._staged(request, cancel)
        if request.mode is ProcessingMode.CHUNKED:
            return self._chunked(request, cancel)
        return self._direct(request)

    def _input_errors(self, request: TranscriptionRequest) -> list[str]:
        audio = request.audio
        if request.mode is ProcessingMode.CHUNKED:
            if request.chunks:
                return list(self._validator.validate_chunks(request.chunks).errors)
            if not isinstance(audio, InlineAudio):
                return ["chunked mode requires inline audio or pre-split chunks"]
        elif audio is None:
            return ["audio is required"]

        if isinstance(audio, InlineAudio):
            if not audio.content:
                return ["audio content is empty"]
            if not audio.is_well_formed():
                return ["audio content is not valid base64"]
        return []

    def _direct(self, request: TranscriptionRequest) -> TranscriptionResult:
        audio = request.audio
        if isinstance(audio, InlineAudio):
            estimated_mb = estimate_decoded_bytes(len(audio.content)) / BYTES_PER_MB
            if estimated_mb > self._config.max_inline_mb:
                logger.warning(
                    "Inline audio over direct-mode limit",
                    extra={
                        "request_id": request.request_id,
                        "estimated_mb": round(estimated_mb, 2),
                        "limit_mb": self._config.max_inline_mb,
                    },
                )
                raise OversizeError(self._config.max_inline_mb, estimated_mb)
        else:
            audio = self._resolved(audio)

        provider_request = self._request_builder.build(
            audio, request.config, RecognitionProfile.DIRECT
        )
        response = self._recognition.recognize(provider_request)
        return self._transcript_builder.build(
            request.request_id, ProcessingMode.DIRECT, response
        )

    def _staged(
        self, request: TranscriptionRequest, cancel: threading.Event | None
    ) -> TranscriptionResult:
        audio = request.audio
        if isinstance(audio, StorageAudio):
            if not audio.copy_to_staging:
                outcome = self._run_long_running(request, self._resolved(audio), cancel)
                return self._staged_result(request, outcome, ())
            scope = self._stager.copy_scope(
                audio.bucket_name, audio.object_name, request.request_id
            )
            return self._run_in_scope(request, scope, cancel)

        extension, content_type = _STAGED_FILE_TYPES.get(
            request.config.encoding or "", ("bin", "application/octet-stream")
        )
        metadata = UploadMetadata(
            file_name=f"{request.request_id}.{extension}", content_type=content_type
        )
        scope = self._stager.scope(audio.decode(), metadata, request.request_id)
        return self._run_in_scope(request, scope, cancel)

    def _run_in_scope(
        self,
        request: TranscriptionRequest,
        scope: StagingScope,
        cancel: threading.Event | None,
    ) -> TranscriptionResult:
        with scope as staged:
            staged_audio = StorageAudio(
                bucket_name=staged.bucket_name,
                object_name=staged.object_name,
                uri=staged.uri,
            )
            outcome = self._run_long_running(request, staged_audio, cancel)
        return self._staged_result(request, outcome, tuple(scope.warnings))

    def _run_long_running(
        self,
        request: TranscriptionRequest,
        audio: StorageAudio,
        cancel: threading.Event | None,
    ) -> OperationOutcome:
        provider_request = self._request_builder.build(
            audio, request.config, RecognitionProfile.STAGED
        )
        operation_name = self._recognition.start_long_running(provider_request)
        logger.info(
            "Long-running recognition started",
            extra={"request_id": request.request_id, "operation_name": operation_name},
        )
        return self._poller.wait(
            operation_name,
            poll_interval=self._config.poll_interval_seconds,
            timeout=self._config.poll_timeout_seconds,
            cancel=cancel,
        )

    def _staged_result(
        self,
        request: TranscriptionRequest,
        outcome: OperationOutcome,
        warnings: tuple[str, ...],
    ) -> TranscriptionResult:
        if outcome.kind is OutcomeKind.ERR:
            raise ProviderError("recognition", outcome.message or "Operation failed")
        if outcome.kind is OutcomeKind.TIMED_OUT:
            raise TranscriptionTimeoutError(
                request.request_id, self._config.poll_timeout_seconds, outcome.message or ""
            )
        return self._transcript_builder.build(
            request.request_id,
            ProcessingMode.STAGED,
            outcome.response,
            operation_name=outcome.operation_name,
            warnings=warnings,
        )

    def _chunked(
        self, request: TranscriptionRequest, cancel: threading.Event | None
    ) -> TranscriptionResult:
        chunks = request.chunks or self._chunks.split(
            request.request_id, request.audio.decode(), request.config
        )
        return self._chunks.transcribe_chunked(
            request.request_id, chunks, request.config, cancel=cancel
        )

    def _resolved(self, audio: StorageAudio) -> StorageAudio:
        if audio.uri:
            return audio
        uri = self._stager.uri_for(audio.bucket_name, audio.object_name)
        return audio.model_copy(update={"uri": uri})
