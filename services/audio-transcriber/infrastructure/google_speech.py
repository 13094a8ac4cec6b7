"""Google Cloud Speech-to-Text implementation of the RecognitionService interface."""

import base64
from typing import Any

from google.api_core import exceptions as google_exceptions
from google.cloud import speech_v1p1beta1 as speech
from google.protobuf.json_format import MessageToDict
from transcription_common import setup_logging

from domain.models import (
    OperationState,
    OperationStatus,
    ProviderRequest,
    RecognitionResponse,
)
from exceptions import ProviderError

from .interfaces import RecognitionService

logger = setup_logging()

SERVICE_NAME = "google-speech"

# Status codes that are retried even though they are not server errors.
_TRANSIENT_CLIENT_CODES = {408, 429}


def _to_dict(message) -> dict[str, Any]:
    return MessageToDict(message._pb, preserving_proto_field_name=True)


class GoogleSpeechRecognizer(RecognitionService):
    """Handles speech recognition using Google Cloud Speech-to-Text v1p1beta1."""

    name = SERVICE_NAME

    def __init__(self, client: speech.SpeechClient):
        self._client = client

    def recognize(self, request: ProviderRequest) -> RecognitionResponse:
        config, audio = self._build(request)
        try:
            response = self._client.recognize(config=config, audio=audio)
        except Exception as e:
            raise self._provider_error("Synchronous recognition failed", e) from e

        result = RecognitionResponse.from_provider_dict(_to_dict(response))
        logger.info(
            "Synchronous recognition completed",
            extra={"result_count": len(result.results)},
        )
        return result

    def start_long_running(self, request: ProviderRequest) -> str:
        config, audio = self._build(request)
        try:
            operation = self._client.long_running_recognize(config=config, audio=audio)
        except Exception as e:
            raise self._provider_error("Failed to start long-running recognition", e) from e

        operation_name = operation.operation.name
        logger.info(
            "Long-running recognition submitted",
            extra={"operation_name": operation_name, "uri": request.audio.get("uri")},
        )
        return operation_name

    def get_operation(self, name: str) -> OperationStatus:
        try:
            operation = self._client.transport.operations_client.get_operation(name)
        except Exception as e:
            raise self._provider_error("Failed to fetch operation status", e) from e

        progress = None
        if operation.metadata.value:
            metadata = speech.LongRunningRecognizeMetadata.deserialize(operation.metadata.value)
            progress = metadata.progress_percent

        if not operation.done:
            return OperationStatus(
                name=name, state=OperationState.RUNNING, progress_percent=progress
            )

        if operation.HasField("error"):
            return OperationStatus(
                name=name,
                state=OperationState.DONE_ERROR,
                error=operation.error.message or "Operation failed",
                error_code=operation.error.code,
                progress_percent=progress,
            )

        response = speech.LongRunningRecognizeResponse.deserialize(operation.response.value)
        return OperationStatus(
            name=name,
            state=OperationState.DONE_OK,
            response=RecognitionResponse.from_provider_dict(_to_dict(response)),
            progress_percent=progress,
        )

    def _build(
        self, request: ProviderRequest
    ) -> tuple[speech.RecognitionConfig, speech.RecognitionAudio]:
        fields = dict(request.config)
        encoding = fields.pop("encoding", None)
        config = speech.RecognitionConfig(fields)
        if encoding:
            config.encoding = speech.RecognitionConfig.AudioEncoding[encoding]

        if request.is_inline:
            audio = speech.RecognitionAudio(content=base64.b64decode(request.audio["content"]))
        else:
            audio = speech.RecognitionAudio(uri=request.audio["uri"])
        return config, audio

    def _provider_error(self, message: str, error: Exception) -> ProviderError:
        code = None
        transient = isinstance(error, ConnectionError)
        if isinstance(error, google_exceptions.GoogleAPICallError):
            code = int(error.code) if error.code is not None else None
            transient = isinstance(error, google_exceptions.ServerError) or (
                code in _TRANSIENT_CLIENT_CODES
            )
            detail = error.message
        elif isinstance(error, google_exceptions.RetryError):
            transient = True
            detail = str(error)
        else:
            detail = str(error)

        logger.warning(
            message,
            extra={"code": code, "transient": transient, "error": detail},
        )
        return ProviderError(
            SERVICE_NAME, f"{message}: {detail}", code=code, transient=transient, cause=error
        )
