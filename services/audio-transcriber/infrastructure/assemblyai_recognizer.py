"""AssemblyAI implementation of the RecognitionService interface."""

import base64
import tempfile

import assemblyai as aai
import httpx
from assemblyai import api as aai_api
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

SERVICE_NAME = "assemblyai"

_RUNNING_STATUSES = {aai.TranscriptStatus.queued, aai.TranscriptStatus.processing}

# Languages AssemblyAI distinguishes by region; everything else uses the bare code.
_REGIONAL_LANGUAGES = {"en_us", "en_uk", "en_au"}


def _language(language_code: str | None) -> str | None:
    if not language_code:
        return None
    code = language_code.lower().replace("-", "_")
    if code in _REGIONAL_LANGUAGES:
        return code
    return code.split("_", 1)[0]


class AssemblyAIRecognizer(RecognitionService):
    """Handles speech recognition using AssemblyAI; transcript ids are operation names."""

    name = SERVICE_NAME

    def __init__(self, transcriber: aai.Transcriber, client: aai.Client | None = None):
        self._transcriber = transcriber
        self._client = client

    def recognize(self, request: ProviderRequest) -> RecognitionResponse:
        """
        Transcribes audio and waits for the result.

        Inline audio is written to a temp file (required by the AssemblyAI SDK).
        """
        config = self._transcription_config(request)
        try:
            if request.is_inline:
                with tempfile.NamedTemporaryFile(suffix=".audio", delete=True) as temp_file:
                    temp_file.write(base64.b64decode(request.audio["content"]))
                    temp_file.flush()
                    transcript = self._transcriber.transcribe(temp_file.name, config=config)
            else:
                transcript = self._transcriber.transcribe(request.audio["uri"], config=config)
        except Exception as e:
            raise self._provider_error("Transcription request failed", e) from e

        if transcript.status == aai.TranscriptStatus.error:
            raise ProviderError(SERVICE_NAME, transcript.error or "Transcription failed")

        response = self._response(transcript)
        logger.info(
            "Audio transcription successful",
            extra={"transcript_id": transcript.id, "result_count": len(response.results)},
        )
        return response

    def start_long_running(self, request: ProviderRequest) -> str:
        if request.is_inline:
            raise ProviderError(SERVICE_NAME, "Asynchronous transcription requires an audio URL")

        try:
            transcript = self._transcriber.submit(
                request.audio["uri"], config=self._transcription_config(request)
            )
        except Exception as e:
            raise self._provider_error("Failed to submit transcription", e) from e

        if transcript.status == aai.TranscriptStatus.error:
            raise ProviderError(SERVICE_NAME, transcript.error or "Transcription rejected")

        logger.info("Transcription submitted", extra={"transcript_id": transcript.id})
        return transcript.id

    def get_operation(self, name: str) -> OperationStatus:
        """Fetches the transcript status once, without waiting for completion."""
        client = self._client or aai.Client.get_default()
        try:
            transcript = aai_api.get_transcript(client.http_client, name)
        except Exception as e:
            raise self._provider_error("Failed to fetch transcript status", e) from e

        if transcript.status in _RUNNING_STATUSES:
            return OperationStatus(name=name, state=OperationState.RUNNING)
        if transcript.status == aai.TranscriptStatus.error:
            return OperationStatus(
                name=name,
                state=OperationState.DONE_ERROR,
                error=transcript.error or "Transcription failed",
            )
        return OperationStatus(
            name=name, state=OperationState.DONE_OK, response=self._response(transcript)
        )

    def _transcription_config(self, request: ProviderRequest) -> aai.TranscriptionConfig:
        config = request.config
        diarization = config.get("diarization_config") or {}
        return aai.TranscriptionConfig(
            language_code=_language(config.get("language_code")),
            punctuate=config.get("enable_automatic_punctuation", True),
            filter_profanity=config.get("profanity_filter", False),
            speaker_labels=bool(diarization.get("enable_speaker_diarization")),
            speakers_expected=(
                diarization.get("max_speaker_count")
                if diarization.get("min_speaker_count") == diarization.get("max_speaker_count")
                else None
            ),
        )

    def _response(self, transcript) -> RecognitionResponse:
        """Maps utterances (or the whole text) to provider-neutral results; times in ms."""
        results = []
        if transcript.utterances:
            for utterance in transcript.utterances:
                results.append(
                    {
                        "alternatives": [
                            {
                                "transcript": utterance.text,
                                "confidence": utterance.confidence,
                                "words": [self._word(w) for w in utterance.words],
                            }
                        ],
                        "result_end_time": utterance.end / 1000,
                    }
                )
        elif transcript.text:
            words = transcript.words or []
            results.append(
                {
                    "alternatives": [
                        {
                            "transcript": transcript.text,
                            "confidence": transcript.confidence,
                            "words": [self._word(w) for w in words],
                        }
                    ],
                    "result_end_time": words[-1].end / 1000 if words else None,
                }
            )

        return RecognitionResponse.from_provider_dict(
            {"results": results, "total_billed_time": transcript.audio_duration}
        )

    def _word(self, word) -> dict:
        return {
            "word": word.text,
            "start_time": word.start / 1000,
            "end_time": word.end / 1000,
            "confidence": word.confidence,
            "speaker_tag": word.speaker,
        }

    def _provider_error(self, message: str, error: Exception) -> ProviderError:
        transient = isinstance(error, (httpx.TransportError, ConnectionError))
        logger.warning(message, extra={"transient": transient, "error": str(error)})
        return ProviderError(
            SERVICE_NAME, f"{message}: {error}", transient=transient, cause=error
        )
