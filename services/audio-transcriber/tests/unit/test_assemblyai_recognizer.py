"""Tests for AssemblyAIRecognizer using a mocked Transcriber."""

import base64
from types import SimpleNamespace
from unittest.mock import MagicMock

import assemblyai as aai
import httpx
import pytest

from domain.models import OperationState, OutcomeKind, ProviderRequest
from domain.operation_poller import OperationPoller
from exceptions import ProviderError
from infrastructure.assemblyai_recognizer import AssemblyAIRecognizer


def _word(text, start, end, speaker="A"):
    return MagicMock(text=text, start=start, end=end, confidence=0.9, speaker=speaker)


def _transcript(status=aai.TranscriptStatus.completed, error=None):
    transcript = MagicMock()
    transcript.id = "transcript-1"
    transcript.status = status
    transcript.error = error
    transcript.audio_duration = 12
    transcript.text = "hello there"
    transcript.confidence = 0.9
    transcript.words = [_word("hello", 0, 500), _word("there", 500, 1250, "B")]
    transcript.utterances = [
        MagicMock(text="hello", confidence=0.95, end=500, words=[_word("hello", 0, 500)]),
        MagicMock(text="there", confidence=0.85, end=1250, words=[_word("there", 500, 1250, "B")]),
    ]
    return transcript


@pytest.fixture
def transcriber() -> MagicMock:
    return MagicMock()


@pytest.fixture
def recognizer(transcriber) -> AssemblyAIRecognizer:
    return AssemblyAIRecognizer(transcriber)


def _request(audio: dict) -> ProviderRequest:
    return ProviderRequest(
        config={
            "encoding": "MP3",
            "language_code": "ja-JP",
            "diarization_config": {
                "enable_speaker_diarization": True,
                "min_speaker_count": 2,
                "max_speaker_count": 2,
            },
        },
        audio=audio,
    )


class TestRecognize:
    def test_inline_audio_maps_utterances_to_results(self, recognizer, transcriber):
        transcriber.transcribe.return_value = _transcript()
        request = _request({"content": base64.b64encode(b"mp3").decode("ascii")})

        response = recognizer.recognize(request)

        config = transcriber.transcribe.call_args.kwargs["config"]
        assert config.language_code == "ja"
        assert config.speaker_labels is True
        assert config.speakers_expected == 2
        assert [result.best.transcript for result in response.results] == ["hello", "there"]
        assert response.results[1].result_end_time == 1.25
        assert response.results[1].best.words[0].start_time == 0.5
        assert response.results[1].best.words[0].speaker_tag == "B"
        assert response.total_billed_time == 12.0

    def test_error_status_raises(self, recognizer, transcriber):
        transcriber.transcribe.return_value = _transcript(
            status=aai.TranscriptStatus.error, error="unsupported file"
        )

        with pytest.raises(ProviderError, match="unsupported file"):
            recognizer.recognize(_request({"uri": "https://minio/audio/a.mp3"}))

    def test_network_failure_is_transient(self, recognizer, transcriber):
        transcriber.transcribe.side_effect = httpx.ConnectError("connection refused")

        with pytest.raises(ProviderError) as exc_info:
            recognizer.recognize(_request({"uri": "https://minio/audio/a.mp3"}))

        assert exc_info.value.transient is True


class TestLongRunning:
    def test_submit_returns_transcript_id(self, recognizer, transcriber):
        transcriber.submit.return_value = _transcript(status=aai.TranscriptStatus.queued)

        name = recognizer.start_long_running(_request({"uri": "https://minio/audio/a.mp3"}))

        assert name == "transcript-1"
        assert transcriber.submit.call_args.args[0] == "https://minio/audio/a.mp3"

    def test_inline_audio_cannot_be_submitted(self, recognizer):
        with pytest.raises(ProviderError):
            recognizer.start_long_running(_request({"content": "AAAA"}))


class TestGetOperation:
    @pytest.fixture
    def served(self) -> dict:
        return {"id": "transcript-1", "status": "processing", "audio_url": "https://minio/a.mp3"}

    @pytest.fixture
    def calls(self) -> list[str]:
        return []

    @pytest.fixture
    def api_client(self, served, calls) -> SimpleNamespace:
        def respond(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            return httpx.Response(200, json=served)

        http_client = httpx.Client(
            base_url="https://api.assemblyai.com", transport=httpx.MockTransport(respond)
        )
        return SimpleNamespace(http_client=http_client)

    @pytest.fixture
    def polling_recognizer(self, transcriber, api_client) -> AssemblyAIRecognizer:
        return AssemblyAIRecognizer(transcriber, client=api_client)

    @pytest.mark.parametrize("status", ["queued", "processing"])
    def test_in_progress_transcript_returns_running_after_one_fetch(
        self, polling_recognizer, served, calls, status
    ):
        served["status"] = status

        operation = polling_recognizer.get_operation("transcript-1")

        assert operation.state is OperationState.RUNNING
        assert calls == ["/v2/transcript/transcript-1"]

    def test_completed_transcript_carries_response(self, polling_recognizer, served):
        served.update(
            status="completed",
            text="hello",
            confidence=0.9,
            audio_duration=3,
            words=[{"text": "hello", "start": 0, "end": 500, "confidence": 0.9}],
        )

        operation = polling_recognizer.get_operation("transcript-1")

        assert operation.state is OperationState.DONE_OK
        assert operation.response.results[0].best.transcript == "hello"
        assert operation.response.results[0].result_end_time == 0.5

    def test_failed_transcript_reports_error(self, polling_recognizer, served):
        served.update(status="error", error="audio too short")

        operation = polling_recognizer.get_operation("transcript-1")

        assert operation.state is OperationState.DONE_ERROR
        assert operation.error == "audio too short"

    def test_poller_times_out_on_a_transcript_that_never_finishes(
        self, polling_recognizer, calls, clock, make_cancel
    ):
        poller = OperationPoller(polling_recognizer, poll_interval=5, timeout=20, clock=clock)

        outcome = poller.wait("transcript-1", cancel=make_cancel())

        assert outcome.kind is OutcomeKind.TIMED_OUT
        assert len(calls) == 4

    def test_poller_stops_fetching_once_cancelled(
        self, polling_recognizer, calls, clock, make_cancel
    ):
        poller = OperationPoller(polling_recognizer, poll_interval=5, timeout=600, clock=clock)

        outcome = poller.wait("transcript-1", cancel=make_cancel(cancel_after_waits=1))

        assert outcome.kind is OutcomeKind.TIMED_OUT
        assert calls == ["/v2/transcript/transcript-1"]
