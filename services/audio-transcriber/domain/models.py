"""Domain models for the audio transcription service."""

import base64
import binascii
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator


class AudioEncoding(str, Enum):
    """Audio encodings accepted by the recognition provider."""

    LINEAR16 = "LINEAR16"
    FLAC = "FLAC"
    MULAW = "MULAW"
    AMR = "AMR"
    AMR_WB = "AMR_WB"
    OGG_OPUS = "OGG_OPUS"
    SPEEX_WITH_HEADER_BYTE = "SPEEX_WITH_HEADER_BYTE"
    WEBM_OPUS = "WEBM_OPUS"
    MP3 = "MP3"


SUPPORTED_ENCODINGS = frozenset(e.value for e in AudioEncoding)


class ProcessingMode(str, Enum):
    """How a request's audio reaches the provider."""

    DIRECT = "direct"
    STAGED = "staged"
    CHUNKED = "chunked"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _request_id() -> str:
    return f"req_{uuid4().hex}"


def _seconds(value: Any) -> float | None:
    """Normalizes provider durations ("1.5s", {seconds, nanos}, numbers) to seconds."""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        return float(value.rstrip("s") or 0)
    if isinstance(value, dict):
        return float(value.get("seconds", 0) or 0) + float(value.get("nanos", 0) or 0) / 1e9
    raise ValueError(f"Unsupported duration value: {value!r}")


# --- Request side -----------------------------------------------------------


class DiarizationOptions(BaseModel, frozen=True):
    """Speaker attribution settings."""

    enabled: bool = False
    min_speaker_count: int | None = None
    max_speaker_count: int | None = None


class RecognitionConfig(BaseModel, frozen=True):
    """
    Caller-supplied recognition settings.

    Encoding and language are optional here so the validator can report their
    absence alongside every other violation. Unknown fields are ignored.
    """

    encoding: str | None = None
    sample_rate_hertz: int | None = None
    language_code: str | None = None
    diarization: DiarizationOptions = DiarizationOptions()
    model: str | None = None
    enable_automatic_punctuation: bool | None = None
    enable_word_time_offsets: bool | None = None
    enable_word_confidence: bool | None = None
    audio_channel_count: int | None = None
    enable_separate_recognition_per_channel: bool | None = None
    profanity_filter: bool | None = None


class InlineAudio(BaseModel, frozen=True):
    """Base64-encoded audio carried in the request itself."""

    kind: Literal["inline"] = "inline"
    content: str

    @classmethod
    def from_bytes(cls, data: bytes) -> "InlineAudio":
        return cls(content=base64.b64encode(data).decode("ascii"))

    def decode(self) -> bytes:
        return base64.b64decode(self.content)

    def is_well_formed(self) -> bool:
        """True if the content is strict base64."""
        try:
            base64.b64decode(self.content, validate=True)
        except binascii.Error:
            return False
        return True


class StorageAudio(BaseModel, frozen=True):
    """
    Audio already present in object storage.

    With ``copy_to_staging`` set, staged mode transcribes a temporary
    server-side copy in the staging bucket and deletes it afterward, leaving
    the source object untouched.
    """

    kind: Literal["storage"] = "storage"
    bucket_name: str
    object_name: str
    uri: str | None = None
    copy_to_staging: bool = False


AudioSource = Annotated[InlineAudio | StorageAudio, Field(discriminator="kind")]


class AudioChunk(BaseModel, frozen=True):
    """One independently transcribed, time-ordered slice of a longer recording."""

    index: int = Field(ge=0)
    data: bytes
    start_time: float | None = None
    request_id: str | None = None

    @classmethod
    def from_base64(
        cls, index: int, content: str, start_time: float | None = None
    ) -> "AudioChunk":
        return cls(index=index, data=base64.b64decode(content), start_time=start_time)


class TranscriptionRequest(BaseModel, frozen=True):
    """A single transcription request as handed over by the transport layer."""

    request_id: str = Field(default_factory=_request_id)
    config: RecognitionConfig
    mode: ProcessingMode = ProcessingMode.DIRECT
    audio: AudioSource | None = None
    chunks: tuple[AudioChunk, ...] | None = None
    client_id: str | None = None


class ValidationResult(BaseModel, frozen=True):
    """Outcome of config validation."""

    valid: bool
    errors: tuple[str, ...] = ()


class ProviderRequest(BaseModel, frozen=True):
    """Provider-shaped recognition payload: ``{"config": ..., "audio": ...}``."""

    config: dict[str, Any]
    audio: dict[str, str]

    @property
    def is_inline(self) -> bool:
        return "content" in self.audio


# --- Storage ----------------------------------------------------------------


class UploadMetadata(BaseModel, frozen=True):
    """Describes a file about to be uploaded."""

    file_name: str
    content_type: str = "application/octet-stream"
    size: int | None = None


class StagedObject(BaseModel, frozen=True):
    """An object staged for exactly one request."""

    bucket_name: str
    object_name: str
    uri: str
    owner_request_id: str
    created_at: datetime = Field(default_factory=_utcnow)


class SignedUrl(BaseModel, frozen=True):
    """A time-limited upload URL bound to one object and one content type."""

    url: str
    method: str = "PUT"
    bucket_name: str
    object_name: str
    content_type: str
    expires_at: datetime
    headers: dict[str, str] = Field(default_factory=dict)


class CleanupReport(BaseModel, frozen=True):
    """Result of deleting client-uploaded objects."""

    deleted: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()


class BearerToken(BaseModel, frozen=True):
    """Opaque access token issued by a credential provider."""

    token: str
    expires_at: datetime | None = None


# --- Provider responses -----------------------------------------------------


class WordInfo(BaseModel, frozen=True):
    word: str = ""
    start_time: float = 0.0
    end_time: float = 0.0
    confidence: float = 0.0
    speaker_tag: str | None = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_time(cls, value: Any) -> float:
        return _seconds(value) or 0.0

    @field_validator("confidence", mode="before")
    @classmethod
    def _parse_confidence(cls, value: Any) -> float:
        return float(value or 0.0)

    @field_validator("speaker_tag", mode="before")
    @classmethod
    def _parse_speaker(cls, value: Any) -> str | None:
        if value in (None, "", 0, "0"):
            return None
        return str(value)


class RecognitionAlternative(BaseModel, frozen=True):
    transcript: str = ""
    confidence: float = 0.0
    words: tuple[WordInfo, ...] = ()

    @field_validator("confidence", mode="before")
    @classmethod
    def _parse_confidence(cls, value: Any) -> float:
        return float(value or 0.0)


class RecognitionResult(BaseModel, frozen=True):
    alternatives: tuple[RecognitionAlternative, ...] = ()
    result_end_time: float | None = None
    language_code: str | None = None

    @field_validator("result_end_time", mode="before")
    @classmethod
    def _parse_end(cls, value: Any) -> float | None:
        return _seconds(value)

    @property
    def best(self) -> RecognitionAlternative | None:
        return self.alternatives[0] if self.alternatives else None


class RecognitionResponse(BaseModel, frozen=True):
    """Provider result validated once at the adapter boundary."""

    results: tuple[RecognitionResult, ...] = ()
    total_billed_time: float | None = None

    @field_validator("total_billed_time", mode="before")
    @classmethod
    def _parse_billed(cls, value: Any) -> float | None:
        return _seconds(value)

    @classmethod
    def from_provider_dict(cls, data: dict[str, Any]) -> "RecognitionResponse":
        return cls.model_validate(data)


class OperationState(str, Enum):
    RUNNING = "RUNNING"
    DONE_OK = "DONE_OK"
    DONE_ERROR = "DONE_ERROR"


class OperationStatus(BaseModel, frozen=True):
    """Snapshot of an asynchronous recognition job."""

    name: str
    state: OperationState
    response: RecognitionResponse | None = None
    error: str | None = None
    error_code: int | None = None
    progress_percent: int | None = None

    @property
    def done(self) -> bool:
        return self.state is not OperationState.RUNNING


class OutcomeKind(str, Enum):
    OK = "ok"
    ERR = "error"
    TIMED_OUT = "timed_out"


class OperationOutcome(BaseModel, frozen=True):
    """Terminal result of waiting on an operation."""

    kind: OutcomeKind
    operation_name: str
    response: RecognitionResponse | None = None
    message: str | None = None
    attempts: int = 0

    @classmethod
    def ok(cls, name: str, response: RecognitionResponse, attempts: int) -> "OperationOutcome":
        return cls(kind=OutcomeKind.OK, operation_name=name, response=response, attempts=attempts)

    @classmethod
    def err(cls, name: str, message: str, attempts: int) -> "OperationOutcome":
        return cls(kind=OutcomeKind.ERR, operation_name=name, message=message, attempts=attempts)

    @classmethod
    def timed_out(cls, name: str, message: str, attempts: int) -> "OperationOutcome":
        return cls(
            kind=OutcomeKind.TIMED_OUT, operation_name=name, message=message, attempts=attempts
        )


# --- Results ----------------------------------------------------------------


class WordDetail(BaseModel, frozen=True):
    """A recognized word with absolute timing."""

    word: str
    start_time: float
    end_time: float
    confidence: float = 0.0
    speaker_tag: str | None = None


class TranscriptSegment(BaseModel, frozen=True):
    index: int
    text: str
    start_time: float | None = None
    confidence: float = 0.0


class ChunkResult(BaseModel, frozen=True):
    """Outcome of transcribing one chunk."""

    index: int
    start_time: float
    success: bool
    transcript: str = ""
    confidence: float = 0.0
    result_count: int = 0
    words: tuple[WordDetail, ...] = ()
    error: str | None = None

    @property
    def has_results(self) -> bool:
        return self.success and self.result_count > 0


class ChunkFailure(BaseModel, frozen=True):
    index: int
    reason: str


class TranscriptionResult(BaseModel, frozen=True):
    """Final, immutable result of one transcription request."""

    success: bool
    request_id: str
    processing_mode: ProcessingMode
    transcript: str = ""
    segments: tuple[TranscriptSegment, ...] = ()
    words: tuple[WordDetail, ...] = ()
    confidence: float = 0.0
    total_billed_time: float | None = None
    operation_name: str | None = None
    failed_chunks: tuple[ChunkFailure, ...] = ()
    chunk_results: tuple[ChunkResult, ...] = ()
    warnings: tuple[str, ...] = ()
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def failed_chunk_indices(self) -> list[int]:
        return [failure.index for failure in self.failed_chunks]
