"""Builds provider recognition payloads from validated requests."""

from enum import Enum
from typing import Any

from .config_validator import DEFAULT_MAX_SPEAKERS, DEFAULT_MIN_SPEAKERS
from .models import InlineAudio, ProviderRequest, RecognitionConfig, StorageAudio

LONG_FORM_MODEL = "latest_long"
SHORT_FORM_MODEL = "latest_short"
CHUNK_MAX_SPEAKERS = 2

# The only caller fields copied into the payload on top of the profile defaults.
OVERRIDABLE_FIELDS = (
    "model",
    "enable_automatic_punctuation",
    "enable_word_time_offsets",
    "enable_word_confidence",
    "audio_channel_count",
    "enable_separate_recognition_per_channel",
    "profanity_filter",
)


class RecognitionProfile(str, Enum):
    DIRECT = "direct"
    STAGED = "staged"
    CHUNK = "chunk"


class RecognitionRequestBuilder:
    """Turns an audio reference and config into a provider payload."""

    def __init__(self, default_sample_rate_hertz: int = 16000):
        self._default_sample_rate_hertz = default_sample_rate_hertz

    def build(
        self,
        audio: InlineAudio | StorageAudio,
        config: RecognitionConfig,
        profile: RecognitionProfile,
    ) -> ProviderRequest:
        """
        Builds the recognition payload for one provider call.

        Args:
            audio: Inline base64 content or a storage reference with a resolved URI.
            config: A config that already passed validation.
            profile: Selects model and feature defaults.

        Returns:
            ProviderRequest with ``audio.content`` or ``audio.uri`` set.
        """
        payload = self._profile_defaults(profile)
        payload["encoding"] = config.encoding
        payload["language_code"] = config.language_code
        payload["sample_rate_hertz"] = (
            config.sample_rate_hertz or self._default_sample_rate_hertz
        )

        for field in OVERRIDABLE_FIELDS:
            value = getattr(config, field)
            if value is not None:
                payload[field] = value

        diarization = self._diarization(config, profile)
        if diarization:
            payload["diarization_config"] = diarization

        return ProviderRequest(config=payload, audio=self._audio(audio))

    def _profile_defaults(self, profile: RecognitionProfile) -> dict[str, Any]:
        if profile is RecognitionProfile.CHUNK:
            return {
                "model": SHORT_FORM_MODEL,
                "use_enhanced": True,
                "enable_automatic_punctuation": True,
                "enable_word_time_offsets": True,
                "enable_word_confidence": True,
                "max_alternatives": 1,
                "profanity_filter": False,
            }
        return {
            "model": LONG_FORM_MODEL,
            "use_enhanced": True,
            "enable_automatic_punctuation": True,
            "enable_word_time_offsets": True,
            "max_alternatives": 1,
        }

    def _diarization(
        self, config: RecognitionConfig, profile: RecognitionProfile
    ) -> dict[str, Any] | None:
        spec = config.diarization
        if not spec.enabled:
            return None

        if profile is RecognitionProfile.CHUNK:
            min_speakers = 1
            max_speakers = min(spec.max_speaker_count or CHUNK_MAX_SPEAKERS, CHUNK_MAX_SPEAKERS)
        else:
            min_speakers = spec.min_speaker_count or DEFAULT_MIN_SPEAKERS
            max_speakers = spec.max_speaker_count or DEFAULT_MAX_SPEAKERS

        return {
            "enable_speaker_diarization": True,
            "min_speaker_count": min_speakers,
            "max_speaker_count": max_speakers,
        }

    def _audio(self, audio: InlineAudio | StorageAudio) -> dict[str, str]:
        if isinstance(audio, InlineAudio):
            return {"content": audio.content}
        if not audio.uri:
            raise ValueError(f"Storage audio '{audio.object_name}' has no resolved URI")
        return {"uri": audio.uri}
