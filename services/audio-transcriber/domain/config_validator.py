"""Validation of caller-supplied recognition settings."""

from .models import SUPPORTED_ENCODINGS, AudioChunk, RecognitionConfig, ValidationResult

MIN_SAMPLE_RATE_HERTZ = 8000
MAX_SAMPLE_RATE_HERTZ = 48000

# Applied when diarization is enabled without explicit speaker bounds.
DEFAULT_MIN_SPEAKERS = 2
DEFAULT_MAX_SPEAKERS = 6


class ConfigValidator:
    """Checks a RecognitionConfig and collects every violation."""

    def validate(self, config: RecognitionConfig) -> ValidationResult:
        """
        Validates a recognition config.

        Args:
            config: The caller-supplied config.

        Returns:
            ValidationResult listing one message per failed check, in check order.
        """
        errors: list[str] = []

        if not config.encoding:
            errors.append("encoding is required")
        elif config.encoding not in SUPPORTED_ENCODINGS:
            errors.append(f"Unsupported encoding: {config.encoding}")

        if not config.language_code:
            errors.append("language_code is required")

        if config.sample_rate_hertz is not None and not (
            MIN_SAMPLE_RATE_HERTZ <= config.sample_rate_hertz <= MAX_SAMPLE_RATE_HERTZ
        ):
            errors.append(
                f"sample_rate_hertz must be between {MIN_SAMPLE_RATE_HERTZ} "
                f"and {MAX_SAMPLE_RATE_HERTZ}"
            )

        diarization = config.diarization
        if diarization.enabled:
            min_speakers = (
                diarization.min_speaker_count
                if diarization.min_speaker_count is not None
                else DEFAULT_MIN_SPEAKERS
            )
            max_speakers = (
                diarization.max_speaker_count
                if diarization.max_speaker_count is not None
                else DEFAULT_MAX_SPEAKERS
            )
            if min_speakers < 1:
                errors.append("min_speaker_count must be at least 1")
            if max_speakers < min_speakers:
                errors.append(
                    "max_speaker_count must be greater than or equal to min_speaker_count"
                )

        return ValidationResult(valid=not errors, errors=tuple(errors))

    def validate_chunks(self, chunks: tuple[AudioChunk, ...]) -> ValidationResult:
        """Checks that chunk indices run 0..n-1 and every chunk carries audio."""
        errors: list[str] = []

        if not chunks:
            errors.append("at least one chunk is required")
        elif sorted(chunk.index for chunk in chunks) != list(range(len(chunks))):
            errors.append("chunk indices must be contiguous from 0")

        for chunk in chunks:
            if not chunk.data:
                errors.append(f"chunk {chunk.index} has no audio data")

        return ValidationResult(valid=not errors, errors=tuple(errors))
