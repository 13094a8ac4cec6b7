"""
Audio Transcriber Service.

Command-line entry point: transcribes a local audio file and prints the
result as JSON.
"""

import argparse
import sys
from pathlib import Path

from ddtrace import patch_all

from domain import (
    DiarizationOptions,
    InlineAudio,
    ProcessingMode,
    RecognitionConfig,
    TranscriptionRequest,
)
from exceptions import (
    ConfigurationError,
    OversizeError,
    ProviderError,
    RequestValidationError,
    TranscriptionTimeoutError,
)

patch_all()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Transcribe an audio file.")
    parser.add_argument("file", type=Path, help="Path to the audio file")
    parser.add_argument("--language", default="ja-JP", help="BCP-47 language code")
    parser.add_argument("--encoding", default="MP3", help="Audio encoding, e.g. MP3 or LINEAR16")
    parser.add_argument("--sample-rate", type=int, default=None, help="Sample rate in hertz")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in ProcessingMode],
        default=ProcessingMode.DIRECT.value,
    )
    parser.add_argument("--diarize", action="store_true", help="Enable speaker diarization")
    parser.add_argument("--min-speakers", type=int, default=None)
    parser.add_argument("--max-speakers", type=int, default=None)
    parser.add_argument("--client-id", default="cli")
    return parser.parse_args(argv)


def build_request(args: argparse.Namespace) -> TranscriptionRequest:
    """Builds a transcription request from parsed CLI arguments."""
    config = RecognitionConfig(
        encoding=args.encoding,
        language_code=args.language,
        sample_rate_hertz=args.sample_rate,
        diarization=DiarizationOptions(
            enabled=args.diarize,
            min_speaker_count=args.min_speakers,
            max_speaker_count=args.max_speakers,
        ),
    )
    return TranscriptionRequest(
        config=config,
        mode=ProcessingMode(args.mode),
        audio=InlineAudio.from_bytes(args.file.read_bytes()),
        client_id=args.client_id,
    )


def main(argv: list[str] | None = None) -> int:
    """Transcribes the file and writes the result to stdout."""
    args = parse_args(argv)

    from dependencies import get_handler

    handler = get_handler()
    try:
        result = handler.handle_transcribe(build_request(args))
    except (
        ConfigurationError,
        OversizeError,
        ProviderError,
        RequestValidationError,
        TranscriptionTimeoutError,
    ) as e:
        print(f"Transcription failed: {e}", file=sys.stderr)
        return 1

    print(result.model_dump_json(indent=2))
    return 0 if result.success else 2


if __name__ == "__main__":
    sys.exit(main())
