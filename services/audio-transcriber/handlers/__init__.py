"""Handler layer exports."""

from .transcription_handler import InFlightRegistry, TranscriptionHandler

__all__ = ["InFlightRegistry", "TranscriptionHandler"]
