"""Custom exceptions for the audio-transcriber service."""


class RequestValidationError(Exception):
    """Raised when a transcription request or its config is invalid."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(f"Invalid transcription request: {'; '.join(self.errors)}")


class OversizeError(Exception):
    """Raised when an inline payload exceeds the direct-mode limit."""

    def __init__(
        self,
        limit_mb: float,
        estimated_mb: float,
        suggested_modes: tuple[str, ...] = ("staged", "chunked"),
    ):
        self.limit_mb = limit_mb
        self.estimated_mb = estimated_mb
        self.suggested_modes = suggested_modes
        super().__init__(
            f"Audio too large for direct processing: {estimated_mb:.2f}MB exceeds "
            f"the {limit_mb:g}MB limit; use {' or '.join(suggested_modes)} mode"
        )


class ProviderError(Exception):
    """Raised when the recognition provider or object storage rejects a call."""

    def __init__(
        self,
        service: str,
        message: str,
        code: int | str | None = None,
        transient: bool = False,
        cause: Exception | None = None,
    ):
        self.service = service
        self.message = message
        self.code = code
        self.transient = transient
        self.cause = cause
        suffix = f" (code {code})" if code is not None else ""
        super().__init__(f"{service} error{suffix}: {message}")


class TranscriptionTimeoutError(Exception):
    """Raised when a transcription does not finish before its deadline."""

    def __init__(self, request_id: str, timeout_seconds: float, message: str = ""):
        self.request_id = request_id
        self.timeout_seconds = timeout_seconds
        detail = f": {message}" if message else ""
        super().__init__(
            f"Transcription '{request_id}' did not finish within "
            f"{timeout_seconds:g}s{detail}"
        )


class ConfigurationError(Exception):
    """Raised when credentials or environment configuration are missing or invalid."""

    def __init__(self, message: str, cause: Exception | None = None):
        self.cause = cause
        super().__init__(message)
