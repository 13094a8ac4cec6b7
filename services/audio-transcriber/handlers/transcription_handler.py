"""Handler exposing the transcription operations to callers."""

import threading
from datetime import datetime, timezone
from typing import Any

from transcription_common import setup_logging

from config import SERVICE_VERSION
from domain.models import (
    CleanupReport,
    SignedUrl,
    TranscriptionRequest,
    TranscriptionResult,
    UploadMetadata,
)
from domain.storage_stager import StorageStager
from domain.strategy_selector import StrategySelector

logger = setup_logging()


class InFlightRegistry:
    """Tracks cancellation events for requests that are currently running."""

    def __init__(self):
        self._lock = threading.Lock()
        self._events: dict[str, threading.Event] = {}

    def register(self, request_id: str) -> threading.Event:
        with self._lock:
            if request_id in self._events:
                raise ValueError(f"Request '{request_id}' is already in flight")
            event = threading.Event()
            self._events[request_id] = event
            return event

    def release(self, request_id: str) -> None:
        with self._lock:
            self._events.pop(request_id, None)

    def cancel(self, request_id: str) -> bool:
        with self._lock:
            event = self._events.get(request_id)
        if event is None:
            return False
        event.set()
        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)


class TranscriptionHandler:
    """Entry point for transcription, staged uploads, cleanup, and cancellation."""

    def __init__(
        self,
        selector: StrategySelector,
        stager: StorageStager,
        provider_name: str,
        storage_backend: str,
        registry: InFlightRegistry | None = None,
    ):
        self._selector = selector
        self._stager = stager
        self._provider_name = provider_name
        self._storage_backend = storage_backend
        self._registry = registry if registry is not None else InFlightRegistry()

    def handle_transcribe(self, request: TranscriptionRequest) -> TranscriptionResult:
        """
        Transcribes one request.

        Args:
            request: The transcription request.

        Returns:
            The TranscriptionResult. Partial chunk failures are reported through
            ``success`` and ``failed_chunks``, not raised.

        Raises:
            RequestValidationError: If the request is invalid.
            OversizeError: If inline audio is too large for direct mode.
            ProviderError: If the provider or storage fails.
            TranscriptionTimeoutError: If the job runs past its deadline or is cancelled.
        """
        logger.info(
            "Transcription requested",
            extra={
                "request_id": request.request_id,
                "mode": request.mode.value,
                "client_id": request.client_id,
            },
        )

        cancel = self._registry.register(request.request_id)
        try:
            result = self._selector.route(request, cancel)
        except Exception:
            logger.exception(
                "Transcription failed",
                extra={"request_id": request.request_id, "mode": request.mode.value},
            )
            raise
        finally:
            self._registry.release(request.request_id)

        logger.info(
            "Transcription finished",
            extra={
                "request_id": request.request_id,
                "success": result.success,
                "confidence": result.confidence,
                "failed_chunks": result.failed_chunk_indices,
                "warnings": list(result.warnings),
            },
        )
        return result

    def handle_staged_upload(self, metadata: UploadMetadata) -> SignedUrl:
        """Issues a signed URL the client uploads oversized audio to."""
        try:
            return self._stager.issue_upload_url(metadata)
        except Exception:
            logger.exception(
                "Upload URL generation failed", extra={"file_name": metadata.file_name}
            )
            raise

    def handle_cleanup(self, object_names: list[str]) -> CleanupReport:
        """Deletes client-uploaded staging objects; per-object failures are reported."""
        return self._stager.remove(object_names)

    def cancel(self, request_id: str) -> bool:
        """Signals an in-flight request to stop; False if it is not running."""
        cancelled = self._registry.cancel(request_id)
        logger.info(
            "Cancellation requested",
            extra={"request_id": request_id, "in_flight": cancelled},
        )
        return cancelled

    def health(self) -> dict[str, Any]:
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": SERVICE_VERSION,
            "services": {
                "recognition": self._provider_name,
                "storage": self._storage_backend,
            },
            "in_flight": len(self._registry),
        }
