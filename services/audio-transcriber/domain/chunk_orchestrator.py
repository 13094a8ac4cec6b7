"""Fans chunked audio out to the provider and merges the results in index order."""

import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait

from transcription_common import setup_logging

from config import OrchestratorConfig
from exceptions import ProviderError, RequestValidationError, TranscriptionTimeoutError
from infrastructure.interfaces import RecognitionService

from .models import (
    AudioChunk,
    AudioEncoding,
    ChunkFailure,
    ChunkResult,
    InlineAudio,
    ProcessingMode,
    RecognitionConfig,
    TranscriptionResult,
    TranscriptSegment,
)
from .request_builder import RecognitionProfile, RecognitionRequestBuilder
from .transcript_builder import TranscriptBuilder

logger = setup_logging()

BYTES_PER_MB = 1024 * 1024

# Bytes per sample for encodings that can be cut at arbitrary sample boundaries.
_RAW_SAMPLE_WIDTH = {
    AudioEncoding.LINEAR16.value: 2,
    AudioEncoding.MULAW.value: 1,
}

# Upper bound on a single executor wait so cancellation is noticed promptly.
_WAIT_SLICE_SECONDS = 0.5


class ChunkOrchestrator:
    """Transcribes chunks concurrently on a bounded pool and merges them."""

    def __init__(
        self,
        recognition: RecognitionService,
        request_builder: RecognitionRequestBuilder,
        transcript_builder: TranscriptBuilder,
        config: OrchestratorConfig,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._recognition = recognition
        self._request_builder = request_builder
        self._transcript_builder = transcript_builder
        self._config = config
        self._clock = clock

    def transcribe_chunked(
        self,
        request_id: str,
        chunks: Sequence[AudioChunk],
        config: RecognitionConfig,
        cancel: threading.Event | None = None,
    ) -> TranscriptionResult:
        """
        Transcribes every chunk and merges the results.

        A failing chunk never aborts its siblings. The merged transcript follows
        chunk index order regardless of completion order.

        Args:
            request_id: Id of the owning request.
            chunks: Chunks with contiguous indices starting at 0.
            config: A validated recognition config shared by all chunks.
            cancel: Event that abandons outstanding chunks when set.

        Returns:
            The merged TranscriptionResult; ``success`` is False if any chunk failed.

        Raises:
            TranscriptionTimeoutError: If the chunk deadline passes or the request
                is cancelled before every chunk finished.
        """
        cancel = cancel or threading.Event()
        ordered = sorted(chunks, key=lambda chunk: chunk.index)
        offsets = self.start_offsets(ordered, config)

        logger.info(
            "Chunked transcription started",
            extra={
                "request_id": request_id,
                "chunk_count": len(ordered),
                "workers": self._config.chunk_workers,
            },
        )

        executor = ThreadPoolExecutor(
            max_workers=self._config.chunk_workers,
            thread_name_prefix="chunk-worker",
        )
        futures: dict[Future, int] = {
            executor.submit(
                self._transcribe_chunk, request_id, chunk, offsets[chunk.index], config, cancel
            ): chunk.index
            for chunk in ordered
        }
        results: dict[int, ChunkResult] = {}
        try:
            deadline = self._clock() + self._config.chunk_timeout_seconds
            pending = set(futures)
            while pending:
                remaining = deadline - self._clock()
                if cancel.is_set() or remaining <= 0:
                    logger.warning(
                        "Chunked transcription abandoned",
                        extra={
                            "request_id": request_id,
                            "completed": len(results),
                            "outstanding": len(pending),
                            "cancelled": cancel.is_set(),
                        },
                    )
                    raise TranscriptionTimeoutError(
                        request_id,
                        self._config.chunk_timeout_seconds,
                        "cancelled" if cancel.is_set() else f"{len(pending)} chunk(s) unfinished",
                    )
                done, pending = wait(
                    pending,
                    timeout=min(remaining, _WAIT_SLICE_SECONDS),
                    return_when=FIRST_COMPLETED,
                )
                for future in done:
                    results[futures[future]] = future.result()
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return self.merge(request_id, list(results.values()))

    def merge(self, request_id: str, chunk_results: Sequence[ChunkResult]) -> TranscriptionResult:
        """
        Merges per-chunk results by index.

        Transcripts are joined with one space; failed and empty chunks are
        skipped. Aggregate confidence averages only chunks that returned at
        least one result.
        """
        ordered = sorted(chunk_results, key=lambda result: result.index)
        succeeded = [result for result in ordered if result.success]
        failures = tuple(
            ChunkFailure(index=result.index, reason=result.error or "unknown error")
            for result in ordered
            if not result.success
        )

        scored = [result.confidence for result in succeeded if result.has_results]
        confidence = sum(scored) / len(scored) if scored else 0.0

        if failures:
            log = logger.error if not succeeded else logger.warning
            log(
                "Chunked transcription finished with failures",
                extra={
                    "request_id": request_id,
                    "failed_chunks": [failure.index for failure in failures],
                    "succeeded_chunks": len(succeeded),
                },
            )
        else:
            logger.info(
                "Chunked transcription finished",
                extra={"request_id": request_id, "chunk_count": len(ordered)},
            )

        return TranscriptionResult(
            success=bool(ordered) and not failures,
            request_id=request_id,
            processing_mode=ProcessingMode.CHUNKED,
            transcript=" ".join(result.transcript for result in succeeded if result.transcript),
            segments=tuple(
                TranscriptSegment(
                    index=result.index,
                    text=result.transcript,
                    start_time=result.start_time,
                    confidence=result.confidence,
                )
                for result in succeeded
            ),
            words=tuple(word for result in succeeded for word in result.words),
            confidence=confidence,
            failed_chunks=failures,
            chunk_results=tuple(ordered),
        )

    def split(
        self, request_id: str, audio: bytes, config: RecognitionConfig
    ) -> tuple[AudioChunk, ...]:
        """
        Cuts raw PCM audio into fixed-duration, sample-aligned chunks.

        Raises:
            RequestValidationError: If the encoding cannot be cut without decoding.
        """
        width = _RAW_SAMPLE_WIDTH.get(config.encoding or "")
        if width is None:
            raise RequestValidationError(
                [
                    f"Server-side chunking supports only "
                    f"{', '.join(_RAW_SAMPLE_WIDTH)}; send pre-split chunks for "
                    f"{config.encoding}"
                ]
            )

        bytes_per_second = self._raw_bytes_per_second(config, width)
        chunk_size = bytes_per_second * self._config.split_chunk_seconds
        chunks = tuple(
            AudioChunk(
                index=index,
                data=audio[offset : offset + chunk_size],
                start_time=offset / bytes_per_second,
                request_id=request_id,
            )
            for index, offset in enumerate(range(0, len(audio), chunk_size))
        )
        logger.info(
            "Audio split into chunks",
            extra={"request_id": request_id, "chunk_count": len(chunks), "chunk_size": chunk_size},
        )
        return chunks

    def start_offsets(
        self, chunks: Sequence[AudioChunk], config: RecognitionConfig
    ) -> dict[int, float]:
        """Uses caller offsets where given, otherwise accumulates estimated durations."""
        offsets: dict[int, float] = {}
        running = 0.0
        for chunk in sorted(chunks, key=lambda c: c.index):
            start = chunk.start_time if chunk.start_time is not None else running
            offsets[chunk.index] = start
            running = start + self.estimate_duration(len(chunk.data), config)
        return offsets

    def estimate_duration(self, size_bytes: int, config: RecognitionConfig) -> float:
        """
        Estimates playback seconds from a byte count.

        Exact for raw PCM; other encodings assume a fixed bitrate, which is only
        an approximation for variable-bitrate or lossless audio.
        """
        width = _RAW_SAMPLE_WIDTH.get(config.encoding or "")
        if width is not None:
            return size_bytes / self._raw_bytes_per_second(config, width)
        bytes_per_second = self._config.assumed_bitrate_kbps * 1024 / 8
        return size_bytes / bytes_per_second

    def _raw_bytes_per_second(self, config: RecognitionConfig, width: int) -> int:
        sample_rate = config.sample_rate_hertz or self._config.default_sample_rate_hertz
        channels = config.audio_channel_count or 1
        return sample_rate * width * channels

    def _transcribe_chunk(
        self,
        request_id: str,
        chunk: AudioChunk,
        start_time: float,
        config: RecognitionConfig,
        cancel: threading.Event,
    ) -> ChunkResult:
        """Runs on a pool worker; always returns a ChunkResult."""
        if cancel.is_set():
            return self._failed(chunk, start_time, "cancelled")

        size_mb = len(chunk.data) / BYTES_PER_MB
        if size_mb > self._config.max_chunk_mb:
            return self._failed(
                chunk,
                start_time,
                f"Audio chunk too large: {size_mb:.2f}MB exceeds the "
                f"{self._config.max_chunk_mb:g}MB limit",
            )

        request = self._request_builder.build(
            InlineAudio.from_bytes(chunk.data), config, RecognitionProfile.CHUNK
        )
        try:
            response = self._recognition.recognize(request)
        except ProviderError as e:
            logger.warning(
                "Chunk transcription failed",
                extra={"request_id": request_id, "chunk_index": chunk.index, "error": str(e)},
            )
            return self._failed(chunk, start_time, str(e))
        except Exception as e:
            logger.exception(
                "Chunk transcription crashed",
                extra={"request_id": request_id, "chunk_index": chunk.index},
            )
            return self._failed(chunk, start_time, f"Unexpected error: {e}")

        result = self._transcript_builder.chunk_result(chunk.index, start_time, response)
        logger.info(
            "Chunk transcribed",
            extra={
                "request_id": request_id,
                "chunk_index": chunk.index,
                "confidence": result.confidence,
                "word_count": len(result.transcript.split()),
            },
        )
        return result

    def _failed(self, chunk: AudioChunk, start_time: float, reason: str) -> ChunkResult:
        return ChunkResult(index=chunk.index, start_time=start_time, success=False, error=reason)
