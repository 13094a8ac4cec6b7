"""Core business logic for transcript building."""

from .models import (
    ChunkResult,
    ProcessingMode,
    RecognitionResponse,
    TranscriptionResult,
    TranscriptSegment,
    WordDetail,
)


class TranscriptBuilder:
    """Builds transcripts from validated provider responses."""

    def build(
        self,
        request_id: str,
        mode: ProcessingMode,
        response: RecognitionResponse,
        operation_name: str | None = None,
        warnings: tuple[str, ...] = (),
    ) -> TranscriptionResult:
        """
        Builds the final result for a single-call (direct or staged) transcription.

        Args:
            request_id: Id of the owning request.
            mode: The processing mode that produced the response.
            response: Provider response for the whole recording.
            operation_name: Long-running operation handle, if any.
            warnings: Non-fatal issues collected while processing.

        Returns:
            A successful TranscriptionResult.
        """
        segments = self._segments(response, offset=0.0)
        return TranscriptionResult(
            success=True,
            request_id=request_id,
            processing_mode=mode,
            transcript=self._join(segment.text for segment in segments),
            segments=tuple(segments),
            words=tuple(self._words(response, offset=0.0)),
            confidence=self._confidence(response),
            total_billed_time=response.total_billed_time,
            operation_name=operation_name,
            warnings=warnings,
        )

    def chunk_result(
        self, index: int, start_time: float, response: RecognitionResponse
    ) -> ChunkResult:
        """Builds the ChunkResult for one successfully recognized chunk."""
        segments = self._segments(response, offset=start_time)
        return ChunkResult(
            index=index,
            start_time=start_time,
            success=True,
            transcript=self._join(segment.text for segment in segments),
            confidence=self._confidence(response),
            result_count=len(segments),
            words=tuple(self._words(response, offset=start_time)),
        )

    def _segments(
        self, response: RecognitionResponse, offset: float
    ) -> list[TranscriptSegment]:
        """One segment per provider result, timed from the previous result's end."""
        segments = []
        previous_end = 0.0
        for result in response.results:
            best = result.best
            if best is None:
                continue
            segments.append(
                TranscriptSegment(
                    index=len(segments),
                    text=best.transcript.strip(),
                    start_time=offset + previous_end,
                    confidence=best.confidence,
                )
            )
            if result.result_end_time is not None:
                previous_end = result.result_end_time
        return segments

    def _words(self, response: RecognitionResponse, offset: float) -> list[WordDetail]:
        words = []
        for result in response.results:
            best = result.best
            if best is None:
                continue
            for info in best.words:
                words.append(
                    WordDetail(
                        word=info.word,
                        start_time=offset + info.start_time,
                        end_time=offset + info.end_time,
                        confidence=info.confidence,
                        speaker_tag=info.speaker_tag,
                    )
                )
        return words

    def _confidence(self, response: RecognitionResponse) -> float:
        """Mean first-alternative confidence over results; 0 when there are none."""
        scores = [result.best.confidence for result in response.results if result.best]
        if not scores:
            return 0.0
        return sum(scores) / len(scores)

    def _join(self, texts) -> str:
        return " ".join(text for text in texts if text)
