"""Drives an asynchronous recognition job to a terminal state."""

import math
import threading
import time
from collections.abc import Callable

from transcription_common import setup_logging

from exceptions import ProviderError
from infrastructure.interfaces import RecognitionService

from .models import OperationOutcome, OperationState, RecognitionResponse

logger = setup_logging()


class OperationPoller:
    """
    Polls a long-running operation until it finishes, fails, or runs out of time.

    Sleeping happens on the caller's cancellation event, so a cancelled request
    stops waiting immediately and no lock is held while idle. The attempt cap is
    derived from ``timeout / poll_interval``.
    """

    def __init__(
        self,
        recognition: RecognitionService,
        poll_interval: float = 5.0,
        timeout: float = 600.0,
        backoff_factor: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._recognition = recognition
        self._poll_interval = poll_interval
        self._timeout = timeout
        self._backoff_factor = backoff_factor
        self._clock = clock

    def wait(
        self,
        operation_name: str,
        poll_interval: float | None = None,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> OperationOutcome:
        """
        Waits for an operation to reach a terminal state.

        Args:
            operation_name: Handle returned when the job was started.
            poll_interval: Seconds between status checks.
            timeout: Overall deadline in seconds.
            cancel: Event that aborts the wait when set.

        Returns:
            OK with the response, ERR with the provider message, or TIMED_OUT.
        """
        interval = poll_interval or self._poll_interval
        deadline = timeout or self._timeout
        if interval <= 0 or deadline <= 0:
            raise ValueError("poll_interval and timeout must be positive")

        cancel = cancel or threading.Event()
        max_attempts = max(1, math.ceil(deadline / interval))
        started = self._clock()
        last_transient: str | None = None
        attempts = 0

        for attempt in range(1, max_attempts + 1):
            if cancel.is_set():
                return self._cancelled(operation_name, attempts)
            if self._clock() - started >= deadline:
                break

            attempts = attempt
            try:
                status = self._recognition.get_operation(operation_name)
            except ProviderError as e:
                if not e.transient:
                    logger.error(
                        "Operation status fetch failed",
                        extra={"operation_name": operation_name, "error": str(e)},
                    )
                    return OperationOutcome.err(operation_name, str(e), attempts)
                last_transient = str(e)
                logger.warning(
                    "Transient failure while polling operation",
                    extra={
                        "operation_name": operation_name,
                        "attempt": attempt,
                        "max_attempts": max_attempts,
                        "error": last_transient,
                    },
                )
                delay = interval * self._backoff_factor
            else:
                last_transient = None
                if status.state is OperationState.DONE_OK:
                    logger.info(
                        "Operation completed",
                        extra={"operation_name": operation_name, "attempts": attempts},
                    )
                    return OperationOutcome.ok(
                        operation_name, status.response or RecognitionResponse(), attempts
                    )
                if status.state is OperationState.DONE_ERROR:
                    logger.error(
                        "Operation failed",
                        extra={"operation_name": operation_name, "error": status.error},
                    )
                    return OperationOutcome.err(
                        operation_name, status.error or "Operation failed", attempts
                    )
                if status.progress_percent is not None:
                    logger.info(
                        "Operation in progress",
                        extra={
                            "operation_name": operation_name,
                            "progress_percent": status.progress_percent,
                        },
                    )
                delay = interval

            remaining = deadline - (self._clock() - started)
            if remaining <= 0:
                break
            if cancel.wait(min(delay, remaining)):
                return self._cancelled(operation_name, attempts)

        if last_transient is not None:
            return OperationOutcome.err(
                operation_name,
                f"Operation polling failed after {attempts} attempts: {last_transient}",
                attempts,
            )

        logger.warning(
            "Operation timed out",
            extra={"operation_name": operation_name, "timeout": deadline, "attempts": attempts},
        )
        return OperationOutcome.timed_out(
            operation_name, f"Operation did not complete within {deadline:g}s", attempts
        )

    def _cancelled(self, operation_name: str, attempts: int) -> OperationOutcome:
        logger.info("Operation wait cancelled", extra={"operation_name": operation_name})
        return OperationOutcome.timed_out(operation_name, "cancelled", attempts)
