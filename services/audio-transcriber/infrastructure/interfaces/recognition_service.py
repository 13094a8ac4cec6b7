"""Abstract interface for speech-recognition providers."""

from abc import ABC, abstractmethod

from domain.models import OperationStatus, ProviderRequest, RecognitionResponse


class RecognitionService(ABC):
    """Abstract base class for speech-recognition backends."""

    name: str = "recognition"

    @abstractmethod
    def recognize(self, request: ProviderRequest) -> RecognitionResponse:
        """
        Runs synchronous recognition.

        Args:
            request: Provider payload with inline content or a URI.

        Returns:
            The validated recognition response.

        Raises:
            ProviderError: If the provider rejects the call.
        """

    @abstractmethod
    def start_long_running(self, request: ProviderRequest) -> str:
        """
        Starts an asynchronous recognition job.

        Args:
            request: Provider payload, normally referencing staged audio by URI.

        Returns:
            The operation name used to poll the job.

        Raises:
            ProviderError: If the job cannot be started.
        """

    @abstractmethod
    def get_operation(self, name: str) -> OperationStatus:
        """
        Fetches the current status of an asynchronous job.

        Args:
            name: Operation name returned by ``start_long_running``.

        Returns:
            The operation status; terminal states carry a response or an error.

        Raises:
            ProviderError: With ``transient=True`` for network or 5xx failures.
        """
