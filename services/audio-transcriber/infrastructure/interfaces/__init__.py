"""Infrastructure interface exports."""

from transcription_common.infrastructure.interfaces import StorageClient

from .credential_provider import CredentialProvider
from .recognition_service import RecognitionService

__all__ = ["CredentialProvider", "RecognitionService", "StorageClient"]
