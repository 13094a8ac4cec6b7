"""Infrastructure layer exports."""

from .assemblyai_recognizer import AssemblyAIRecognizer
from .gcs_storage import GCSStorageClient
from .google_credentials import ServiceAccountCredentialProvider, StaticKeyCredentialProvider
from .google_speech import GoogleSpeechRecognizer
from .minio_storage import MinioStorageClient

__all__ = [
    "AssemblyAIRecognizer",
    "GCSStorageClient",
    "GoogleSpeechRecognizer",
    "MinioStorageClient",
    "ServiceAccountCredentialProvider",
    "StaticKeyCredentialProvider",
]
