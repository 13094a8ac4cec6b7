"""Abstract interface for file storage operations."""

from abc import ABC, abstractmethod
from datetime import timedelta
from typing import BinaryIO


class StorageClient(ABC):
    """Abstract base class for file storage backends."""

    @abstractmethod
    def upload(
        self,
        bucket_name: str,
        object_name: str,
        data: BinaryIO,
        size: int,
        content_type: str,
    ) -> None:
        """
        Uploads a file to storage.

        Args:
            bucket_name: The storage bucket name.
            object_name: The destination path/name in storage.
            data: File-like object containing the data.
            size: Size of the file in bytes.
            content_type: MIME type of the file.

        Raises:
            StorageUploadError: If the upload fails.
        """

    @abstractmethod
    def copy(
        self,
        source_bucket: str,
        source_object: str,
        bucket_name: str,
        object_name: str,
    ) -> None:
        """
        Copies an existing object server-side, without downloading it.

        Args:
            source_bucket: The bucket holding the source object.
            source_object: The source object path/name.
            bucket_name: The destination bucket name.
            object_name: The destination path/name.

        Raises:
            StorageCopyError: If the copy fails.
        """

    @abstractmethod
    def delete(self, bucket_name: str, object_name: str) -> None:
        """
        Deletes a file from storage. Deleting a missing object is not an error.

        Args:
            bucket_name: The storage bucket name.
            object_name: The object path/name in storage.

        Raises:
            StorageDeleteError: If the delete fails.
        """

    @abstractmethod
    def generate_upload_url(
        self,
        bucket_name: str,
        object_name: str,
        content_type: str,
        ttl: timedelta,
    ) -> str:
        """
        Generates a signed URL a client can PUT a single object to.

        Args:
            bucket_name: The storage bucket name.
            object_name: The only object name the URL is valid for.
            content_type: The content type the upload must declare.
            ttl: How long the URL stays valid.

        Returns:
            The signed URL.

        Raises:
            SignedUrlError: If signing fails.
        """

    @abstractmethod
    def object_uri(self, bucket_name: str, object_name: str) -> str:
        """
        Returns the URI a recognition provider reads a stored object from.

        Raises:
            SignedUrlError: If the backend needs a signed URL and signing fails.
        """

    @abstractmethod
    def ensure_bucket_exists(self, bucket_name: str) -> None:
        """
        Ensures a bucket exists, creating it if necessary.

        Args:
            bucket_name: The bucket name to ensure exists.
        """
