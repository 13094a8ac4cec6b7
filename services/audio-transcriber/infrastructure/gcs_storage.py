"""Google Cloud Storage implementation of the StorageClient interface."""

from datetime import timedelta
from typing import BinaryIO

from google.api_core.exceptions import NotFound
from google.cloud import storage
from transcription_common import (
    SignedUrlError,
    StorageCopyError,
    StorageDeleteError,
    StorageUploadError,
    setup_logging,
)
from transcription_common.infrastructure import StorageClient

logger = setup_logging()


class GCSStorageClient(StorageClient):
    """Handles file storage operations using Google Cloud Storage."""

    def __init__(self, client: storage.Client):
        self._client = client

    def upload(
        self,
        bucket_name: str,
        object_name: str,
        data: BinaryIO,
        size: int,
        content_type: str,
    ) -> None:
        try:
            blob = self._client.bucket(bucket_name).blob(object_name)
            blob.upload_from_file(data, size=size, content_type=content_type)
            logger.info(
                "File uploaded to GCS",
                extra={"bucket_name": bucket_name, "object_name": object_name, "size": size},
            )
        except Exception as e:
            logger.exception(
                "GCS upload failed",
                extra={"bucket_name": bucket_name, "object_name": object_name},
            )
            raise StorageUploadError(object_name, e) from e

    def copy(
        self,
        source_bucket: str,
        source_object: str,
        bucket_name: str,
        object_name: str,
    ) -> None:
        try:
            source = self._client.bucket(source_bucket)
            source.copy_blob(
                source.blob(source_object), self._client.bucket(bucket_name), object_name
            )
            logger.info(
                "File copied within GCS",
                extra={
                    "source_bucket": source_bucket,
                    "source_object": source_object,
                    "bucket_name": bucket_name,
                    "object_name": object_name,
                },
            )
        except Exception as e:
            logger.exception(
                "GCS copy failed",
                extra={"source_object": source_object, "object_name": object_name},
            )
            raise StorageCopyError(object_name, e) from e

    def delete(self, bucket_name: str, object_name: str) -> None:
        try:
            self._client.bucket(bucket_name).blob(object_name).delete()
            logger.info(
                "File deleted from GCS",
                extra={"bucket_name": bucket_name, "object_name": object_name},
            )
        except NotFound:
            logger.info(
                "File already absent from GCS",
                extra={"bucket_name": bucket_name, "object_name": object_name},
            )
        except Exception as e:
            logger.exception(
                "GCS delete failed",
                extra={"bucket_name": bucket_name, "object_name": object_name},
            )
            raise StorageDeleteError(object_name, e) from e

    def generate_upload_url(
        self,
        bucket_name: str,
        object_name: str,
        content_type: str,
        ttl: timedelta,
    ) -> str:
        try:
            blob = self._client.bucket(bucket_name).blob(object_name)
            return blob.generate_signed_url(
                version="v4",
                expiration=ttl,
                method="PUT",
                content_type=content_type,
            )
        except Exception as e:
            logger.exception(
                "GCS URL signing failed",
                extra={"bucket_name": bucket_name, "object_name": object_name},
            )
            raise SignedUrlError(object_name, e) from e

    def object_uri(self, bucket_name: str, object_name: str) -> str:
        return f"gs://{bucket_name}/{object_name}"

    def ensure_bucket_exists(self, bucket_name: str) -> None:
        if self._client.lookup_bucket(bucket_name) is None:
            self._client.create_bucket(bucket_name)
            logger.info("Bucket created", extra={"bucket_name": bucket_name})
        else:
            logger.info("Bucket already exists", extra={"bucket_name": bucket_name})
