"""MinIO implementation of the StorageClient interface."""

from datetime import timedelta
from typing import BinaryIO

from minio import Minio
from minio.commonconfig import CopySource
from minio.error import S3Error
from transcription_common import (
    SignedUrlError,
    StorageCopyError,
    StorageDeleteError,
    StorageUploadError,
    setup_logging,
)
from transcription_common.infrastructure import StorageClient

logger = setup_logging()


class MinioStorageClient(StorageClient):
    """
    Handles file storage operations using MinIO.

    Providers read objects through presigned GET URLs, since MinIO objects have
    no provider-native URI. Presigned PUT URLs cannot bind a content type.
    """

    def __init__(self, client: Minio, read_url_ttl: timedelta = timedelta(hours=1)):
        self._client = client
        self._read_url_ttl = read_url_ttl

    def upload(
        self,
        bucket_name: str,
        object_name: str,
        data: BinaryIO,
        size: int,
        content_type: str,
    ) -> None:
        try:
            self._client.put_object(
                bucket_name=bucket_name,
                object_name=object_name,
                data=data,
                length=size,
                content_type=content_type,
            )
            logger.info(
                "File uploaded to MinIO",
                extra={
                    "bucket_name": bucket_name,
                    "object_name": object_name,
                },
            )
        except Exception as e:
            logger.exception(
                "MinIO upload failed",
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
            self._client.copy_object(
                bucket_name, object_name, CopySource(source_bucket, source_object)
            )
            logger.info(
                "File copied within MinIO",
                extra={
                    "source_bucket": source_bucket,
                    "source_object": source_object,
                    "bucket_name": bucket_name,
                    "object_name": object_name,
                },
            )
        except Exception as e:
            logger.exception(
                "MinIO copy failed",
                extra={"source_object": source_object, "object_name": object_name},
            )
            raise StorageCopyError(object_name, e) from e

    def delete(self, bucket_name: str, object_name: str) -> None:
        try:
            self._client.remove_object(bucket_name, object_name)
            logger.info(
                "File deleted from MinIO",
                extra={"bucket_name": bucket_name, "object_name": object_name},
            )
        except S3Error as e:
            if e.code == "NoSuchKey":
                return
            logger.exception(
                "MinIO delete failed",
                extra={"bucket_name": bucket_name, "object_name": object_name},
            )
            raise StorageDeleteError(object_name, e) from e
        except Exception as e:
            logger.exception(
                "MinIO delete failed",
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
            return self._client.presigned_put_object(bucket_name, object_name, expires=ttl)
        except Exception as e:
            logger.exception(
                "MinIO URL signing failed",
                extra={"bucket_name": bucket_name, "object_name": object_name},
            )
            raise SignedUrlError(object_name, e) from e

    def object_uri(self, bucket_name: str, object_name: str) -> str:
        try:
            return self._client.presigned_get_object(
                bucket_name, object_name, expires=self._read_url_ttl
            )
        except Exception as e:
            logger.exception(
                "MinIO URL signing failed",
                extra={"bucket_name": bucket_name, "object_name": object_name},
            )
            raise SignedUrlError(object_name, e) from e

    def ensure_bucket_exists(self, bucket_name: str) -> None:
        if not self._client.bucket_exists(bucket_name):
            self._client.make_bucket(bucket_name)
            logger.info("Bucket created", extra={"bucket_name": bucket_name})
        else:
            logger.info("Bucket already exists", extra={"bucket_name": bucket_name})
