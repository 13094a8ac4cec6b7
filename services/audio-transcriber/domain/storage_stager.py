"""Stages oversized audio in object storage for the lifetime of one request."""

import io
import re
import time
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from transcription_common import StorageError, setup_logging
from transcription_common.config import StorageConfig

from exceptions import ProviderError
from infrastructure.interfaces import StorageClient

from .models import CleanupReport, SignedUrl, StagedObject, UploadMetadata

logger = setup_logging()

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class StagingScope:
    """
    Context manager owning one staged object.

    The object is uploaded or copied in on entry and deleted exactly once on
    exit, whether the body returned, raised, or timed out. Delete failures end
    up in ``warnings`` instead of propagating.
    """

    def __init__(self, stager: "StorageStager", stage: Callable[[], StagedObject]):
        self._stager = stager
        self._stage = stage
        self.staged: StagedObject | None = None
        self.warnings: list[str] = []

    def __enter__(self) -> StagedObject:
        self.staged = self._stage()
        return self.staged

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self.staged is not None:
            warning = self._stager.unstage(self.staged)
            if warning:
                self.warnings.append(warning)
        return False


class StorageStager:
    """Moves audio into object storage and removes it afterward."""

    def __init__(self, storage: StorageClient, config: StorageConfig):
        self._storage = storage
        self._config = config

    def stage(
        self, data: bytes, metadata: UploadMetadata, owner_request_id: str
    ) -> StagedObject:
        """
        Uploads audio under a collision-resistant object name.

        Args:
            data: Raw audio bytes.
            metadata: Original file name and content type.
            owner_request_id: The request that owns (and must delete) the object.

        Returns:
            The staged object reference.

        Raises:
            ProviderError: If the upload or URI resolution fails.
        """
        object_name = self.object_name_for(metadata.file_name)
        uri = self.uri_for(self._config.bucket_name, object_name)
        try:
            self._storage.upload(
                bucket_name=self._config.bucket_name,
                object_name=object_name,
                data=io.BytesIO(data),
                size=len(data),
                content_type=metadata.content_type,
            )
        except StorageError as e:
            raise ProviderError("storage", str(e), cause=e) from e

        staged = StagedObject(
            bucket_name=self._config.bucket_name,
            object_name=object_name,
            uri=uri,
            owner_request_id=owner_request_id,
        )
        logger.info(
            "Audio staged",
            extra={
                "request_id": owner_request_id,
                "object_name": object_name,
                "size": len(data),
            },
        )
        return staged

    def copy_in(
        self, bucket_name: str, object_name: str, owner_request_id: str
    ) -> StagedObject:
        """
        Copies an existing object into the staging area under a temporary name.

        The copy belongs to ``owner_request_id``; the source is never touched.

        Raises:
            ProviderError: If the copy or URI resolution fails.
        """
        staged_name = self.object_name_for(object_name)
        uri = self.uri_for(self._config.bucket_name, staged_name)
        try:
            self._storage.copy(
                source_bucket=bucket_name,
                source_object=object_name,
                bucket_name=self._config.bucket_name,
                object_name=staged_name,
            )
        except StorageError as e:
            raise ProviderError("storage", str(e), cause=e) from e

        staged = StagedObject(
            bucket_name=self._config.bucket_name,
            object_name=staged_name,
            uri=uri,
            owner_request_id=owner_request_id,
        )
        logger.info(
            "Audio copied into staging",
            extra={
                "request_id": owner_request_id,
                "source_object": object_name,
                "object_name": staged_name,
            },
        )
        return staged

    def unstage(self, staged: StagedObject) -> str | None:
        """
        Deletes a staged object.

        Deleting an already-missing object succeeds. A failed delete is logged
        and returned as a warning; it never raises.

        Returns:
            A warning message if the object may have leaked, otherwise None.
        """
        try:
            self._storage.delete(staged.bucket_name, staged.object_name)
        except StorageError as e:
            logger.warning(
                "Staged object could not be deleted",
                extra={
                    "request_id": staged.owner_request_id,
                    "object_name": staged.object_name,
                    "error": str(e),
                },
            )
            return f"Staged object '{staged.object_name}' was not deleted: {e}"

        logger.info(
            "Staged object deleted",
            extra={
                "request_id": staged.owner_request_id,
                "object_name": staged.object_name,
            },
        )
        return None

    def scope(
        self, data: bytes, metadata: UploadMetadata, owner_request_id: str
    ) -> StagingScope:
        """Returns a context manager that stages on entry and unstages on exit."""
        return StagingScope(self, lambda: self.stage(data, metadata, owner_request_id))

    def copy_scope(
        self, bucket_name: str, object_name: str, owner_request_id: str
    ) -> StagingScope:
        """Returns a context manager that copies in on entry and unstages on exit."""
        return StagingScope(
            self, lambda: self.copy_in(bucket_name, object_name, owner_request_id)
        )

    def issue_upload_url(self, metadata: UploadMetadata) -> SignedUrl:
        """
        Issues a signed PUT URL for a client-direct upload.

        Raises:
            ProviderError: If the storage backend cannot sign the URL.
        """
        object_name = self.object_name_for(metadata.file_name)
        ttl = timedelta(seconds=self._config.upload_url_ttl_seconds)
        try:
            url = self._storage.generate_upload_url(
                bucket_name=self._config.bucket_name,
                object_name=object_name,
                content_type=metadata.content_type,
                ttl=ttl,
            )
        except StorageError as e:
            raise ProviderError("storage", str(e), cause=e) from e

        logger.info(
            "Upload URL issued",
            extra={"object_name": object_name, "content_type": metadata.content_type},
        )
        return SignedUrl(
            url=url,
            bucket_name=self._config.bucket_name,
            object_name=object_name,
            content_type=metadata.content_type,
            expires_at=datetime.now(timezone.utc) + ttl,
            headers={"Content-Type": metadata.content_type},
        )

    def remove(self, object_names: list[str]) -> CleanupReport:
        """Deletes client-uploaded objects that live under the staging prefix."""
        deleted: list[str] = []
        errors: list[str] = []
        for object_name in object_names:
            if not self.is_staging_name(object_name):
                errors.append(f"Refusing to delete '{object_name}': outside staging area")
                continue
            try:
                self._storage.delete(self._config.bucket_name, object_name)
                deleted.append(object_name)
            except StorageError as e:
                errors.append(f"Failed to delete {object_name}: {e}")

        logger.info(
            "Cleanup finished",
            extra={"deleted_count": len(deleted), "error_count": len(errors)},
        )
        return CleanupReport(deleted=tuple(deleted), errors=tuple(errors))

    def object_name_for(self, file_name: str) -> str:
        """Builds ``<prefix><epoch-ms>-<random>-<sanitized name>``."""
        safe_name = _UNSAFE_NAME_CHARS.sub("_", file_name.rsplit("/", 1)[-1]) or "audio"
        timestamp = int(time.time() * 1000)
        suffix = uuid.uuid4().hex[:12]
        return f"{self._config.staging_prefix}{timestamp}-{suffix}-{safe_name}"

    def is_staging_name(self, object_name: str) -> bool:
        return object_name.startswith(self._config.staging_prefix) and ".." not in object_name

    def uri_for(self, bucket_name: str, object_name: str) -> str:
        """Resolves the provider-readable URI of an existing object."""
        try:
            return self._storage.object_uri(bucket_name, object_name)
        except StorageError as e:
            raise ProviderError("storage", str(e), cause=e) from e
