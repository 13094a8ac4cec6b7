"""Storage exceptions shared by every storage backend."""


class StorageError(Exception):
    """Base class for object storage failures."""

    def __init__(self, message: str, object_name: str, cause: Exception | None = None):
        self.object_name = object_name
        self.cause = cause
        super().__init__(message)


class StorageUploadError(StorageError):
    """Raised when uploading a file to storage fails."""

    def __init__(self, object_name: str, cause: Exception | None = None):
        super().__init__(f"Failed to upload '{object_name}' to storage", object_name, cause)


class StorageDeleteError(StorageError):
    """Raised when deleting a file from storage fails."""

    def __init__(self, object_name: str, cause: Exception | None = None):
        super().__init__(f"Failed to delete '{object_name}' from storage", object_name, cause)


class SignedUrlError(StorageError):
    """Raised when a signed URL cannot be generated."""

    def __init__(self, object_name: str, cause: Exception | None = None):
        super().__init__(
            f"Failed to generate signed URL for '{object_name}'", object_name, cause
        )


class StorageCopyError(StorageError):
    """Raised when a server-side copy into storage fails."""

    def __init__(self, object_name: str, cause: Exception | None = None):
        super().__init__(f"Failed to copy '{object_name}' into storage", object_name, cause)
