import logging

from minio import Minio

from transcription_common.config import MinioConfig

logger = logging.getLogger(__name__)


def get_minio_client(config: MinioConfig):
    """
    Initialize and return a MinIO client.

    Args:
        config: MinIO endpoint and credentials.

    Returns:
        Minio: Configured MinIO client
    """
    try:
        client = Minio(
            endpoint=config.endpoint,
            access_key=config.user,
            secret_key=config.password,
            secure=config.secure,
        )
        return client
    except Exception as e:
        logger.exception(
            "MinIO Client Initialization Failed",
            extra={
                "endpoint": config.endpoint,
                "user": config.user,
            },
        )
        raise e
