"""
Object Storage Service - presigned URLs for direct browser uploads
Works with any S3-compatible store (AWS S3, Cloudflare R2, MinIO)
"""

import uuid
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from core.config import settings
from core.constants import DEFAULT_FILE_NAME
from core.exceptions import StorageError
from core.logging import get_logger
from core.security import SecurityUtils
from domain.interfaces import IObjectStorage

logger = get_logger("object_storage")


class ObjectStorageService(IObjectStorage):
    """Presigns object uploads and downloads"""

    def __init__(self, client: Optional[Any] = None) -> None:
        self._client = client

    @property
    def client(self) -> Any:
        """Lazy-init S3 client"""
        if self._client is None:
            if not settings.object_storage_configured:
                raise StorageError(
                    "Object storage not configured. Set REPURPOSE_S3_ENDPOINT, "
                    "REPURPOSE_S3_BUCKET, REPURPOSE_S3_ACCESS_KEY and REPURPOSE_S3_SECRET_KEY."
                )

            self._client = boto3.client(
                "s3",
                endpoint_url=settings.s3_endpoint,
                aws_access_key_id=settings.s3_access_key,
                aws_secret_access_key=settings.s3_secret_key,
                region_name=settings.s3_region,
                config=Config(signature_version="s3v4"),
            )

        return self._client

    def _object_key(self, filename: str) -> str:
        try:
            safe_name = SecurityUtils.sanitize_filename(filename or DEFAULT_FILE_NAME)
        except ValueError:
            safe_name = DEFAULT_FILE_NAME
        return f"{settings.s3_upload_prefix.strip('/')}/{uuid.uuid4()}-{safe_name}"

    def create_upload_urls(self, filename: str) -> Dict[str, str]:
        """
        Create presigned URLs for a new object

        Args:
            filename: Client file name, used as the key suffix

        Returns:
            upload_url (PUT), object_path and download_url (GET)

        Raises:
            StorageError: If storage is not configured or signing fails
        """
        key = self._object_key(filename)
        params = {"Bucket": settings.s3_bucket, "Key": key}

        try:
            upload_url = self.client.generate_presigned_url(
                "put_object", Params=params, ExpiresIn=settings.presigned_url_expiry
            )
            download_url = self.client.generate_presigned_url(
                "get_object", Params=params, ExpiresIn=settings.presigned_url_expiry
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to presign object URLs: {type(e).__name__}")
            raise StorageError("Failed to get upload URL")

        logger.info(f"Presigned upload for object {key}")
        return {"upload_url": upload_url, "object_path": f"/objects/{key}", "download_url": download_url}


object_storage_service = ObjectStorageService()
