"""Storage service for use case attachments in MinIO."""

import logging
import os
import secrets
from datetime import timedelta
from io import BytesIO
from typing import Any, BinaryIO

from minio import Minio
from minio.error import S3Error

from modelrisk.config import get_settings

logger = logging.getLogger(__name__)

ATTACHMENTS_PREFIX = "attachments"


class StorageService:
    """Service for storing attachment files in MinIO."""

    def __init__(
        self,
        endpoint: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        bucket_name: str | None = None,
        secure: bool | None = None,
        public_endpoint: str | None = None,
    ):
        """
        Initialize the StorageService with MinIO connection details.

        Unset arguments fall back to the application settings. The client is
        created lazily on first use.
        """
        settings = get_settings()
        self.endpoint = endpoint or settings.minio_endpoint
        self.access_key = access_key or settings.minio_access_key
        self.secret_key = secret_key or settings.minio_secret_key
        self.bucket_name = bucket_name or settings.minio_bucket
        self.secure = settings.minio_secure if secure is None else secure
        self.public_endpoint = public_endpoint or settings.minio_public_endpoint

        self.client: Minio | None = None
        self._initialized = False

    async def _ensure_initialized(self) -> None:
        """Ensure the MinIO client is initialized and the bucket exists."""
        if self._initialized:
            return

        try:
            if self.client is None:
                self.client = Minio(
                    self.endpoint,
                    access_key=self.access_key,
                    secret_key=self.secret_key,
                    secure=self.secure,
                )

            if not self.client.bucket_exists(self.bucket_name):
                self.client.make_bucket(self.bucket_name)
                logger.info(f"Created bucket: {self.bucket_name}")

            self._initialized = True
            logger.info(f"MinIO storage service initialized: {self.endpoint}")

        except S3Error as e:
            logger.error(f"Failed to initialize MinIO: {e}")
            raise

    def _build_path(self, use_case_id: str, filename: str) -> str:
        """
        Build the object key for an attachment.

        A random token keeps repeated uploads of the same filename apart.

        Returns:
            Key in format: attachments/{use_case_id}/{token}-{filename}
        """
        # Strip directories to prevent path traversal
        safe_filename = os.path.basename(filename.replace("\\", "/")) or "file"
        return f"{ATTACHMENTS_PREFIX}/{use_case_id}/{secrets.token_hex(8)}-{safe_filename}"

    def public_url(self, path: str) -> str:
        scheme = "https" if self.secure else "http"
        return f"{scheme}://{self.public_endpoint}/{self.bucket_name}/{path}"

    async def upload_file(
        self,
        use_case_id: str,
        file: BinaryIO | bytes,
        filename: str,
        content_type: str | None = None,
    ) -> dict[str, Any]:
        """
        Upload an attachment to MinIO storage.

        Args:
            use_case_id: Use case the file belongs to
            file: File object or bytes to upload
            filename: Original filename
            content_type: MIME type (optional)

        Returns:
            Dict with url, pathname, content_type and size

        Raises:
            S3Error: If upload fails
        """
        await self._ensure_initialized()

        path = self._build_path(use_case_id, filename)
        content_type = content_type or "application/octet-stream"

        if isinstance(file, bytes):
            file_data = BytesIO(file)
            file_size = len(file)
        else:
            file.seek(0, 2)
            file_size = file.tell()
            file.seek(0)
            file_data = file

        try:
            self.client.put_object(
                self.bucket_name,
                path,
                file_data,
                file_size,
                content_type=content_type,
            )
        except S3Error as e:
            logger.error(f"Failed to upload file {filename}: {e}")
            raise

        logger.info(f"Uploaded file: {path} ({file_size} bytes)")
        return {
            "url": self.public_url(path),
            "pathname": path,
            "content_type": content_type,
            "size": file_size,
        }

    async def delete_file(self, path: str) -> bool:
        """
        Delete an object from storage.

        Returns:
            True if deleted, False if the object did not exist

        Raises:
            S3Error: If deletion fails for any other reason
        """
        await self._ensure_initialized()

        try:
            self.client.remove_object(self.bucket_name, path)
            logger.info(f"Deleted file: {path}")
            return True

        except S3Error as e:
            if e.code == "NoSuchKey":
                logger.warning(f"File not found for deletion: {path}")
                return False
            logger.error(f"Failed to delete file {path}: {e}")
            raise

    async def generate_presigned_url(
        self,
        path: str,
        expires: int = 3600,
    ) -> str:
        """
        Generate a presigned URL for temporary download access.

        Args:
            path: Object key
            expires: URL lifetime in seconds (default: 1 hour)
        """
        await self._ensure_initialized()

        try:
            url = self.client.presigned_get_object(
                self.bucket_name,
                path,
                expires=timedelta(seconds=expires),
            )
        except S3Error as e:
            logger.error(f"Failed to generate presigned URL for {path}: {e}")
            raise

        logger.debug(f"Generated presigned URL for: {path} (expires in {expires}s)")
        return url

    async def ping(self) -> bool:
        """Return True if the bucket is reachable."""
        try:
            await self._ensure_initialized()
            return self.client.bucket_exists(self.bucket_name)
        except S3Error as e:
            logger.warning(f"MinIO health check failed: {e}")
            return False


# Singleton instance
storage_service = StorageService()
