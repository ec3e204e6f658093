"""Blob storage for export artifacts with tenant-scoped path validation.

Provides:
- Cloud Storage client (production)
- Local filesystem client (development and tests)
- Tenant path validation for multi-tenant isolation

Uploads overwrite: writing the same blob path twice keeps the last content.
"""

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from urllib.parse import quote

from google.cloud import storage
from google.cloud.storage import Bucket

from qrbatch.config import settings
from qrbatch.infra.logging import get_logger

logger = get_logger(__name__)


class TenantPathError(Exception):
    """Raised when a path doesn't match the expected tenant."""


class BlobStorage(ABC):
    """Interface shared by the storage backends."""

    def validate_tenant_path(self, blob_path: str, tenant_id: str) -> None:
        """Validate that a blob path belongs to the specified tenant.

        Expected path format: {tenant_id}/batches/...

        Raises:
            TenantPathError: If path doesn't match tenant
        """
        path = blob_path.lstrip("/")

        if not path.startswith(f"{tenant_id}/") or ".." in path.split("/"):
            logger.warning(
                "Tenant path validation failed",
                blob_path=blob_path,
                expected_tenant=tenant_id,
            )
            raise TenantPathError(
                f"Path '{blob_path}' does not belong to tenant '{tenant_id}'"
            )

    @abstractmethod
    async def upload_bytes(
        self,
        data: bytes,
        blob_path: str,
        tenant_id: str,
        content_type: str = "application/octet-stream",
    ) -> str:
        """Upload bytes, overwriting any existing blob at blob_path.

        Returns:
            Public URL of the uploaded blob
        """

    @abstractmethod
    def get_public_url(self, blob_path: str) -> str:
        """Publicly resolvable URL for a blob path."""


class StorageClient(BlobStorage):
    """Cloud Storage client with tenant isolation."""

    def __init__(self, bucket_name: str | None = None) -> None:
        """Initialize storage client.

        Args:
            bucket_name: GCS bucket name. Defaults to settings.gcs_bucket.
        """
        self._client: storage.Client | None = None
        self._bucket: Bucket | None = None
        self._bucket_name = bucket_name or settings.gcs_bucket

    @property
    def client(self) -> storage.Client:
        """Lazy-load the GCS client."""
        if self._client is None:
            self._client = storage.Client()
            logger.info("GCS client initialized")
        return self._client

    @property
    def bucket(self) -> Bucket:
        """Get the configured bucket."""
        if self._bucket is None:
            self._bucket = self.client.bucket(self._bucket_name)
            logger.info("GCS bucket configured", bucket=self._bucket_name)
        return self._bucket

    async def upload_bytes(
        self,
        data: bytes,
        blob_path: str,
        tenant_id: str,
        content_type: str = "application/octet-stream",
    ) -> str:
        self.validate_tenant_path(blob_path, tenant_id)

        blob = self.bucket.blob(blob_path)
        # GCS client is blocking; keep it off the event loop
        await asyncio.to_thread(blob.upload_from_string, data, content_type=content_type)

        logger.info(
            "Uploaded bytes",
            blob_path=blob_path,
            tenant_id=tenant_id,
            size=len(data),
            content_type=content_type,
        )

        return self.get_public_url(blob_path)

    def get_public_url(self, blob_path: str) -> str:
        return self.bucket.blob(blob_path).public_url


class LocalStorageClient(BlobStorage):
    """Filesystem-backed storage for local development and tests."""

    def __init__(self, root: Path | str | None = None, public_base_url: str | None = None) -> None:
        self._root = Path(root or settings.local_storage_root)
        self._public_base_url = (public_base_url or settings.public_base_url).rstrip("/")

    @property
    def root(self) -> Path:
        return self._root

    def _path_for(self, blob_path: str) -> Path:
        return self._root / blob_path.lstrip("/")

    async def upload_bytes(
        self,
        data: bytes,
        blob_path: str,
        tenant_id: str,
        content_type: str = "application/octet-stream",
    ) -> str:
        self.validate_tenant_path(blob_path, tenant_id)

        target = self._path_for(blob_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(target.write_bytes, data)

        logger.info(
            "Stored file locally",
            blob_path=blob_path,
            tenant_id=tenant_id,
            size=len(data),
            content_type=content_type,
        )

        return self.get_public_url(blob_path)

    def get_public_url(self, blob_path: str) -> str:
        return f"{self._public_base_url}/{quote(blob_path.lstrip('/'))}"


# Singleton instance
_storage_client: BlobStorage | None = None


def get_storage_client() -> BlobStorage:
    """Get the singleton storage client selected by settings."""
    global _storage_client
    if _storage_client is None:
        if settings.use_local_storage:
            _storage_client = LocalStorageClient()
            logger.info("Using local storage", root=settings.local_storage_root)
        else:
            _storage_client = StorageClient()
    return _storage_client
