"""Infrastructure - Database, storage, logging."""

from qrbatch.infra.database import DatabaseSession, close_db_engine, get_db_session
from qrbatch.infra.logging import get_logger, setup_logging
from qrbatch.infra.storage import (
    BlobStorage,
    LocalStorageClient,
    StorageClient,
    TenantPathError,
    get_storage_client,
)

__all__ = [
    "get_db_session",
    "DatabaseSession",
    "close_db_engine",
    "BlobStorage",
    "LocalStorageClient",
    "StorageClient",
    "get_storage_client",
    "TenantPathError",
    "setup_logging",
    "get_logger",
]
