"""Pydantic schemas for request/response validation."""

from qrbatch.schemas.batch import (
    BatchCreateData,
    BatchCreateRequest,
    BatchExportData,
    BatchSummary,
    ExportStatus,
    PackagingOut,
    SizingOut,
)
from qrbatch.schemas.common import (
    ErrorEnvelope,
    HealthResponse,
    SuccessEnvelope,
    error_envelope,
    success_envelope,
)

__all__ = [
    "BatchCreateData",
    "BatchCreateRequest",
    "BatchExportData",
    "BatchSummary",
    "ExportStatus",
    "PackagingOut",
    "SizingOut",
    "ErrorEnvelope",
    "HealthResponse",
    "SuccessEnvelope",
    "error_envelope",
    "success_envelope",
]
