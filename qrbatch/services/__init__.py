"""Business logic services."""

from qrbatch.services.batch_repository import BatchRepository
from qrbatch.services.batch_service import BatchCreationOutcome, BatchService
from qrbatch.services.export_pipeline import ExportPipeline, ExportResult

__all__ = [
    "BatchRepository",
    "BatchCreationOutcome",
    "BatchService",
    "ExportPipeline",
    "ExportResult",
]
