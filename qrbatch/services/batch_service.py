"""Batch generation service.

Runs one create-batch request end to end:

    validate order/product/packaging -> size -> generate identifiers
    -> persist and commit -> export artifacts

Two explicit modes share the validation and sizing steps:
- dry_run: stops after sizing; nothing generated, written or uploaded
- full:    generates, persists and exports

Every failure before the commit aborts with no state written. Export runs
only after the commit and can only degrade ``export_status``.
"""

import asyncio
import time
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from qrbatch.core.errors import ConflictError, IdentifierCollisionError, InternalError, ValidationError
from qrbatch.core.identifiers import IdentifierGenerator, ensure_distinct
from qrbatch.core.sizing import SizingResult, compute_sizing
from qrbatch.infra.logging import get_logger
from qrbatch.infra.storage import BlobStorage
from qrbatch.models import Batch, PackagingConfig
from qrbatch.schemas.batch import (
    BatchCreateData,
    BatchCreateRequest,
    BatchExportData,
    BatchSummary,
    PackagingOut,
    SizingOut,
)
from qrbatch.services.batch_repository import BatchRepository
from qrbatch.services.export_pipeline import ExportPipeline

logger = get_logger(__name__)


@dataclass(frozen=True)
class BatchCreationOutcome:
    """Service result plus whether a new batch row was created."""

    data: BatchCreateData
    created: bool


class BatchService:
    """Orchestrates sizing, generation, persistence and export for one tenant request."""

    def __init__(
        self,
        session: AsyncSession,
        storage: BlobStorage,
        code_generator: IdentifierGenerator,
        master_generator: IdentifierGenerator,
    ) -> None:
        self._session = session
        self._repository = BatchRepository(session)
        self._exporter = ExportPipeline(storage)
        self._code_generator = code_generator
        self._master_generator = master_generator

    async def create_batch(
        self,
        tenant_id: str,
        request: BatchCreateRequest,
        idempotency_key: str | None = None,
    ) -> BatchCreationOutcome:
        """Create (or, in dry_run mode, size) a batch for an order.

        Args:
            tenant_id: Tenant resolved by the tenant gate
            request: Validated request body
            idempotency_key: Optional client dedup key (Idempotency-Key header)

        Returns:
            BatchCreationOutcome

        Raises:
            QRBatchError subclasses for every rejected request
        """
        start = time.perf_counter()

        if request.mode == "full" and idempotency_key:
            replay = await self._replay(tenant_id, request, idempotency_key)
            if replay is not None:
                return replay

        packaging, sizing = await self._validate_and_size(tenant_id, request)

        if request.mode == "dry_run":
            logger.info(
                "Dry run sized",
                tenant_id=tenant_id,
                order_id=request.order_id,
                **sizing.to_dict(),
            )
            return BatchCreationOutcome(
                data=BatchCreateData(
                    mode="dry_run",
                    calculations=SizingOut(**sizing.to_dict()),
                    packaging=_packaging_out(packaging),
                ),
                created=False,
            )

        codes, master_ids = await self._generate_identifiers(tenant_id, sizing)

        batch = await self._repository.create_batch(
            tenant_id=tenant_id,
            order_id=request.order_id,
            product_id=request.product_id,
            sizing=sizing,
            packaging=packaging,
            codes=codes,
            master_ids=master_ids,
            idempotency_key=idempotency_key,
        )
        await self._commit(tenant_id, batch)

        export = await self._exporter.export_batch(batch)

        logger.info(
            "Batch generation completed",
            tenant_id=tenant_id,
            batch_id=batch.id,
            order_id=batch.order_id,
            total_unique_qrs=batch.total_unique_qrs,
            masters_count=batch.masters_count,
            csv_generated=export.csv.generated,
            pdf_generated=export.pdf.generated,
            export_complete=export.all_generated,
            export_ms=export.duration_ms,
            duration_ms=int((time.perf_counter() - start) * 1000),
        )

        return BatchCreationOutcome(
            data=BatchCreateData(
                mode="full",
                calculations=SizingOut(**sizing.to_dict()),
                packaging=_packaging_out(packaging),
                batch=BatchSummary.model_validate(batch),
                export_status=export.to_export_status(),
            ),
            created=True,
        )

    async def get_batch(self, tenant_id: str, batch_id: str) -> BatchSummary:
        batch = await self._repository.get_batch(tenant_id, batch_id)
        return BatchSummary.model_validate(batch)

    async def export_existing(self, tenant_id: str, batch_id: str) -> BatchExportData:
        """Re-run the export pipeline for a persisted batch, overwriting its artifacts."""
        batch = await self._repository.get_batch(tenant_id, batch_id)
        export = await self._exporter.export_batch(batch)
        return BatchExportData(batch_id=batch.id, export_status=export.to_export_status())

    async def _validate_and_size(
        self,
        tenant_id: str,
        request: BatchCreateRequest,
    ) -> tuple[PackagingConfig, SizingResult]:
        order = await self._repository.get_order(tenant_id, request.order_id)
        await self._repository.get_product(tenant_id, request.product_id)

        if request.product_id != order.product_id:
            raise ValidationError(
                f"product_id {request.product_id} does not match the order's product"
            )
        if request.total_units != order.total_units:
            raise ValidationError(
                f"total_units {request.total_units} does not match the order "
                f"({order.total_units})"
            )

        packaging = await self._repository.get_packaging_config(tenant_id)
        sizing = compute_sizing(
            order.total_units,
            packaging.units_per_master,
            packaging.buffer_per_1000,
        )
        return packaging, sizing

    async def _generate_identifiers(
        self,
        tenant_id: str,
        sizing: SizingResult,
    ) -> tuple[list[str], list[str]]:
        start = time.perf_counter()

        # Large sets are CPU-bound; generate and check them off the event loop
        codes, master_ids = await asyncio.gather(
            asyncio.to_thread(
                _generate_distinct, self._code_generator, sizing.total_unique_qrs, "code"
            ),
            asyncio.to_thread(
                _generate_distinct, self._master_generator, sizing.masters_count, "master"
            ),
        )
        await asyncio.to_thread(_ensure_disjoint, codes, master_ids)

        logger.info(
            "Identifiers generated",
            tenant_id=tenant_id,
            codes=len(codes),
            masters=len(master_ids),
            duration_ms=int((time.perf_counter() - start) * 1000),
        )
        return codes, master_ids

    async def _commit(self, tenant_id: str, batch: Batch) -> None:
        try:
            await self._session.commit()
        except SQLAlchemyError as e:
            logger.error(
                "Batch commit failed",
                tenant_id=tenant_id,
                batch_id=batch.id,
                error=str(e),
            )
            raise InternalError("Failed to persist batch") from e

    async def _replay(
        self,
        tenant_id: str,
        request: BatchCreateRequest,
        idempotency_key: str,
    ) -> BatchCreationOutcome | None:
        existing = await self._repository.find_by_idempotency_key(tenant_id, idempotency_key)
        if existing is None:
            return None

        if not request.same_payload(existing.order_id, existing.product_id, existing.total_units):
            raise ConflictError("Idempotency-Key was already used with a different request body")

        logger.info(
            "Replaying stored batch for idempotency key",
            tenant_id=tenant_id,
            batch_id=existing.id,
        )
        export = await self._exporter.export_batch(existing)
        sizing = SizingOut(
            total_units=existing.total_units,
            buffer_units=existing.buffer_units,
            total_unique_qrs=existing.total_unique_qrs,
            masters_count=existing.masters_count,
        )
        return BatchCreationOutcome(
            data=BatchCreateData(
                mode="full",
                calculations=sizing,
                packaging=PackagingOut(
                    units_per_master=existing.units_per_master,
                    buffer_per_1000=existing.buffer_per_1000,
                ),
                batch=BatchSummary.model_validate(existing),
                export_status=export.to_export_status(),
                replayed=True,
            ),
            created=False,
        )


def _packaging_out(packaging: PackagingConfig) -> PackagingOut:
    return PackagingOut(
        units_per_master=packaging.units_per_master,
        buffer_per_1000=packaging.buffer_per_1000,
    )


def _generate_distinct(generator: IdentifierGenerator, n: int, kind: str) -> list[str]:
    identifiers = generator.generate(n)
    ensure_distinct(identifiers, kind)
    return identifiers


def _ensure_disjoint(codes: list[str], master_ids: list[str]) -> None:
    if not set(codes).isdisjoint(master_ids):
        raise IdentifierCollisionError("Unit code and master identifier sets overlap")
