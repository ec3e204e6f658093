"""Tenant-scoped persistence for batches and the records they reference.

The repository never commits the caller's transaction. It works inside the transaction opened by
``get_db_session``, which commits when the request's unit of work finishes
and rolls back on any exception, so a batch and its generated code sets are
written all together or not at all.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from qrbatch.core.errors import (
    ForbiddenError,
    IdempotentReplayError,
    InternalError,
    NotFoundError,
)
from qrbatch.core.sizing import SizingResult
from qrbatch.infra.database import get_db_session
from qrbatch.infra.logging import get_logger
from qrbatch.models import Batch, BatchStatus, Order, PackagingConfig, Product, Tenant

logger = get_logger(__name__)


class BatchRepository:
    """Reads and writes scoped to one database session."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_active_tenant(self, tenant_id: str) -> Tenant | None:
        result = await self._session.execute(
            select(Tenant).where(Tenant.id == tenant_id, Tenant.active.is_(True))
        )
        return result.scalar_one_or_none()

    async def get_order(self, tenant_id: str, order_id: str) -> Order:
        """Load an order owned by the tenant.

        Raises:
            NotFoundError: If no order has this id
            ForbiddenError: If the order belongs to another tenant
        """
        order = await self._session.get(Order, order_id)
        if order is None:
            raise NotFoundError(f"Order not found: {order_id}")
        if order.tenant_id != tenant_id:
            logger.warning(
                "Order accessed outside its tenant",
                order_id=order_id,
                tenant_id=tenant_id,
            )
            raise ForbiddenError(f"Order {order_id} is not accessible for this tenant")
        return order

    async def get_product(self, tenant_id: str, product_id: str) -> Product:
        result = await self._session.execute(
            select(Product).where(Product.id == product_id, Product.tenant_id == tenant_id)
        )
        product = result.scalar_one_or_none()
        if product is None:
            raise NotFoundError(f"Product not found: {product_id}")
        return product

    async def get_packaging_config(self, tenant_id: str) -> PackagingConfig:
        result = await self._session.execute(
            select(PackagingConfig).where(PackagingConfig.tenant_id == tenant_id)
        )
        config = result.scalar_one_or_none()
        if config is None:
            raise NotFoundError("Packaging configuration not found for tenant")
        return config

    async def get_batch(self, tenant_id: str, batch_id: str) -> Batch:
        result = await self._session.execute(
            select(Batch).where(Batch.id == batch_id, Batch.tenant_id == tenant_id)
        )
        batch = result.scalar_one_or_none()
        if batch is None:
            raise NotFoundError(f"Batch not found: {batch_id}")
        return batch

    async def find_by_idempotency_key(self, tenant_id: str, key: str) -> Batch | None:
        result = await self._session.execute(
            select(Batch).where(Batch.tenant_id == tenant_id, Batch.idempotency_key == key)
        )
        return result.scalar_one_or_none()

    async def create_batch(
        self,
        tenant_id: str,
        order_id: str,
        product_id: str,
        sizing: SizingResult,
        packaging: PackagingConfig,
        codes: list[str],
        master_ids: list[str],
        idempotency_key: str | None = None,
    ) -> Batch:
        """Insert a batch with both generated identifier sets.

        Args:
            tenant_id: Acting tenant, must own the order
            order_id: Order the batch is generated for
            product_id: Product on the order
            sizing: Quantities from compute_sizing
            packaging: Tenant packaging configuration used for sizing
            codes: Unit codes, len == sizing.total_unique_qrs
            master_ids: Master carton ids, len == sizing.masters_count
            idempotency_key: Optional client dedup key

        Returns:
            Flushed Batch (committed when the session's transaction ends)

        Raises:
            NotFoundError / ForbiddenError: Order missing or owned by another tenant
            InternalError: Set sizes disagree with sizing, or storage failure
            IdempotentReplayError: Key already stored by a concurrent request
        """
        await self.get_order(tenant_id, order_id)

        if len(codes) != sizing.total_unique_qrs or len(master_ids) != sizing.masters_count:
            raise InternalError(
                "Generated set sizes do not match sizing "
                f"(codes={len(codes)}/{sizing.total_unique_qrs}, "
                f"masters={len(master_ids)}/{sizing.masters_count})"
            )

        batch = Batch(
            tenant_id=tenant_id,
            order_id=order_id,
            product_id=product_id,
            total_units=sizing.total_units,
            buffer_units=sizing.buffer_units,
            total_unique_qrs=sizing.total_unique_qrs,
            masters_count=sizing.masters_count,
            units_per_master=packaging.units_per_master,
            buffer_per_1000=packaging.buffer_per_1000,
            status=BatchStatus.CREATED.value,
            codes=codes,
            master_ids=master_ids,
            idempotency_key=idempotency_key,
        )

        try:
            self._session.add(batch)
            await self._session.flush()
        except IntegrityError as e:
            if idempotency_key is not None and await _idempotency_key_stored(
                tenant_id, idempotency_key
            ):
                logger.info(
                    "Idempotency key stored by a concurrent request",
                    tenant_id=tenant_id,
                    order_id=order_id,
                )
                raise IdempotentReplayError(
                    "A request with this Idempotency-Key was processed concurrently; "
                    "retry to receive the stored batch"
                ) from e
            logger.error("Batch insert violated a constraint", tenant_id=tenant_id, error=str(e))
            raise InternalError("Failed to persist batch") from e
        except SQLAlchemyError as e:
            logger.error(
                "Batch insert failed",
                tenant_id=tenant_id,
                order_id=order_id,
                error=str(e),
            )
            raise InternalError("Failed to persist batch") from e

        logger.info(
            "Batch persisted",
            tenant_id=tenant_id,
            batch_id=batch.id,
            order_id=order_id,
            total_unique_qrs=batch.total_unique_qrs,
            masters_count=batch.masters_count,
        )
        return batch


async def _idempotency_key_stored(tenant_id: str, key: str) -> bool:
    """Whether another transaction has committed a batch under this key.

    Runs in its own session: the caller's transaction is unusable after the
    failed flush.
    """
    try:
        async with get_db_session(tenant_id=tenant_id) as session:
            existing = await BatchRepository(session).find_by_idempotency_key(tenant_id, key)
    except SQLAlchemyError as e:
        logger.error("Idempotency key lookup failed", tenant_id=tenant_id, error=str(e))
        return False
    return existing is not None
