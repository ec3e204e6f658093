"""Tests for BatchRepository against a SQLite database."""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from qrbatch.core.errors import (
    ForbiddenError,
    IdempotentReplayError,
    InternalError,
    NotFoundError,
)
from qrbatch.core.identifiers import SequenceGenerator
from qrbatch.core.sizing import SizingResult, compute_sizing
from qrbatch.infra.database import get_session_factory
from qrbatch.models import Batch
from qrbatch.services.batch_repository import BatchRepository

from conftest import TENANT_A, TENANT_B, SeedData


async def _create(
    repository: BatchRepository,
    seed: SeedData,
    idempotency_key: str | None = None,
    tenant_id: str = TENANT_A,
    start: int = 1,
) -> Batch:
    packaging = await repository.get_packaging_config(TENANT_A)
    sizing = compute_sizing(seed.total_units, packaging.units_per_master, packaging.buffer_per_1000)
    return await repository.create_batch(
        tenant_id=tenant_id,
        order_id=seed.order_id,
        product_id=seed.product_id,
        sizing=sizing,
        packaging=packaging,
        codes=SequenceGenerator(prefix="QR_", start=start).generate(sizing.total_unique_qrs),
        master_ids=SequenceGenerator(prefix="MC_", start=start).generate(sizing.masters_count),
        idempotency_key=idempotency_key,
    )


async def _batch_count() -> int:
    async with get_session_factory()() as s:
        return (await s.execute(select(func.count()).select_from(Batch))).scalar_one()


class TestLookups:
    @pytest.mark.asyncio
    async def test_get_order(self, session: AsyncSession, seed: SeedData):
        order = await BatchRepository(session).get_order(TENANT_A, seed.order_id)

        assert order.total_units == seed.total_units

    @pytest.mark.asyncio
    async def test_get_order_missing(self, session: AsyncSession, seed: SeedData):
        with pytest.raises(NotFoundError):
            await BatchRepository(session).get_order(TENANT_A, "no-such-order")

    @pytest.mark.asyncio
    async def test_get_order_of_other_tenant_is_forbidden(
        self, session: AsyncSession, seed: SeedData
    ):
        with pytest.raises(ForbiddenError):
            await BatchRepository(session).get_order(TENANT_A, seed.other_tenant_order_id)

    @pytest.mark.asyncio
    async def test_get_product_is_tenant_filtered(self, session: AsyncSession, seed: SeedData):
        repository = BatchRepository(session)

        assert (await repository.get_product(TENANT_A, seed.product_id)).sku == "SKU-1"
        with pytest.raises(NotFoundError):
            await repository.get_product(TENANT_B, seed.product_id)

    @pytest.mark.asyncio
    async def test_packaging_config_missing(self, session: AsyncSession, seed_factory):
        await seed_factory(with_packaging=False)

        with pytest.raises(NotFoundError):
            await BatchRepository(session).get_packaging_config(TENANT_A)

    @pytest.mark.asyncio
    async def test_active_tenant(self, session: AsyncSession, seed: SeedData):
        repository = BatchRepository(session)

        assert (await repository.get_active_tenant(TENANT_A)) is not None
        assert (await repository.get_active_tenant("tenant-inactive")) is None
        assert (await repository.get_active_tenant("nobody")) is None


class TestCreateBatch:
    @pytest.mark.asyncio
    async def test_persists_both_sets(self, session: AsyncSession, seed: SeedData):
        repository = BatchRepository(session)

        batch = await _create(repository, seed)
        await session.commit()

        stored = await BatchRepository(session).get_batch(TENANT_A, batch.id)
        assert stored.total_unique_qrs == 2520
        assert stored.masters_count == 13
        assert len(stored.codes) == 2520
        assert len(stored.master_ids) == 13
        assert stored.units_per_master == 200
        assert stored.buffer_per_1000 == 10
        assert stored.status == "created"

    @pytest.mark.asyncio
    async def test_batch_invisible_to_other_tenant(self, session: AsyncSession, seed: SeedData):
        repository = BatchRepository(session)
        batch = await _create(repository, seed)
        await session.commit()

        with pytest.raises(NotFoundError):
            await repository.get_batch(TENANT_B, batch.id)

    @pytest.mark.asyncio
    async def test_order_of_other_tenant_rejected(self, session: AsyncSession, seed: SeedData):
        with pytest.raises(ForbiddenError):
            await _create(BatchRepository(session), seed, tenant_id=TENANT_B)

    @pytest.mark.asyncio
    async def test_size_mismatch_rejected(self, session: AsyncSession, seed: SeedData):
        repository = BatchRepository(session)
        packaging = await repository.get_packaging_config(TENANT_A)
        sizing = compute_sizing(2500, 200, 10)

        with pytest.raises(InternalError):
            await repository.create_batch(
                tenant_id=TENANT_A,
                order_id=seed.order_id,
                product_id=seed.product_id,
                sizing=sizing,
                packaging=packaging,
                codes=["QR_1"],
                master_ids=["MC_1"],
            )
        await session.rollback()

        assert await _batch_count() == 0

    @pytest.mark.asyncio
    async def test_uncommitted_batch_is_discarded(self, session: AsyncSession, seed: SeedData):
        await _create(BatchRepository(session), seed)
        await session.rollback()

        assert await _batch_count() == 0

    @pytest.mark.asyncio
    async def test_find_by_idempotency_key(self, session: AsyncSession, seed: SeedData):
        repository = BatchRepository(session)
        batch = await _create(repository, seed, idempotency_key="key-1")
        await session.commit()

        assert (await repository.find_by_idempotency_key(TENANT_A, "key-1")).id == batch.id
        assert await repository.find_by_idempotency_key(TENANT_A, "key-2") is None
        assert await repository.find_by_idempotency_key(TENANT_B, "key-1") is None

    @pytest.mark.asyncio
    async def test_duplicate_idempotency_key(self, session: AsyncSession, seed: SeedData):
        await _create(BatchRepository(session), seed, idempotency_key="key-1")
        await session.commit()

        async with get_session_factory()() as other:
            with pytest.raises(IdempotentReplayError):
                await _create(BatchRepository(other), seed, idempotency_key="key-1", start=10000)
            await other.rollback()

        assert await _batch_count() == 1

    @pytest.mark.asyncio
    async def test_constraint_violation_with_unused_key(self, session: AsyncSession, seed: SeedData):
        repository = BatchRepository(session)
        packaging = await repository.get_packaging_config(TENANT_A)
        # total_units of zero trips the CHECK constraint, not the key's unique index
        sizing = SizingResult(total_units=0, buffer_units=0, total_unique_qrs=1, masters_count=1)

        with pytest.raises(InternalError) as exc_info:
            await repository.create_batch(
                tenant_id=TENANT_A,
                order_id=seed.order_id,
                product_id=seed.product_id,
                sizing=sizing,
                packaging=packaging,
                codes=["QR_1"],
                master_ids=["MC_1"],
                idempotency_key="key-1",
            )
        await session.rollback()

        assert not isinstance(exc_info.value, IdempotentReplayError)
        assert isinstance(exc_info.value.__cause__, IntegrityError)
        assert await _batch_count() == 0

    @pytest.mark.asyncio
    async def test_flush_failure_is_internal_error(self, session: AsyncSession, seed: SeedData):
        failing_flush = AsyncMock(
            side_effect=OperationalError("INSERT", {}, Exception("database is locked"))
        )

        with patch.object(session, "flush", failing_flush):
            with pytest.raises(InternalError) as exc_info:
                await _create(BatchRepository(session), seed, idempotency_key="key-1")
        await session.rollback()

        assert isinstance(exc_info.value.__cause__, OperationalError)
        assert await _batch_count() == 0

    @pytest.mark.asyncio
    async def test_batches_without_key_are_independent(self, session: AsyncSession, seed: SeedData):
        repository = BatchRepository(session)

        first = await _create(repository, seed)
        second = await _create(repository, seed, start=10000)
        await session.commit()

        assert first.id != second.id
        assert await _batch_count() == 2
