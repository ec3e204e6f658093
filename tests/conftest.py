"""Shared fixtures.

Tests run against a throwaway SQLite database (aiosqlite) and local
filesystem storage. Environment is set before qrbatch is imported so the
settings singleton picks it up.
"""

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncGenerator

_TEST_DIR = tempfile.mkdtemp(prefix="qrbatch-tests-")
os.environ["DATABASE_URL_OVERRIDE"] = f"sqlite+aiosqlite:///{_TEST_DIR}/qrbatch-test.db"
os.environ["ENVIRONMENT"] = "dev"
os.environ["USE_LOCAL_STORAGE"] = "false"
os.environ["LOG_JSON"] = "false"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from qrbatch.api.deps import get_code_generator, get_master_generator, get_storage
from qrbatch.core.identifiers import SequenceGenerator, UlidGenerator
from qrbatch.infra.database import (
    close_db_engine,
    create_all_tables,
    get_engine,
    get_session_factory,
)
from qrbatch.infra.storage import LocalStorageClient
from qrbatch.main import app
from qrbatch.models import Base, Order, PackagingConfig, Product, Tenant

TENANT_A = "tenant-a"
TENANT_B = "tenant-b"


@dataclass(frozen=True)
class SeedData:
    tenant_id: str
    order_id: str
    product_id: str
    total_units: int
    other_tenant_order_id: str


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh schema per test; engine disposed so the next test's loop gets its own."""
    await create_all_tables()
    engine = get_engine()
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await close_db_engine()


@pytest.fixture
async def session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    session = get_session_factory()()
    try:
        yield session
    finally:
        await session.rollback()
        await session.close()


async def _seed(
    units_per_master: int | None = 200,
    buffer_per_1000: int | None = 10,
    total_units: int = 2500,
    with_packaging: bool = True,
) -> SeedData:
    async with get_session_factory()() as s:
        s.add_all(
            [
                Tenant(id=TENANT_A, name="Tenant A", active=True),
                Tenant(id=TENANT_B, name="Tenant B", active=True),
                Tenant(id="tenant-inactive", name="Gone", active=False),
            ]
        )
        product = Product(tenant_id=TENANT_A, sku="SKU-1", name="Widget")
        other_product = Product(tenant_id=TENANT_B, sku="SKU-2", name="Gadget")
        s.add_all([product, other_product])
        await s.flush()

        order = Order(
            tenant_id=TENANT_A,
            code="PO-0001",
            product_id=product.id,
            total_units=total_units,
        )
        other_order = Order(
            tenant_id=TENANT_B,
            code="PO-0002",
            product_id=other_product.id,
            total_units=500,
        )
        s.add_all([order, other_order])

        if with_packaging:
            s.add(
                PackagingConfig(
                    tenant_id=TENANT_A,
                    units_per_master=units_per_master,
                    buffer_per_1000=buffer_per_1000,
                )
            )
        s.add(PackagingConfig(tenant_id=TENANT_B, units_per_master=100, buffer_per_1000=0))
        await s.commit()

        return SeedData(
            tenant_id=TENANT_A,
            order_id=order.id,
            product_id=product.id,
            total_units=total_units,
            other_tenant_order_id=other_order.id,
        )


@pytest.fixture
def seed_factory(db_engine: AsyncEngine):
    """Seed with custom packaging values: ``await seed_factory(units_per_master=0)``."""
    return _seed


@pytest.fixture
async def seed(db_engine: AsyncEngine) -> SeedData:
    return await _seed()


@pytest.fixture
def storage(tmp_path: Path) -> LocalStorageClient:
    return LocalStorageClient(root=tmp_path / "blobs", public_base_url="http://files.test")


@pytest.fixture
def code_generator() -> UlidGenerator:
    return UlidGenerator(prefix="QR_")


@pytest.fixture
def master_generator() -> UlidGenerator:
    return UlidGenerator(prefix="MC_")


@pytest.fixture
def stub_generators() -> tuple[SequenceGenerator, SequenceGenerator]:
    return SequenceGenerator(prefix="QR_"), SequenceGenerator(prefix="MC_")


@pytest.fixture
async def client(
    db_engine: AsyncEngine,
    storage: LocalStorageClient,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with local storage."""
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_code_generator] = lambda: UlidGenerator(prefix="QR_")
    app.dependency_overrides[get_master_generator] = lambda: UlidGenerator(prefix="MC_")

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
