#!/usr/bin/env python
"""Seed a local database for trying the batch endpoint.

This script:
1. Creates all tables
2. Creates (or updates) a tenant with its packaging configuration
3. Creates a product and an order for that tenant

Usage:
    # Tenant with 200 units per master and 10 buffer codes per 1000 units
    python scripts/seed_local.py --tenant test-tenant --units 2500

    # Custom packaging values
    python scripts/seed_local.py --tenant test-tenant --units 999 \
        --units-per-master 50 --buffer-per-1000 5

    # Show what a tenant has
    python scripts/seed_local.py --show test-tenant
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from qrbatch.infra.database import close_db_engine, create_all_tables, get_db_session
from qrbatch.infra.logging import get_logger, setup_logging
from qrbatch.models import Batch, Order, PackagingConfig, Product, Tenant

setup_logging()
logger = get_logger(__name__)


async def seed_tenant(
    tenant_id: str,
    total_units: int,
    units_per_master: int,
    buffer_per_1000: int,
) -> tuple[str, str]:
    """Create tenant, packaging config, product and order.

    Returns:
        (order_id, product_id)
    """
    await create_all_tables()

    async with get_db_session() as session:
        tenant = await session.get(Tenant, tenant_id)
        if tenant is None:
            session.add(Tenant(id=tenant_id, name=tenant_id, active=True))

        result = await session.execute(
            select(PackagingConfig).where(PackagingConfig.tenant_id == tenant_id)
        )
        config = result.scalar_one_or_none()
        if config is None:
            session.add(
                PackagingConfig(
                    tenant_id=tenant_id,
                    units_per_master=units_per_master,
                    buffer_per_1000=buffer_per_1000,
                )
            )
        else:
            config.units_per_master = units_per_master
            config.buffer_per_1000 = buffer_per_1000

        product = Product(tenant_id=tenant_id, sku="SKU-LOCAL", name="Local test product")
        session.add(product)
        await session.flush()

        order = Order(
            tenant_id=tenant_id,
            code=f"PO-{product.id[:8].upper()}",
            product_id=product.id,
            total_units=total_units,
        )
        session.add(order)
        await session.flush()

        logger.info(
            "Seeded tenant",
            tenant_id=tenant_id,
            order_id=order.id,
            product_id=product.id,
            total_units=total_units,
        )
        return order.id, product.id


async def show_tenant(tenant_id: str) -> None:
    async with get_db_session() as session:
        config = (
            await session.execute(
                select(PackagingConfig).where(PackagingConfig.tenant_id == tenant_id)
            )
        ).scalar_one_or_none()
        orders = (
            await session.execute(select(Order).where(Order.tenant_id == tenant_id))
        ).scalars().all()
        batches = (
            await session.execute(select(Batch).where(Batch.tenant_id == tenant_id))
        ).scalars().all()

    print(f"\nTenant: {tenant_id}")
    print("-" * 60)
    if config:
        print(f"  units_per_master={config.units_per_master} buffer_per_1000={config.buffer_per_1000}")
    else:
        print("  No packaging configuration")
    for order in orders:
        print(f"  Order {order.id} ({order.code}): {order.total_units} units, product {order.product_id}")
    for batch in batches:
        print(
            f"  Batch {batch.id}: {batch.total_unique_qrs} codes in "
            f"{batch.masters_count} masters"
        )


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Seed a local database for the QR batch service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--tenant", type=str, help="Tenant ID to create/update")
    parser.add_argument("--units", type=int, default=2500, help="Units on the seeded order")
    parser.add_argument("--units-per-master", type=int, default=200)
    parser.add_argument("--buffer-per-1000", type=int, default=10)
    parser.add_argument("--show", type=str, metavar="TENANT_ID", help="Show a tenant's records")
    return parser.parse_args()


async def main() -> int:
    """Main entry point."""
    args = parse_args()

    try:
        if args.show:
            await show_tenant(args.show)
            return 0

        if not args.tenant:
            print("Error: --tenant is required (or use --show)")
            return 1

        order_id, product_id = await seed_tenant(
            tenant_id=args.tenant,
            total_units=args.units,
            units_per_master=args.units_per_master,
            buffer_per_1000=args.buffer_per_1000,
        )
    finally:
        await close_db_engine()

    print("\nSeeded. Try:")
    print(
        "  curl -X POST http://localhost:8000/api/v1/batches "
        f"-H 'X-Tenant-Id: {args.tenant}' -H 'Content-Type: application/json' "
        f"-d '{{\"order_id\": \"{order_id}\", \"product_id\": \"{product_id}\", "
        f"\"total_units\": {args.units}}}'"
    )
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
