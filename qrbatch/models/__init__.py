"""SQLAlchemy models.

Tenants, products, orders and packaging configs are read-only here; the
service only ever inserts batches.
"""

from qrbatch.models.base import Base, TimestampMixin
from qrbatch.models.batch import Batch, BatchStatus
from qrbatch.models.order import Order, OrderStatus
from qrbatch.models.packaging_config import PackagingConfig
from qrbatch.models.product import Product
from qrbatch.models.tenant import Tenant

__all__ = [
    "Base",
    "TimestampMixin",
    "Batch",
    "BatchStatus",
    "Order",
    "OrderStatus",
    "PackagingConfig",
    "Product",
    "Tenant",
]
