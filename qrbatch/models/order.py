"""Order model - purchase order supplying the unit count for a batch."""

from enum import Enum

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from qrbatch.models.base import Base, TenantScopedMixin, TimestampMixin, UUIDPrimaryKeyMixin


class OrderStatus(str, Enum):
    CREATED = "created"
    PO_SENT = "po_sent"
    COMPLETED = "completed"


class Order(Base, UUIDPrimaryKeyMixin, TenantScopedMixin, TimestampMixin):
    """Purchase order for N physical units.

    Created elsewhere; batch generation only reads it.
    """

    __tablename__ = "orders"
    __table_args__ = (CheckConstraint("total_units > 0", name="ck_orders_total_units_positive"),)

    code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    manufacturer_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    product_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("products.id"),
        nullable=False,
        index=True,
    )
    total_units: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=OrderStatus.CREATED.value,
    )

    def __repr__(self) -> str:
        return f"<Order(id='{self.id}', code='{self.code}', total_units={self.total_units})>"
