"""Batch model - one generation run of unit codes and master cartons."""

from enum import Enum

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from qrbatch.models.base import (
    Base,
    JSONType,
    TenantScopedMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)


class BatchStatus(str, Enum):
    CREATED = "created"


class Batch(Base, UUIDPrimaryKeyMixin, TenantScopedMixin, TimestampMixin):
    """Generated batch for an order.

    Invariants, checked before insert:
        buffer_units = (total_units // 1000) * buffer_per_1000
        total_unique_qrs = total_units + buffer_units
        masters_count = ceil(total_unique_qrs / units_per_master)
        len(codes) == total_unique_qrs, len(master_ids) == masters_count

    units_per_master and buffer_per_1000 are a snapshot of the tenant's
    packaging configuration at generation time, so later config edits never
    change how an existing batch is laid out.
    """

    __tablename__ = "batches"
    __table_args__ = (
        UniqueConstraint("tenant_id", "idempotency_key", name="uq_batches_tenant_idempotency_key"),
        CheckConstraint("total_units > 0", name="ck_batches_total_units_positive"),
        CheckConstraint("units_per_master > 0", name="ck_batches_units_per_master_positive"),
    )

    order_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("orders.id"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("products.id"),
        nullable=False,
    )
    total_units: Mapped[int] = mapped_column(Integer, nullable=False)
    buffer_units: Mapped[int] = mapped_column(Integer, nullable=False)
    total_unique_qrs: Mapped[int] = mapped_column(Integer, nullable=False)
    masters_count: Mapped[int] = mapped_column(Integer, nullable=False)
    units_per_master: Mapped[int] = mapped_column(Integer, nullable=False)
    buffer_per_1000: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BatchStatus.CREATED.value,
    )
    codes: Mapped[list[str]] = mapped_column(JSONType, nullable=False)
    master_ids: Mapped[list[str]] = mapped_column(JSONType, nullable=False)
    idempotency_key: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def master_position(self, code_index: int) -> tuple[int, int]:
        """Locate a code within the carton layout.

        Args:
            code_index: 0-based position of the code in generation order

        Returns:
            (0-based master index, 1-based unit index within that master)
        """
        return code_index // self.units_per_master, code_index % self.units_per_master + 1

    def __repr__(self) -> str:
        return (
            f"<Batch(id='{self.id}', order_id='{self.order_id}', "
            f"total_unique_qrs={self.total_unique_qrs}, masters_count={self.masters_count})>"
        )
