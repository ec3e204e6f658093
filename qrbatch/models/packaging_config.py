"""PackagingConfig model - per-tenant packing and buffer settings."""

from sqlalchemy import Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from qrbatch.models.base import Base, TenantScopedMixin, TimestampMixin, UUIDPrimaryKeyMixin


class PackagingConfig(Base, UUIDPrimaryKeyMixin, TenantScopedMixin, TimestampMixin):
    """One row per tenant.

    Values are validated when a batch is sized, not here: a stored
    units_per_master of 0 is a precondition failure at generation time.
    """

    __tablename__ = "packaging_configs"
    __table_args__ = (UniqueConstraint("tenant_id", name="uq_packaging_configs_tenant"),)

    units_per_master: Mapped[int | None] = mapped_column(Integer, nullable=True)
    buffer_per_1000: Mapped[int | None] = mapped_column(Integer, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<PackagingConfig(tenant_id='{self.tenant_id}', "
            f"units_per_master={self.units_per_master}, buffer_per_1000={self.buffer_per_1000})>"
        )
