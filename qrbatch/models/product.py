"""Product model - what the ordered units are."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from qrbatch.models.base import Base, TenantScopedMixin, TimestampMixin, UUIDPrimaryKeyMixin


class Product(Base, UUIDPrimaryKeyMixin, TenantScopedMixin, TimestampMixin):
    """Product catalog entry, read-only for batch generation."""

    __tablename__ = "products"

    sku: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    def __repr__(self) -> str:
        return f"<Product(id='{self.id}', sku='{self.sku}')>"
