"""Tenant model - the isolation boundary for all other records."""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from qrbatch.models.base import Base, TimestampMixin


class Tenant(Base, TimestampMixin):
    """Organization owning orders, products, packaging config and batches."""

    __tablename__ = "tenants"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Tenant(id='{self.id}', active={self.active})>"
