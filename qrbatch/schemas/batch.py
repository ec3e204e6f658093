"""Batch request and response schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from qrbatch.config import settings

BatchMode = Literal["full", "dry_run"]


class BatchCreateRequest(BaseModel):
    """Create a batch for an order.

    ``mode="dry_run"`` validates the order and packaging configuration and
    returns the computed sizing without generating or persisting anything.
    """

    order_id: str = Field(min_length=1, max_length=36, description="Order to generate codes for")
    product_id: str = Field(min_length=1, max_length=36, description="Product on the order")
    total_units: int = Field(gt=0, description="Units ordered, must match the order")
    mode: BatchMode = Field(default="full", description="full or dry_run")

    model_config = {"extra": "forbid"}

    @field_validator("total_units")
    @classmethod
    def validate_total_units(cls, v: int) -> int:
        """Reject orders larger than a single batch may hold."""
        if v > settings.max_total_units:
            raise ValueError(f"total_units must not exceed {settings.max_total_units}")
        return v

    @field_validator("order_id", "product_id")
    @classmethod
    def strip_ids(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    def same_payload(self, order_id: str, product_id: str, total_units: int) -> bool:
        """Whether a stored batch was created from an identical request."""
        return (
            self.order_id == order_id
            and self.product_id == product_id
            and self.total_units == total_units
        )


class SizingOut(BaseModel):
    total_units: int
    buffer_units: int
    total_unique_qrs: int
    masters_count: int


class PackagingOut(BaseModel):
    units_per_master: int
    buffer_per_1000: int


class BatchSummary(BaseModel):
    """Persisted batch without its code lists."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    order_id: str
    product_id: str
    status: str
    total_units: int
    buffer_units: int
    total_unique_qrs: int
    masters_count: int
    units_per_master: int
    buffer_per_1000: int
    created_at: datetime


class ExportStatus(BaseModel):
    """Outcome of the two export artifacts, reported independently."""

    csv_generated: bool
    pdf_generated: bool
    csv_url: str | None = None
    pdf_url: str | None = None
    errors: dict[str, str] = Field(default_factory=dict)


class BatchCreateData(BaseModel):
    """Payload of a successful create-batch call."""

    mode: BatchMode
    calculations: SizingOut
    packaging: PackagingOut
    batch: BatchSummary | None = None
    export_status: ExportStatus | None = None
    replayed: bool = False


class BatchExportData(BaseModel):
    batch_id: str
    export_status: ExportStatus
