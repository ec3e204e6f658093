"""Batch endpoints.

Create a batch for an order, fetch it, and re-run its export. Every
response uses the ok/data/request_id envelope; errors are rendered by the
exception handlers registered in main.
"""

from typing import Annotated

from fastapi import APIRouter, Header, Request, status
from fastapi.responses import JSONResponse

from qrbatch.api.deps import BatchServiceDep, TenantId
from qrbatch.core.errors import ValidationError
from qrbatch.infra.logging import get_logger
from qrbatch.schemas.batch import BatchCreateRequest
from qrbatch.schemas.common import success_envelope

router = APIRouter()
logger = get_logger(__name__)

MAX_IDEMPOTENCY_KEY_LENGTH = 255


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create batch for order",
)
async def create_batch(
    body: BatchCreateRequest,
    request: Request,
    tenant_id: TenantId,
    service: BatchServiceDep,
    idempotency_key: Annotated[str | None, Header()] = None,
) -> JSONResponse:
    """Generate unit codes and master ids for an order, persist, and export.

    Returns 201 when a batch was created, 200 for a dry run or a replay of a
    previously stored Idempotency-Key.
    """
    if idempotency_key is not None:
        idempotency_key = idempotency_key.strip() or None
        if idempotency_key and len(idempotency_key) > MAX_IDEMPOTENCY_KEY_LENGTH:
            raise ValidationError(
                f"Idempotency-Key exceeds {MAX_IDEMPOTENCY_KEY_LENGTH} characters"
            )

    logger.info(
        "Batch creation request received",
        tenant_id=tenant_id,
        order_id=body.order_id,
        total_units=body.total_units,
        mode=body.mode,
        has_idempotency_key=idempotency_key is not None,
    )

    outcome = await service.create_batch(tenant_id, body, idempotency_key=idempotency_key)

    return JSONResponse(
        status_code=status.HTTP_201_CREATED if outcome.created else status.HTTP_200_OK,
        content=success_envelope(outcome.data, _request_id(request)),
    )


@router.get("/{batch_id}", summary="Get batch")
async def get_batch(
    batch_id: str,
    request: Request,
    tenant_id: TenantId,
    service: BatchServiceDep,
) -> JSONResponse:
    summary = await service.get_batch(tenant_id, batch_id)
    return JSONResponse(content=success_envelope(summary, _request_id(request)))


@router.post("/{batch_id}/export", summary="Re-run batch export")
async def export_batch(
    batch_id: str,
    request: Request,
    tenant_id: TenantId,
    service: BatchServiceDep,
) -> JSONResponse:
    """Rebuild and re-upload the CSV manifest and report.

    Artifacts overwrite the previous upload for this batch.
    """
    data = await service.export_existing(tenant_id, batch_id)
    return JSONResponse(content=success_envelope(data, _request_id(request)))
