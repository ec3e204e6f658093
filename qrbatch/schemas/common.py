"""Response envelope and shared schemas.

Every API response is either
    {"ok": true, "data": ..., "request_id": "req_..."}
or
    {"ok": false, "error": {"code": ..., "message": ...}, "request_id": "req_..."}
"""

from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, Field

from qrbatch.core.errors import ErrorCode
from qrbatch.core.identifiers import new_request_id

T = TypeVar("T")


class ErrorDetail(BaseModel):
    code: ErrorCode = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable description")

    model_config = {"extra": "forbid"}


class SuccessEnvelope(BaseModel, Generic[T]):
    """Successful response wrapper."""

    ok: Literal[True] = True
    data: T = Field(description="Response payload")
    request_id: str = Field(description="Unique id of this API call")

    model_config = {"extra": "forbid"}


class ErrorEnvelope(BaseModel):
    """Failed response wrapper."""

    ok: Literal[False] = False
    error: ErrorDetail
    request_id: str = Field(description="Unique id of this API call")

    model_config = {"extra": "forbid"}


def success_envelope(data: Any, request_id: str | None = None) -> dict[str, Any]:
    """Build a success body.

    Args:
        data: JSON-serializable payload (pydantic models are dumped)
        request_id: Id already assigned to the request, or None for a fresh one
    """
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    return SuccessEnvelope[Any](
        data=data,
        request_id=request_id or new_request_id(),
    ).model_dump(mode="json")


def error_envelope(
    code: ErrorCode,
    message: str,
    request_id: str | None = None,
) -> dict[str, Any]:
    """Build an error body."""
    return ErrorEnvelope(
        error=ErrorDetail(code=code, message=message),
        request_id=request_id or new_request_id(),
    ).model_dump(mode="json")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Health status (healthy, degraded)")
    version: str = Field(description="Service version")
    environment: str = Field(description="Environment name")
    checks: dict[str, bool] = Field(default_factory=dict, description="Individual health checks")

    model_config = {"extra": "forbid"}
