"""Core module - error taxonomy, sizing, identifiers and tenant scope."""

from qrbatch.core.errors import ErrorCode, QRBatchError
from qrbatch.core.identifiers import (
    IdentifierGenerator,
    SequenceGenerator,
    UlidGenerator,
    ensure_distinct,
    new_request_id,
)
from qrbatch.core.sizing import SizingResult, compute_sizing
from qrbatch.core.tenant_scope import set_tenant_scope, validate_tenant_id

__all__ = [
    "ErrorCode",
    "QRBatchError",
    "IdentifierGenerator",
    "SequenceGenerator",
    "UlidGenerator",
    "ensure_distinct",
    "new_request_id",
    "SizingResult",
    "compute_sizing",
    "set_tenant_scope",
    "validate_tenant_id",
]
