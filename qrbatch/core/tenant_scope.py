"""Tenant scope validation and the database scope-setting primitive."""

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from qrbatch.core.errors import TenantScopeError, ValidationError
from qrbatch.infra.logging import get_logger

logger = get_logger(__name__)

MAX_TENANT_ID_LENGTH = 100
TENANT_SETTING = "app.current_tenant"


def validate_tenant_id(tenant_id: str | None) -> str:
    """Validate a tenant-scope token from an inbound request.

    Args:
        tenant_id: Raw token (X-Tenant-Id header)

    Returns:
        The stripped token

    Raises:
        ValidationError: If missing, too long, or not path-safe
    """
    if tenant_id is None or not tenant_id.strip():
        raise ValidationError("X-Tenant-Id header is required")

    value = tenant_id.strip()
    if len(value) > MAX_TENANT_ID_LENGTH:
        raise ValidationError(f"Tenant id exceeds {MAX_TENANT_ID_LENGTH} characters")
    if ".." in value or "/" in value or "\\" in value or any(c.isspace() for c in value):
        raise ValidationError("Invalid tenant id format")
    return value


async def set_tenant_scope(session: AsyncSession, tenant_id: str) -> None:
    """Scope the session's current transaction to one tenant.

    On PostgreSQL this sets ``app.current_tenant`` transaction-locally so row
    level security policies apply. Other dialects have no equivalent and rely
    on the explicit tenant filters every repository query carries.

    Raises:
        TenantScopeError: If the database rejects the setting
    """
    if session.bind.dialect.name != "postgresql":
        logger.debug("Tenant scope not applied for dialect", dialect=session.bind.dialect.name)
        return

    try:
        await session.execute(
            text("SELECT set_config(:name, :tenant_id, true)"),
            {"name": TENANT_SETTING, "tenant_id": tenant_id},
        )
    except SQLAlchemyError as e:
        logger.error("Failed to set tenant scope", tenant_id=tenant_id, error=str(e))
        raise TenantScopeError("Invalid tenant scope or database error") from e

    logger.debug("Tenant scope set", tenant_id=tenant_id)
