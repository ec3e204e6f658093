"""FastAPI dependencies for dependency injection.

Provides:
- Tenant gate: X-Tenant-Id validation, scoped session, active tenant check
- Storage client
- Identifier generators
- Batch service wired from the above
"""

from typing import Annotated, AsyncGenerator

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from qrbatch.config import settings
from qrbatch.core.errors import UnauthorizedError
from qrbatch.core.identifiers import IdentifierGenerator, UlidGenerator
from qrbatch.core.tenant_scope import validate_tenant_id
from qrbatch.infra.database import get_db_session
from qrbatch.infra.logging import bind_request_context, get_logger
from qrbatch.infra.storage import BlobStorage, get_storage_client
from qrbatch.services.batch_repository import BatchRepository
from qrbatch.services.batch_service import BatchService

logger = get_logger(__name__)

# One generator per namespace per process keeps each sequence monotonic
_code_generator = UlidGenerator(prefix=settings.code_prefix)
_master_generator = UlidGenerator(prefix=settings.master_prefix)


async def get_tenant_id(
    x_tenant_id: Annotated[str | None, Header()] = None,
) -> str:
    """Extract and validate the tenant scope token.

    Raises:
        ValidationError: If the header is missing or malformed
    """
    tenant_id = validate_tenant_id(x_tenant_id)
    bind_request_context(tenant_id=tenant_id)
    return tenant_id


async def get_db(
    tenant_id: Annotated[str, Depends(get_tenant_id)],
) -> AsyncGenerator[AsyncSession, None]:
    """Get database session scoped to an active tenant.

    Raises:
        UnauthorizedError: If the tenant is unknown or inactive
    """
    async with get_db_session(tenant_id=tenant_id) as session:
        tenant = await BatchRepository(session).get_active_tenant(tenant_id)
        if tenant is None:
            logger.warning("Rejected request for unknown or inactive tenant", tenant_id=tenant_id)
            raise UnauthorizedError("Unknown or inactive tenant")
        yield session


async def get_storage() -> BlobStorage:
    """Get storage client dependency."""
    return get_storage_client()


def get_code_generator() -> IdentifierGenerator:
    return _code_generator


def get_master_generator() -> IdentifierGenerator:
    return _master_generator


# Type aliases for cleaner annotations
TenantId = Annotated[str, Depends(get_tenant_id)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
Storage = Annotated[BlobStorage, Depends(get_storage)]


async def get_batch_service(
    session: DbSession,
    storage: Storage,
    code_generator: Annotated[IdentifierGenerator, Depends(get_code_generator)],
    master_generator: Annotated[IdentifierGenerator, Depends(get_master_generator)],
) -> BatchService:
    return BatchService(
        session=session,
        storage=storage,
        code_generator=code_generator,
        master_generator=master_generator,
    )


BatchServiceDep = Annotated[BatchService, Depends(get_batch_service)]
