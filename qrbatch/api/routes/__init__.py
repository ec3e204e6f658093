"""API routes module."""

from qrbatch.api.routes.batches import router as batches_router
from qrbatch.api.routes.health import router as health_router

__all__ = ["batches_router", "health_router"]
