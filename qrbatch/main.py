"""FastAPI application entry point.

QR batch service: turns an order's unit count into a persisted batch of
unique unit codes and master carton ids, then exports a CSV manifest and a
PDF report to blob storage.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from qrbatch import __version__
from qrbatch.api.routes.batches import router as batches_router
from qrbatch.api.routes.health import router as health_router
from qrbatch.config import settings
from qrbatch.core.errors import ErrorCode, QRBatchError
from qrbatch.core.identifiers import new_request_id
from qrbatch.infra.database import close_db_engine, verify_db_connection
from qrbatch.infra.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
    setup_logging,
)
from qrbatch.schemas.common import error_envelope

# Setup logging first
setup_logging()
logger = get_logger(__name__)

_HTTP_STATUS_TO_CODE: dict[int, ErrorCode] = {
    400: ErrorCode.VALIDATION_ERROR,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
    405: ErrorCode.NOT_FOUND,
    409: ErrorCode.CONFLICT,
    412: ErrorCode.PRECONDITION_FAILED,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    Startup:
    - Verify database connection

    Shutdown:
    - Close database connections
    """
    logger.info(
        "QR batch service starting",
        environment=settings.environment,
        version=__version__,
        local_storage=settings.use_local_storage,
    )

    db_ok = await verify_db_connection()
    if not db_ok:
        logger.warning("Database connection failed - will retry on first request")

    yield

    logger.info("QR batch service shutting down")
    await close_db_engine()
    logger.info("Cleanup complete")


app = FastAPI(
    title="QR Batch Service",
    description="Batch generation and export of unique QR codes for orders",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment == "dev" else None,
    redoc_url=None,
)

# CORS middleware (mainly for local development)
if settings.environment == "dev":
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Assign a request id and bind it to every log line for this request."""
    request_id = new_request_id()
    request.state.request_id = request_id

    clear_request_context()
    bind_request_context(request_id=request_id, path=request.url.path)

    response = await call_next(request)
    response.headers["X-Request-Id"] = request_id
    return response


# =============================================================================
# Exception Handlers
# =============================================================================


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


@app.exception_handler(QRBatchError)
async def qrbatch_exception_handler(request: Request, exc: QRBatchError) -> JSONResponse:
    """Render domain errors as error envelopes."""
    log = logger.error if exc.http_status >= 500 else logger.info
    log(
        "Request rejected",
        code=exc.code.value,
        error=exc.message,
        error_type=type(exc).__name__,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.http_status,
        content=error_envelope(exc.code, exc.message, _request_id(request)),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed bodies are VALIDATION_ERROR with 400, not FastAPI's 422."""
    details = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', '')}"
        for err in exc.errors()
    )
    logger.info("Request validation failed", path=request.url.path, details=details)
    return JSONResponse(
        status_code=400,
        content=error_envelope(
            ErrorCode.VALIDATION_ERROR,
            f"Invalid request: {details}" if details else "Invalid request",
            _request_id(request),
        ),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _HTTP_STATUS_TO_CODE.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(code, str(exc.detail), _request_id(request)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions."""
    logger.error(
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content=error_envelope(
            ErrorCode.INTERNAL_ERROR,
            "Internal server error",
            _request_id(request),
        ),
    )


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(health_router, tags=["Health"])
app.include_router(batches_router, prefix="/api/v1/batches", tags=["Batches"])

if settings.use_local_storage:
    # Serve locally stored artifacts so returned locations resolve
    Path(settings.local_storage_root).mkdir(parents=True, exist_ok=True)
    app.mount("/files", StaticFiles(directory=settings.local_storage_root), name="files")


@app.get("/")
async def root() -> dict:
    """Root endpoint - basic service info."""
    return {
        "service": "QR Batch Service",
        "version": __version__,
        "environment": settings.environment,
    }
