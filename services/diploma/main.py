"""
Diploma Service - Main Application
==================================

FastAPI application for issuing and retrieving ledger-anchored diplomas.

Version: 0.1.0
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from services.diploma.errors import error_response
from services.diploma.routes import content, diplomas, registry
from services.diploma.workflow import get_workflow
from shared.config import settings
from shared.errors import DiplomaRegistryError
from shared.logging import bind_context, clear_context, get_logger, setup_logging
from shared.models import ErrorResponse, HealthResponse


# Setup logging
setup_logging(
    log_level=settings.log_level.value,
    json_logs=settings.is_production,
    service_name="diploma",
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> Any:
    """Application lifespan manager."""
    logger.info(
        "diploma_service_starting",
        environment=settings.environment.value,
        port=settings.service_port,
        registry_mode=settings.registry.mode.value,
        ipfs_mode=settings.ipfs.mode.value,
    )

    try:
        workflow = get_workflow()
        await workflow.registry.connect()
        logger.info(
            "registry_connected",
            mode=workflow.registry.mode.value,
            signer=workflow.signer.address if workflow.signer else None,
        )
    except Exception as e:
        logger.error("startup_failed", error=str(e))
        raise

    yield

    logger.info("diploma_service_shutting_down")
    await workflow.registry.disconnect()
    await workflow.store.close()


# Create FastAPI application
app = FastAPI(
    title="Diploma Registry Service",
    description="Issue diplomas to IPFS and anchor their content ids on a ledger contract",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins_list,
    allow_credentials=settings.cors.allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def bind_request_context(request: Request, call_next: Any) -> Response:
    """Attach the request method and path to every log line it produces."""
    clear_context()
    bind_context(method=request.method, path=request.url.path)
    return await call_next(request)


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """
    Service health check.

    Returns health status of the service and its dependencies.
    """
    workflow = get_workflow()
    components: dict[str, dict[str, Any]] = {
        "content_store": await workflow.store.health_check(),
        "registry": await workflow.registry.health_check(),
        "signer": {
            "status": "healthy" if workflow.signer else "unavailable",
            "address": workflow.signer.address if workflow.signer else None,
        },
    }

    # A missing signer only disables writes
    return HealthResponse.from_components(
        service="diploma",
        version="0.1.0",
        components=components,
        optional={"signer"},
    )


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": "Diploma Registry Service",
        "version": "0.1.0",
        "docs": "/docs",
    }


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(
    content.router,
    prefix="/api/v1/content",
    tags=["Content"],
)

app.include_router(
    registry.router,
    prefix="/api/v1/registry",
    tags=["Registry"],
)

app.include_router(
    diplomas.router,
    prefix="/api/v1/diplomas",
    tags=["Diplomas"],
)


# ============================================================================
# Error Handlers
# ============================================================================


@app.exception_handler(DiplomaRegistryError)
async def registry_error_handler(request: Request, exc: DiplomaRegistryError) -> JSONResponse:
    """Map typed failures to HTTP statuses."""
    logger.warning("request_failed", error=exc.message, error_code=exc.code, **exc.details)
    return error_response(exc)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Render framework HTTP errors in the same body shape as typed failures."""
    logger.warning("http_exception", status_code=exc.status_code, detail=exc.detail)
    body = ErrorResponse(error=str(exc.detail), status_code=exc.status_code)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception("unhandled_exception", error_type=type(exc).__name__)
    body = ErrorResponse(
        error="Internal server error",
        error_code="internal_error",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body.model_dump(mode="json"),
    )


# ============================================================================
# Run with Uvicorn
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.diploma.main:app",
        host="0.0.0.0",
        port=settings.service_port,
        reload=settings.debug,
        log_level=settings.log_level.value.lower(),
    )
