"""Main entry point for the Assembly Stage application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from assembly_stage import __version__
from assembly_stage.api.v1 import (
    assemblies_router,
    heartbeat_router,
    quorum_router,
    system_router,
    votes_router,
)
from assembly_stage.core.errors import (
    ConfigurationError,
    GateRejected,
    InputValidationError,
    IntegrityComputationError,
    RecordNotFound,
    ReportGenerationError,
    StoreUnavailable,
)
from assembly_stage.core.settings import settings

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Assembly Stage API",
    description="Live presence, quorum and vote integrity for owners' assemblies",
    version=__version__,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(heartbeat_router, prefix="/api/v1")
app.include_router(quorum_router, prefix="/api/v1")
app.include_router(votes_router, prefix="/api/v1")
app.include_router(assemblies_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")


@app.exception_handler(GateRejected)
async def gate_rejected_handler(request: Request, exc: GateRejected) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={"detail": exc.reason, "assembly_id": exc.assembly_id},
    )


@app.exception_handler(InputValidationError)
async def input_validation_handler(request: Request, exc: InputValidationError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


@app.exception_handler(RecordNotFound)
async def record_not_found_handler(request: Request, exc: RecordNotFound) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable) -> JSONResponse:
    # Presence is unknown, never reported as zero.
    logger.warning("Store unavailable while serving %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": f"Service temporarily unavailable: {exc}"},
    )


@app.exception_handler(ReportGenerationError)
@app.exception_handler(IntegrityComputationError)
@app.exception_handler(ConfigurationError)
async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Request to %s failed: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc)},
    )


@app.on_event("startup")
async def on_startup() -> None:
    settings.validate_runtime()
    logger.info(
        "Assembly Stage %s started (presence backend: %s)",
        __version__,
        settings.presence_backend,
    )


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": "Assembly Stage API",
        "version": __version__,
        "description": "Live presence, quorum and vote integrity for owners' assemblies",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("assembly_stage.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
