"""
Repurpose Application - video repurposing API
Forwards videos to an automation webhook and serves the generated clips
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from api.dependencies import handle_service_error
from api.middleware import setup_middleware
from api.v1 import health_check, v1_router
from core.config import settings
from core.exceptions import RepurposeException
from core.logging import get_logger, setup_logging
from infrastructure.database import init_database

# Setup logging first
setup_logging()
logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager - handles startup and shutdown"""
    logger.info("Initializing database...")
    init_database()

    if not settings.encryption_passphrase:
        logger.warning("ENCRYPTION_KEY and SESSION_SECRET are unset; saving API keys will fail")

    logger.info("Repurpose API initialized successfully")

    yield

    logger.info("Repurpose API shutting down")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Repurpose API - turn long videos into short clips through an automation webhook",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
    lifespan=lifespan,
)

# Setup security middleware (includes CORS, rate limiting, etc.)
setup_middleware(app)


@app.exception_handler(RepurposeException)
async def repurpose_exception_handler(request: Request, exc: RepurposeException) -> JSONResponse:
    """Global exception handler for exceptions that escape a route"""
    logger.error(
        f"Repurpose exception: {exc.message}",
        extra={"error_details": exc.error_code},
    )
    http_exc = handle_service_error(exc)
    return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Invalid request bodies are client errors"""
    messages = [str(error.get("msg", "")) for error in exc.errors()]
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid input: " + ", ".join(messages)},
    )


# Include API routers
app.include_router(v1_router)


@app.get("/")
async def root() -> Any:
    return {
        "message": f"{settings.app_name} API is running",
        "version": settings.app_version,
        "api_version": "v1",
        "documentation": ("/docs" if settings.debug else "Documentation disabled in production"),
    }


@app.get("/api/health")
async def health() -> Any:
    """Health endpoint"""
    return await health_check(_="")


logger.info(f"- Upload temp dir: {settings.absolute_upload_temp_dir}")
logger.info(f"- Max upload size: {settings.max_upload_size_mb}MB")
logger.info(f"- Debug mode: {settings.debug}")

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
