"""
ReelGen - Image to Short Video Pipeline
Main FastAPI Application Entry Point
"""

from pathlib import Path
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, get_settings
from .dependencies import AppContainer
from .utils.exceptions import ReelGenError
from .utils.logger import setup_logger
from .routers import videos_router, websocket_router
from .routers.websocket import forward_status_event


# Set up logging
logger = setup_logger()


PUBLIC_PATHS = {
    "/",
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/favicon.ico",
}


def _extract_api_key(request: Request) -> str:
    api_key = request.headers.get("x-api-key", "").strip()
    if api_key:
        return api_key

    auth_header = request.headers.get("authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header.split(" ", 1)[1].strip()
    return ""


def _log_startup(settings: Settings):
    logger.info("=" * 60)
    logger.info("ReelGen - Image to Short Video Pipeline")
    logger.info("=" * 60)
    logger.info(f"Data directory: {settings.data_dir}")
    logger.info(f"Whisper model: {settings.whisper_model}")
    logger.info(f"Queue workers: {settings.job_worker_concurrency if settings.run_embedded_worker else 0}")

    if settings.gemini_api_key:
        logger.info("[OK] Gemini AI configured")
    else:
        logger.warning("[!] Gemini API key not set")

    if settings.elevenlabs_api_key:
        logger.info("[OK] ElevenLabs configured")
    else:
        logger.warning("[!] ElevenLabs API key not set")

    if settings.s3_bucket_name:
        logger.info(f"[OK] S3 bucket: {settings.s3_bucket_name}")
    else:
        logger.warning("[!] S3 bucket not set")

    if settings.mediaconvert_endpoint and settings.mediaconvert_role:
        logger.info("[OK] MediaConvert configured")
    else:
        logger.warning("[!] MediaConvert endpoint or role not set")

    if settings.cloudfront_domain:
        logger.info(f"[OK] CloudFront domain: {settings.cloudfront_domain}")
    else:
        logger.info("[-] CloudFront not configured (signed S3 URLs only)")

    if settings.api_key:
        logger.info("[OK] API key authentication enabled")
    else:
        logger.warning("[!] API key authentication disabled")

    logger.info("=" * 60)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    settings: Settings = app.state.settings
    Path(settings.data_dir).mkdir(parents=True, exist_ok=True)
    Path(settings.temp_dir).mkdir(parents=True, exist_ok=True)

    container: Optional[AppContainer] = getattr(app.state, "container", None)
    if container is None:
        container = AppContainer.build(settings)
        app.state.container = container
    await container.initialize()

    container.queue.add_status_listener(forward_status_event)
    relay = container.status_relay()
    await relay.start()

    pool = None
    if settings.run_embedded_worker:
        await container.resume_monitors()
        pool = container.worker_pool()
        await pool.start()

    _log_startup(settings)
    logger.info("Server started successfully!")

    yield

    # Cleanup on shutdown
    logger.info("Shutting down ReelGen...")
    if pool is not None:
        await pool.stop(timeout=30)
    await relay.stop()
    container.queue.remove_status_listener(forward_status_event)
    await container.shutdown()


def create_app(settings: Optional[Settings] = None, container: Optional[AppContainer] = None) -> FastAPI:
    """Build the API app; a prebuilt container replaces the default service graph"""
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Image to narrated, captioned short video",
        version=settings.app_version,
        lifespan=lifespan
    )
    app.state.settings = settings
    if container is not None:
        app.state.container = container

    # CORS middleware
    cors_origins = settings.cors_allowed_origins or ["http://localhost:8000", "http://127.0.0.1:8000"]
    cors_allow_credentials = "*" not in cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def api_key_auth_middleware(request: Request, call_next):
        if not settings.api_key:
            return await call_next(request)

        if request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        provided_key = _extract_api_key(request)
        if provided_key != settings.api_key:
            return JSONResponse(
                status_code=401,
                content={"detail": "Unauthorized: invalid or missing API key"},
            )

        return await call_next(request)

    # ========================================================================
    # Global Exception Handlers
    # ========================================================================

    @app.exception_handler(ReelGenError)
    async def reelgen_exception_handler(request: Request, exc: ReelGenError):
        """Handle all ReelGen custom exceptions"""
        logger.error(f"ReelGenError [{exc.code}]: {exc.message}")
        return JSONResponse(
            status_code=400 if exc.recoverable else 500,
            content=exc.to_dict()
        )

    @app.exception_handler(ValueError)
    async def validation_exception_handler(request: Request, exc: ValueError):
        """Handle validation errors"""
        logger.warning(f"Validation error: {exc}")
        return JSONResponse(
            status_code=400,
            content={
                "error": "VALIDATION_ERROR",
                "message": str(exc),
                "recoverable": True,
                "recovery_hint": "Check your input parameters and try again."
            }
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle any unhandled exceptions"""
        logger.exception(f"Unhandled exception: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "INTERNAL_ERROR",
                "message": "An unexpected error occurred. Please try again.",
                "recoverable": True,
                "recovery_hint": "If this persists, check the server logs for details."
            }
        )

    app.include_router(videos_router)
    app.include_router(websocket_router)

    @app.get("/")
    async def root():
        return {"message": f"{settings.app_name} API", "docs": "/docs"}

    @app.get("/health")
    async def health():
        """Health check endpoint"""
        return {"status": "healthy", "app": settings.app_name}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "reelgen.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
