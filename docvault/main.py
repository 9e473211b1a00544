"""
FastAPI Application Entry Point

This module initializes the FastAPI application with:
- CORS configuration
- Middleware setup
- Route registration
- Job store and (optionally) inline worker pool
- Health check endpoints
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docvault.core.config import settings
from docvault.db.database import check_db_connection, dispose_engine, init_models
from docvault.db.redis import check_redis_connection, close_redis_pool
from docvault.jobs import WorkerPool, create_job_store
from docvault.tasks import build_dispatcher
from docvault.middleware.logging import LoggingMiddleware
from docvault.api.v1.router import api_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# ============================================================
# Application Lifespan Events
# ============================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.

    Startup:
    - Check database connection (and create tables in development)
    - Build the job store
    - Start the inline worker pool if RUN_INLINE_WORKERS

    Shutdown:
    - Drain the worker pool
    - Close job store, Redis and database connections
    """
    # ========== STARTUP ==========
    logger.info(f"Starting {settings.PROJECT_NAME}...")
    logger.info(f"Debug mode: {settings.DEBUG}")

    try:
        db_healthy = await check_db_connection()
        if db_healthy:
            logger.info("Database connection established successfully")
            if settings.DB_AUTO_CREATE:
                await init_models()
        else:
            logger.warning("Database connection check failed")
    except Exception as e:
        logger.error(f"Database connection error on startup: {e}")

    store = create_job_store()
    app.state.job_store = store
    logger.info(f"Job store: {settings.JOB_STORE_BACKEND}")

    pool = None
    if settings.RUN_INLINE_WORKERS:
        pool = WorkerPool(store, build_dispatcher(store))
        await pool.start()
    elif settings.JOB_STORE_BACKEND == "memory":
        logger.warning(
            "RUN_INLINE_WORKERS is off with the memory job store - "
            "queued jobs will never run"
        )
    app.state.worker_pool = pool

    yield  # Application runs here

    # ========== SHUTDOWN ==========
    logger.info(f"Shutting down {settings.PROJECT_NAME}...")

    if pool is not None:
        await pool.stop()

    await store.close()
    await close_redis_pool()
    await dispose_engine()

    logger.info("Shutdown complete")


# ============================================================
# Create FastAPI Application
# ============================================================
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="""
    Document Processing API

    Features:
    - PDF splitting into per-page files
    - Image format conversion (PNG, JPEG, WebP)
    - OCR and AI summarization for PDFs and images
    - PDF thumbnails
    - Job progress, retry and cancellation
    """,
    version="1.0.0",
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# ----------------------------------------------------
# Middleware Configuration
# ----------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.DEBUG else settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["*"],
)

if settings.DEBUG:
    app.add_middleware(LoggingMiddleware)


# ----------------------------------------------------
# Health Check Endpoints
# ----------------------------------------------------
@app.get("/", tags=["Health"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.PROJECT_NAME,
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs" if settings.DEBUG else "disabled"
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint for monitoring.

    Checks:
    - Database connectivity
    - Job store connectivity (Redis backend only)
    - Inline worker pool state
    """
    try:
        db_healthy = await check_db_connection()

        if settings.JOB_STORE_BACKEND == "redis":
            store_healthy = await check_redis_connection()
        else:
            store_healthy = True

        pool = getattr(app.state, "worker_pool", None)

        status = "healthy"
        if not db_healthy or not store_healthy:
            status = "degraded"

        return {
            "status": status,
            "database": "connected" if db_healthy else "disconnected",
            "job_store": settings.JOB_STORE_BACKEND if store_healthy else "disconnected",
            "inline_workers": bool(pool and pool.running),
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "error": str(e)
            }
        )

# ============================================================
# Include API Router
# ============================================================
app.include_router(
    api_router,
    prefix=settings.API_V1_PREFIX
)


# ----------------------------------------------------
# Exception Handlers
# ----------------------------------------------------
@app.exception_handler(404)
async def not_found_handler(request, exc):
    """Handle 404 errors, keeping the endpoint's detail if it set one."""
    return JSONResponse(
        status_code=404,
        content={"detail": getattr(exc, "detail", None) or "Not found"}
    )


@app.exception_handler(500)
async def internal_error_handler(request, exc):
    """Handle 500 errors."""
    logger.error(f"Internal server error: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )
