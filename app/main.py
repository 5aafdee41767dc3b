"""
Hygieia Inspections API - Main Application
FastAPI application with CORS, error handling, middleware, and logging
"""
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
import logging
from datetime import datetime, timezone
import traceback

from app.api.routes import inspections_router, inspection_templates_router
from app.core.config import settings
from app.core.exceptions import InspectionEngineError
from app.database import test_connection, init_db, close_db_connection


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# Initialize FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description=settings.PROJECT_DESCRIPTION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)


# ==================== MIDDLEWARE ====================


# Compression: GZip responses
app.add_middleware(GZipMiddleware, minimum_size=1000)


# CORS: Cross-Origin Resource Sharing
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "HEAD"],
    allow_headers=["*"],
    expose_headers=["Content-Length", "X-Total-Count"],
    max_age=3600,
)


# ==================== ROUTERS ====================


app.include_router(
    inspection_templates_router,
    prefix=f"{settings.API_PREFIX}/inspection-templates",
    tags=["Inspection Templates"],
)
app.include_router(
    inspections_router,
    prefix=f"{settings.API_PREFIX}/inspections",
    tags=["Inspections"],
)


# ==================== ERROR HANDLERS ====================


@app.exception_handler(InspectionEngineError)
async def inspection_engine_exception_handler(request: Request, exc: InspectionEngineError):
    """Map domain errors to distinct, matchable responses"""
    logger.info(f"{exc.error} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.error,
            "detail": exc.message,
        }
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors with detailed response"""
    logger.warning(f"Validation error on {request.url}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "error": "validation_error",
            "detail": "Validation error",
            "errors": jsonable_encoder(exc.errors())
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions"""
    logger.error(f"Unhandled exception: {exc}\n{traceback.format_exc()}")

    # Don't expose internal errors in production
    error_message = str(exc) if settings.DEBUG else "Internal server error"

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "internal_error",
            "detail": error_message,
            "timestamp": _now_iso()
        }
    )


# ==================== HEALTH & STATUS ENDPOINTS ====================


@app.get("/", tags=["System"])
async def root():
    """Root endpoint - API information"""
    return {
        "success": True,
        "message": f"Welcome to {settings.PROJECT_NAME}",
        "app_name": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "docs": "/api/docs",
        "status": "operational",
        "environment": "production" if not settings.DEBUG else "development"
    }


@app.get("/health", tags=["System"])
async def health_check():
    """Health check endpoint for monitoring"""
    try:
        connection_ok = test_connection()

        return {
            "success": True,
            "status": "healthy" if connection_ok else "degraded",
            "database": "connected" if connection_ok else "disconnected",
            "timestamp": _now_iso(),
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "success": False,
                "status": "unhealthy",
                "error": str(e),
                "timestamp": _now_iso()
            }
        )


@app.get("/status", tags=["System"])
async def status_check():
    """Configuration overview (no secrets)"""
    return {
        "success": True,
        "app": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "database": "sqlite" if settings.is_sqlite else "postgresql",
        "collaborators": {
            "facility": bool(settings.FACILITY_SERVICE_URL),
            "user": bool(settings.USER_SERVICE_URL),
            "contract": bool(settings.CONTRACT_SERVICE_URL),
            "guidance": bool(settings.GUIDANCE_SERVICE_URL),
        },
        "rating_bands": settings.RATING_BANDS,
        "timestamp": _now_iso()
    }


# ==================== STARTUP & SHUTDOWN ====================


@app.on_event("startup")
async def startup_event():
    """Run on application startup"""
    logger.info("="*70)
    logger.info(f"Starting {settings.PROJECT_NAME} v{settings.VERSION}")
    logger.info("="*70)
    logger.info(f"Environment: {'Production' if not settings.DEBUG else 'Development'}")

    # Test database connection NON-BLOCKING
    logger.info("Testing database connection...")
    if test_connection():
        logger.info("[OK] Database connection successful!")
    else:
        logger.warning("[WARN] Database connection failed - continuing in degraded mode")

    # Initialize database NON-BLOCKING
    logger.info("Initializing database tables...")
    if init_db():
        logger.info("[OK] Database initialization complete!")
    else:
        logger.warning("[WARN] Database init returned False - tables may not exist")

    logger.info("="*70)
    logger.info("[OK] Application startup complete!")
    logger.info("="*70)


@app.on_event("shutdown")
async def shutdown_event():
    """Run on application shutdown"""
    logger.info("Shutting down application...")
    close_db_connection()
    logger.info("Application shutdown complete")


# ==================== REQUEST LOGGING ====================


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests"""
    # Skip logging for health checks
    if request.url.path in ["/health", "/status"]:
        return await call_next(request)

    start_time = datetime.now(timezone.utc)
    client_host = request.client.host if request.client else "-"
    logger.info(f">> {request.method} {request.url.path} - {client_host}")

    try:
        response = await call_next(request)
        duration = (datetime.now(timezone.utc) - start_time).total_seconds()
        logger.info(f"<< {request.method} {request.url.path} - {response.status_code} ({duration:.2f}s)")
        return response
    except Exception as e:
        duration = (datetime.now(timezone.utc) - start_time).total_seconds()
        logger.error(f"[ERROR] {request.method} {request.url.path} - Error: {str(e)} ({duration:.2f}s)")
        raise


# ==================== VERSION INFO ====================


@app.get("/api/version", tags=["System"])
async def get_version():
    """Get API version information"""
    return {
        "success": True,
        "api_version": settings.VERSION,
        "app_name": settings.PROJECT_NAME,
    }
