"""
CourseTrack API application

Wires the course, progress and dashboard routers together with CORS, per-client
rate limiting, request timing and the JSON error format shared by every route.
"""
from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import time

from coursetrack.config import settings
from coursetrack.database import init_db
from coursetrack.exceptions import CourseTrackError
from coursetrack.api import courses, progress, dashboard
from coursetrack.utils.rate_limiter import rate_limiter

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Paths served without counting against the rate limit
UNMETERED_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Learning progress tracking with badges, streaks and leaderboards",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    """Reject clients over their per-minute or per-hour request budget"""
    if request.url.path not in UNMETERED_PATHS:
        try:
            rate_limiter.check_rate_limit(request)
        except HTTPException as e:
            logger.warning(f"Rate limit exceeded for {request.client.host if request.client else 'unknown'}")
            return JSONResponse(status_code=e.status_code, content=e.detail)

    return await call_next(request)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started

    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed:.3f}s)")
    return response


@app.exception_handler(CourseTrackError)
async def domain_exception_handler(request: Request, exc: CourseTrackError):
    """
    Not found, validation, storage and conflict errors

    `retryable` tells clients whether resending the same request can succeed
    (a conflicting progress update or an unavailable database).
    """
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.error_code}: {exc.message}")
    elif exc.retryable:
        logger.warning(f"{request.method} {request.url.path}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error_code,
            "message": exc.message,
            "retryable": exc.retryable
        }
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "http_error",
            "message": exc.detail,
            "status_code": exc.status_code
        }
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Anything else is a 500; the exception text is only exposed in DEBUG"""
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {str(exc)}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "Progress service failed to handle the request",
            "detail": str(exc) if settings.DEBUG else None
        }
    )


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": time.time()
    }


@app.get("/")
async def root():
    """Service name and where to find the API docs"""
    return {
        "message": "CourseTrack Progress API",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/health"
    }


for router in (courses.router, progress.router, dashboard.router):
    app.include_router(router)


@app.on_event("startup")
async def create_tables():
    """Create missing tables; there is no migration tool"""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    try:
        init_db()
    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}")
        raise
    logger.info("Database ready")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"{settings.APP_NAME} stopped")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "coursetrack.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
