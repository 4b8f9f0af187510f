from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware

# Load environment variables as early as possible
load_dotenv()

from .config import settings
from .database import check_db, create_db_and_tables
from .dependencies import get_transform_executor
from .exceptions import ServiceError, http_exception_handler, service_exception_handler
from .infrastructure.rate_limit.memory_rate_limiter import InMemoryRateLimiter
from .infrastructure.rate_limit.redis_rate_limiter import RedisRateLimiter
from .middleware import (
    ErrorHandlingMiddleware,
    LoggingMiddleware,
    RateLimitMiddleware,
    RequestSizeLimitMiddleware,
    SecurityMiddleware,
)
from .routers import auth_router, images_router
from .schemas.common.common import HealthResponse

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)

# Multipart framing around the largest accepted file
MULTIPART_OVERHEAD = 64 * 1024


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.APP_NAME}...")
    if not settings.secret_key_configured:
        logger.warning("JWT_SECRET_KEY is not configured; authentication will be refused")
    app.state.db_init_ok = True
    try:
        create_db_and_tables()
        logger.info("Database initialized successfully")
    except Exception:
        # Do not crash the app; report via health endpoint
        app.state.db_init_ok = False
        logger.exception("Database initialization failed")
    yield
    logger.info(f"Shutting down {settings.APP_NAME}...")
    get_transform_executor().shutdown(wait=True)
    get_transform_executor.cache_clear()


def _build_rate_limiter():
    if settings.REDIS_URL:
        logger.info("Redis rate limiter initialized")
        return RedisRateLimiter(settings.REDIS_URL)
    logger.info("Using memory-based rate limiting")
    return InMemoryRateLimiter()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    docs_url=("/docs" if settings.DOCS_ENABLED else None),
    redoc_url=("/redoc" if settings.DOCS_ENABLED else None),
    openapi_url=("/openapi.json" if settings.DOCS_ENABLED else None)
)

app.add_exception_handler(ServiceError, service_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)

# Add middleware
app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(SecurityMiddleware)
app.add_middleware(RequestSizeLimitMiddleware, max_body_size=settings.MAX_FILE_SIZE + MULTIPART_OVERHEAD)
app.add_middleware(RateLimitMiddleware, limiter=_build_rate_limiter(), max_requests=settings.RATE_LIMIT_PER_MINUTE)
app.add_middleware(GZipMiddleware, minimum_size=settings.GZIP_MIN_SIZE)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router.router)
app.include_router(images_router.router)


@app.get("/health", response_model=HealthResponse)
def health_check():
    db_ok = check_db()
    healthy = db_ok and getattr(app.state, "db_init_ok", True)
    return HealthResponse(
        status="healthy" if healthy else "degraded",
        service=settings.APP_NAME,
        version=settings.APP_VERSION,
        database=db_ok,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
