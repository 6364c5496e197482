# ============================================================================
# FastAPI Application Entry Point
# ============================================================================
from datetime import datetime, timezone
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from redis.exceptions import RedisError
import logging

from app.config import get_settings
from app.core.exceptions import InvalidInput, PlatformException
from app.schemas.responses import HealthCheckResponse

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

settings = get_settings()

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown"""
    logger.info(f"Starting {settings.APP_NAME}...")

    # Register every table on the metadata before create_all
    from app import models  # noqa: F401
    from app.core.database import engine, Base

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created/verified")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

    # Redis only backs the leaderboard cache; the API works without it
    try:
        from app.core.redis import redis_client
        await redis_client.ping()
        logger.info("Redis connected")
    except (RedisError, OSError) as e:
        logger.warning(f"Redis connection failed (non-critical): {e}")

    yield

    logger.info("Shutting down...")
    await engine.dispose()

app = FastAPI(
    title=settings.APP_NAME,
    description="Practice session rewards, pets and leaderboards",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(PlatformException)
async def platform_exception_handler(request: Request, exc: PlatformException):
    if isinstance(exc, InvalidInput):
        logger.warning(f"Invalid input on {request.url.path}: {exc.error_code} {exc.detail}")
    else:
        logger.info(f"{request.url.path} -> {exc.error_code}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error_code": exc.error_code, **exc.extra}
    )

@app.get("/health", response_model=HealthCheckResponse)
async def health_check():
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

from app.api.v1.router import api_router  # noqa: E402
app.include_router(api_router, prefix=settings.API_V1_PREFIX)
