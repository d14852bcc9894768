"""
Main entry point for the Progress Engine API
"""

import logging
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI

from progress_engine.core.config import settings
from progress_engine.core.exceptions import ConfigurationError
from progress_engine.api.main import create_app
from progress_engine.db.supabase import init_supabase
from progress_engine.services.redis_client import close_redis_client, get_redis_client


def configure_logging():
    """JSON logs through the stdlib handlers at LOG_LEVEL"""
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


configure_logging()
logger = structlog.get_logger(__name__)


def _connect_remote():
    # Progress is recorded locally without Supabase; sync then reports OFFLINE
    try:
        init_supabase()
    except ConfigurationError as e:
        logger.warning("Remote sync disabled", reason=str(e))
        return
    logger.info("Remote sync enabled", table=settings.PROGRESS_TABLE)


async def _connect_local_store():
    try:
        redis = await get_redis_client()
        await redis.ping()
    except Exception as e:
        # Requests fail with 503 until Redis is reachable
        logger.error("Failed to connect to Redis", error=str(e))
        return
    logger.info("Local snapshot store connected", key_prefix=settings.SNAPSHOT_KEY_PREFIX)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting Progress Engine API", version=settings.API_VERSION, timezone=settings.TIMEZONE)

    _connect_remote()
    await _connect_local_store()

    yield

    logger.info("Shutting down services...")
    try:
        await close_redis_client()
    except Exception as e:
        logger.warning("Error closing Redis connection", error=str(e))
    logger.info("Shutdown complete")


# Create the FastAPI app at module level for ASGI
app = create_app(lifespan=lifespan)


if __name__ == "__main__":
    logger.info("Starting uvicorn server", host=settings.HOST, port=settings.PORT)
    uvicorn.run(
        "progress_engine.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=True,
        reload=settings.DEBUG
    )
