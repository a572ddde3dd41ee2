import asyncio
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend import redis_backend
from cleanup import run_periodically
from constants import CLEANUP_INTERVAL
from exceptions import StorageError
from routers.signalling import signalling_router
from logging_config import get_logger, setup_logging

# Setup logging
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        await redis_backend.ping()
        logger.info("Redis backend reachable")
    except StorageError as e:
        logger.error(f"Failed to reach Redis at startup: {e}", exc_info=True)
        raise

    cleanup_task = None
    if CLEANUP_INTERVAL > 0:
        cleanup_task = asyncio.create_task(run_periodically(redis_backend, CLEANUP_INTERVAL))
    else:
        logger.info("In-process cleanup disabled, expecting an external scheduler")
    try:
        yield
    finally:
        if cleanup_task is not None:
            cleanup_task.cancel()
            try:
                await cleanup_task
            except asyncio.CancelledError:
                pass
            logger.debug("Cancelled cleanup task")
        await redis_backend.close()


app = FastAPI(title="Rendezvous Broker", lifespan=lifespan)

# Peers call the broker straight from the browser
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(signalling_router)

logger.info("FastAPI application initialized")
