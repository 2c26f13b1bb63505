"""
MongoDB client and storage-boundary guards.

Every call into the database goes through `read_with_retry` (queries) or
`guarded_write` (mutations) so driver timeouts surface as
TransientBackendFailure instead of leaking pymongo exceptions.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, TypeVar

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import (
    AutoReconnect,
    ExecutionTimeout,
    NetworkTimeout,
    ServerSelectionTimeoutError,
    WTimeoutError,
)

from studyflow import config
from studyflow.errors import TransientBackendFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")

# AutoReconnect also covers NetworkTimeout and connection failures
TRANSIENT_ERRORS = (
    AutoReconnect,
    NetworkTimeout,
    ServerSelectionTimeoutError,
    ExecutionTimeout,
    WTimeoutError,
)

READ_BACKOFF_SECONDS = 0.2


def create_client(url: str = config.MONGO_URL) -> AsyncIOMotorClient:
    """Motor client with bounded waits on every operation."""
    return AsyncIOMotorClient(
        url,
        serverSelectionTimeoutMS=config.DB_TIMEOUT_MS,
        connectTimeoutMS=config.DB_TIMEOUT_MS,
        socketTimeoutMS=config.DB_TIMEOUT_MS,
        tz_aware=True,
    )


async def read_with_retry(
    operation: Callable[[], Awaitable[T]],
    attempts: int = config.DB_READ_RETRIES,
) -> T:
    """Run a read-only query, retrying transient failures."""
    last_error = None
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except TRANSIENT_ERRORS as e:
            last_error = e
            logger.warning("Transient read failure (attempt %d/%d): %s", attempt, attempts, e)
            if attempt < attempts:
                await asyncio.sleep(READ_BACKOFF_SECONDS * attempt)
    raise TransientBackendFailure(f"Database unavailable: {last_error}")


@asynccontextmanager
async def guarded_write(description: str):
    """Convert transient driver errors on a write. Never retries."""
    try:
        yield
    except TRANSIENT_ERRORS as e:
        logger.error("Write '%s' failed transiently: %s", description, e)
        raise TransientBackendFailure(
            f"Could not {description}; the outcome is unknown, check state before retrying"
        ) from e
