"""
Backend selection and dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from escool.config import Settings, get_settings
from escool.db import DbClient
from escool.dynamo_db import DynamoDbClient
from escool.memory_db import InMemoryDbClient

logger = logging.getLogger(__name__)

_db_client: DbClient | None = None
_db_lock = threading.Lock()


def resolve_db_client(settings: Optional[Settings] = None) -> DbClient:
    """
    Pick a backend without caching the result.

    DynamoDB is used only when both AWS credentials are configured and a
    connectivity probe succeeds; every other outcome yields the in-memory
    backend. This never raises.
    """
    settings = settings or get_settings()
    if settings.use_in_memory_backends:
        logger.info("In-memory backends forced by configuration")
        return InMemoryDbClient(seed=settings.seed_demo_data)
    if not settings.has_aws_credentials:
        logger.info("AWS credentials not configured, using in-memory storage")
        return InMemoryDbClient(seed=settings.seed_demo_data)

    try:
        client = DynamoDbClient.from_settings(settings)
        client.ping()
    except Exception:
        logger.exception("Error connecting to DynamoDB, falling back to in-memory storage")
        return InMemoryDbClient(seed=settings.seed_demo_data)
    logger.info("Successfully connected to DynamoDB")
    return client


def get_db_client() -> DbClient:
    """
    Return the process-wide DB client, resolving it on first use.

    Concurrent first callers share a single resolution.
    """
    global _db_client
    if _db_client is not None:
        return _db_client
    with _db_lock:
        if _db_client is None:
            _db_client = resolve_db_client()
    return _db_client


def is_durable_backend() -> bool:
    """True when the resolved backend is DynamoDB."""
    return isinstance(get_db_client(), DynamoDbClient)


def reset_db_client() -> None:
    """Forget the resolved backend (useful in tests)."""
    global _db_client
    with _db_lock:
        _db_client = None
