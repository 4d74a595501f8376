"""Redis helper utilities.

Key naming conventions:
    ``gatepass:request:{id}``              - JSON document for a visitor request.
    ``gatepass:idx:all``                   - sorted set of request ids by created_at.
    ``gatepass:idx:status:{status}``       - per-status sorted set.
    ``gatepass:idx:designation:{value}``   - per-designation sorted set.
    ``gatepass:ticket:{id}``               - JSON document for a ticket.
    ``gatepass:ticket_by_request``         - hash of request id -> ticket id.
    ``gatepass:ticket_idx:all``            - sorted set of ticket ids by issued_at.
    ``gatepass:ticket_idx:{state}``        - per-state (issued or used) sorted set.
"""

import os
from typing import Optional

import redis as redis_sync
from loguru import logger
from redis.exceptions import RedisError

from config import config as shared_config


def resolve_url(url: Optional[str] = None) -> str:
    return (
        url
        or shared_config.get("redis_url")
        or os.getenv("REDIS_URL", "redis://localhost:6379/0")
    )


def get_sync_client(url: Optional[str] = None) -> redis_sync.Redis:
    """Return a synchronous Redis client.

    The URL is resolved from the given argument, the shared configuration, or
    the ``REDIS_URL`` environment variable. Responses are decoded to ``str``.
    """
    url = resolve_url(url)
    try:
        client = redis_sync.Redis.from_url(url, decode_responses=True)
        client.ping()
    except (RedisError, OSError) as e:
        logger.error("Failed to connect to Redis at {}: {}", url, e)
        raise
    return client
