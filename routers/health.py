"""Health check endpoints for liveness and readiness."""

from __future__ import annotations

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from loguru import logger
from redis.exceptions import RedisError

router = APIRouter()


def _store_ready(app) -> bool:
    """Return True if Redis answers and the document root is present."""
    client = getattr(app.state, "redis_client", None)
    documents = getattr(app.state, "documents", None)
    if client is None or documents is None:
        return False
    try:
        client.ping()
    except (RedisError, OSError):
        logger.warning("readiness probe: redis unreachable")
        return False
    return documents.root.is_dir()


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple health check endpoint."""
    return {"status": "ok"}


@router.get("/health/live", status_code=status.HTTP_200_OK)
async def live() -> dict[str, str]:
    """Liveness probe that always succeeds."""
    return {"status": "ok"}


@router.get("/health/ready")
async def ready(request: Request):
    """Readiness probe that verifies the stores are reachable."""
    if _store_ready(request.app):
        return {"status": "ok"}
    return JSONResponse(
        {"status": "unavailable"}, status_code=status.HTTP_503_SERVICE_UNAVAILABLE
    )
