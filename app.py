"""Application entry point wiring configuration, stores and routers."""

from __future__ import annotations

import json
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from loguru import logger

import logging_config

# allow imports relative to this directory without installing the package
if str(Path(__file__).resolve().parent) not in sys.path:
    sys.path.insert(0, str(Path(__file__).resolve().parent))

logging_config.setup_logging()
logger = logger.bind(module="app")

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from redis import Redis
from redis.exceptions import RedisError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from config import config as shared_config
from config import set_config
from core.config import load_config
from modules.documents import DocumentStore
from modules.errors import GatepassError
from modules.store import RequestStore, TicketStore
from routers import blueprints
from utils.api_errors import error_response, gatepass_error_response
from utils.redis import get_sync_client

BASE_DIR = Path(__file__).parent


# secret key loader
def _load_secret_key() -> str:
    """Fetch session secret key from env or config, falling back to default."""
    env_key = os.getenv("SECRET_KEY")
    if env_key:
        return env_key
    config_path = os.getenv("CONFIG_PATH", "config.json")
    try:
        with open(config_path) as f:
            return json.load(f).get("secret_key", "change-me")
    except (OSError, json.JSONDecodeError):
        return "change-me"


async def handle_gatepass_error(request: Request, exc: GatepassError):
    """Translate workflow errors into the standard error payload."""
    if exc.status_code >= 500:
        logger.error("{} {} failed: {}", request.method, request.url.path, exc.message)
    return gatepass_error_response(exc)


async def handle_request_validation(request: Request, exc: RequestValidationError):
    fields: dict[str, str] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        fields.setdefault(".".join(loc) or "__root__", err.get("msg", "invalid"))
    return error_response(
        "validation_failed",
        "Invalid input",
        status_code=422,
        details={"fields": fields},
    )


# Global exception handler for unexpected errors
async def handle_unexpected_error(request: Request, exc: Exception):
    """Catch-all handler that logs the error and resets session state."""
    if isinstance(exc, StarletteHTTPException):
        return await http_exception_handler(request, exc)

    logger.exception("Unhandled application error: {}", exc)

    session = request.scope.get("session")
    if isinstance(session, dict):
        session.clear()

    return error_response("internal_error", "Internal Server Error", status_code=500)


def _read_config(path: str) -> dict[str, Any]:
    logger.info("Loading config from {}", path)
    try:
        return load_config(path)
    except (OSError, json.JSONDecodeError, ValueError) as e:
        logger.exception("Failed to read config: {}", e)
        raise SystemExit(1)


def _connect_redis(url: str) -> Redis:
    """Connect to Redis and return client or exit on failure."""
    try:
        client = get_sync_client(url)
        logger.info("Connected to Redis at {}", url)
        return client
    except (RedisError, OSError) as e:
        logger.exception("Redis connection failed: {}", e)
        raise SystemExit(1)


# Lifespan handler consolidating startup and shutdown logic
@asynccontextmanager
async def lifespan(app: FastAPI):
    if getattr(app.state, "request_store", None) is None:
        init_app()
    logger.info("Gate pass service ready")
    try:
        yield
    finally:
        client = getattr(app.state, "redis_client", None)
        if client is not None:
            client.close()
        logger.info("Gate pass service stopped")


app = FastAPI(lifespan=lifespan)
app.add_middleware(SessionMiddleware, secret_key=_load_secret_key())
app.add_exception_handler(GatepassError, handle_gatepass_error)
app.add_exception_handler(RequestValidationError, handle_request_validation)
app.add_exception_handler(Exception, handle_unexpected_error)
blueprints.register_blueprints(app)


# Initialize configuration and services
def init_app(
    config_path: str | None = None,
    redis_client: Redis | None = None,
) -> dict[str, Any]:
    """Configure application state and services."""
    config_path = config_path or os.getenv("CONFIG_PATH", "config.json")
    config_path_local = (
        config_path if os.path.isabs(config_path) else str(BASE_DIR / config_path)
    )
    cfg = _read_config(config_path_local)
    set_config(cfg)
    logging_config.set_log_level(cfg.get("log_level", logging_config.LOG_LEVEL))

    client = redis_client if redis_client is not None else _connect_redis(cfg["redis_url"])
    documents_root = Path(cfg["documents_dir"])
    try:
        documents_root.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.exception("Document root {} unavailable: {}", documents_root, e)
        raise SystemExit(1)

    app.state.config = cfg
    app.state.config_path = config_path_local
    app.state.redis_client = client
    app.state.request_store = RequestStore(client)
    app.state.ticket_store = TicketStore(client)
    app.state.documents = DocumentStore(documents_root)
    logger.info("Documents stored under {}", documents_root)
    return cfg


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", shared_config.get("port", 8000))),
    )
