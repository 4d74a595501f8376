"""Session-based admin authentication helpers."""

from __future__ import annotations

from typing import Any, Iterable, Optional

import bcrypt
from fastapi import Request
from loguru import logger

from modules.errors import AuthRequired

ADMIN_ROLE = "admin"

# bcrypt only looks at the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = 12) -> str:
    """Return a bcrypt hash for ``password``."""
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds)).decode()


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), hashed.encode("utf-8"))
    except ValueError:
        logger.warning("stored password hash is malformed")
        return False


def authenticate(
    users: Iterable[dict[str, Any]], username: str, password: str
) -> Optional[dict[str, str]]:
    """Return the session user for valid credentials, else ``None``."""
    for user in users:
        if user.get("username") != username:
            continue
        if verify_password(password, user.get("password", "")):
            return {"name": username, "role": user.get("role", "viewer")}
        break
    return None


def current_user(request: Request) -> Optional[dict[str, Any]]:
    session = request.scope.get("session")
    if not isinstance(session, dict):
        return None
    return session.get("user")


def ensure_admin(user: Optional[dict[str, Any]]) -> dict[str, Any]:
    """Raise :class:`AuthRequired` unless ``user`` is an authenticated admin."""
    if not user or not user.get("name"):
        raise AuthRequired("You must be logged in to perform this action")
    if user.get("role") != ADMIN_ROLE:
        raise AuthRequired("Admin access required", code="forbidden")
    return user


def require_admin(request: Request) -> dict[str, Any]:
    """FastAPI dependency returning the logged-in admin."""
    return ensure_admin(current_user(request))
