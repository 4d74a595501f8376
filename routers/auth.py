"""Session login and logout routes for admins."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Form, Request
from loguru import logger

from modules.auth import authenticate
from modules.errors import AuthRequired
from utils.deps import get_settings

router = APIRouter()


@router.post("/login")
async def login(
    request: Request,
    username: str = Form(...),
    password: str = Form(...),
    cfg: dict = Depends(get_settings),
):
    username = username.strip()
    user = await asyncio.to_thread(authenticate, cfg.get("users", []), username, password)
    if user is None:
        logger.warning("failed login for {}", username)
        raise AuthRequired("Invalid username or password", code="invalid_credentials")
    request.session["user"] = user
    logger.info("{} logged in", username)
    return {"ok": True, "user": user}


@router.post("/logout")
async def logout(request: Request):
    user = request.session.pop("user", None)
    if user:
        logger.info("{} logged out", user.get("name"))
    return {"ok": True}
