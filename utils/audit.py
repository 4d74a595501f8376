"""Audit trail logging for admin actions."""

from __future__ import annotations

from typing import Any

from loguru import logger


def log_audit(
    action: str,
    user: str,
    target: str | None = None,
    reason: str | None = None,
    **details: Any,
) -> None:
    """Write an audit entry for ``action`` performed by ``user``.

    ``target`` names the affected record; extra keyword arguments are bound
    onto the log record alongside it.
    """
    payload: dict[str, Any] = {"action": action, "user": user}
    if target:
        payload["target"] = target
    if reason:
        payload["reason"] = reason
    if details:
        payload.update(details)
    logger.bind(audit=True, **payload).info("audit {} by {} on {}", action, user, target)
