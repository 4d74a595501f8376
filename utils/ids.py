"""Identifier helpers."""

from __future__ import annotations

import secrets
import time
import uuid


def generate_id() -> str:
    """Return a random UUID4 string."""
    return str(uuid.uuid4())


def ticket_number() -> str:
    """Return a short human-readable ticket number such as ``TKT1A2B3C4D``."""
    return f"TKT{uuid.uuid4().hex[:8].upper()}"


def document_name(ext: str) -> str:
    """Return ``<epoch-millis>-<random>.<ext>`` for a stored upload."""
    ext = ext.lower().lstrip(".") or "bin"
    return f"{int(time.time() * 1000)}-{secrets.token_hex(6)}.{ext}"
