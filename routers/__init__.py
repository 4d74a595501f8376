"""Expose router modules and blueprint helpers."""

__all__ = [
    "auth",
    "gatepass",
    "blueprints",
    "health",
]
