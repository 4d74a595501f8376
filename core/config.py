"""Configuration loading utilities.

Settings are read from a JSON file (``config.json`` by default) and then
overridden by environment variables parsed with :class:`EnvSettings`.
"""

from __future__ import annotations

import copy
import json
import os
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from config import DEFAULT_BRANDING, DEFAULT_CONFIG


class EnvSettings(BaseSettings):
    """Environment overrides for deployment-specific values."""

    redis_url: Optional[str] = None
    secret_key: Optional[str] = None
    documents_dir: Optional[str] = None
    log_level: Optional[str] = None

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Internal helpers --------------------------------------------------------


def _read_config_file(path: str) -> dict:
    """Read a JSON configuration file from ``path``.

    A missing file yields an empty mapping so the service can start on
    defaults and environment variables alone.
    """

    if not os.path.exists(path):
        return {}
    with open(path) as f:
        return json.load(f)


def _apply_defaults(data: dict) -> dict:
    """Populate missing configuration keys and normalize fields."""

    for key, value in DEFAULT_CONFIG.items():
        if isinstance(value, (dict, list)):
            data.setdefault(key, copy.deepcopy(value))
        else:
            data.setdefault(key, value)
    branding = dict(DEFAULT_BRANDING)
    branding.update(data.get("branding") or {})
    data["branding"] = branding
    max_page = int(data["max_page_size"])
    if max_page <= 0:
        raise ValueError("max_page_size must be positive")
    data["max_page_size"] = max_page
    data["default_page_size"] = min(int(data["default_page_size"]), max_page)
    return data


def _apply_env(data: dict, env: EnvSettings) -> dict:
    for key, value in env.model_dump().items():
        if value:
            data[key] = value
    return data


# load_config routine
def load_config(path: str, env: EnvSettings | None = None) -> dict:
    """Load configuration from ``path`` with defaults and env overrides."""

    data = _read_config_file(path)
    data = _apply_defaults(data)
    data = _apply_env(data, env or EnvSettings())
    docs = Path(data["documents_dir"])
    if not docs.is_absolute():
        docs = Path(path).resolve().parent / docs
    data["documents_dir"] = str(docs)
    return data
