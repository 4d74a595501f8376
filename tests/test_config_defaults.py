import json
from pathlib import Path

import pytest

from config import DEFAULT_BRANDING, DEFAULT_CONFIG, UPLOAD_LIMITS, config, set_config
from core.config import EnvSettings, load_config


def test_load_config_populates_defaults(tmp_path):
    cfg_path = tmp_path / "cfg.json"
    cfg_path.write_text('{"redis_url": "redis://localhost:6379/3"}')
    cfg = load_config(str(cfg_path), EnvSettings(_env_file=None))
    assert cfg["redis_url"] == "redis://localhost:6379/3"
    assert cfg["ticket_entry_time"] == DEFAULT_CONFIG["ticket_entry_time"]
    assert cfg["max_page_size"] == DEFAULT_CONFIG["max_page_size"]
    assert cfg["branding"] == DEFAULT_BRANDING
    assert Path(cfg["documents_dir"]) == tmp_path.resolve() / "data" / "documents"


def test_missing_file_uses_defaults(tmp_path):
    cfg = load_config(str(tmp_path / "absent.json"), EnvSettings(_env_file=None))
    assert cfg["default_page_size"] == DEFAULT_CONFIG["default_page_size"]


def test_branding_merges_partial_override(tmp_path):
    cfg_path = tmp_path / "cfg.json"
    cfg_path.write_text(json.dumps({"branding": {"school_name": "Test School"}}))
    cfg = load_config(str(cfg_path), EnvSettings(_env_file=None))
    assert cfg["branding"]["school_name"] == "Test School"
    assert cfg["branding"]["dhse_code"] == DEFAULT_BRANDING["dhse_code"]


def test_env_overrides_file(tmp_path, monkeypatch):
    cfg_path = tmp_path / "cfg.json"
    cfg_path.write_text('{"redis_url": "redis://file:6379/0", "log_level": "INFO"}')
    monkeypatch.setenv("REDIS_URL", "redis://env:6379/1")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    cfg = load_config(str(cfg_path), EnvSettings(_env_file=None))
    assert cfg["redis_url"] == "redis://env:6379/1"
    assert cfg["log_level"] == "DEBUG"


def test_page_sizes_normalized(tmp_path):
    cfg_path = tmp_path / "cfg.json"
    cfg_path.write_text('{"max_page_size": 10, "default_page_size": 50}')
    cfg = load_config(str(cfg_path), EnvSettings(_env_file=None))
    assert cfg["default_page_size"] == 10

    cfg_path.write_text('{"max_page_size": 0}')
    with pytest.raises(ValueError):
        load_config(str(cfg_path), EnvSettings(_env_file=None))


def test_set_config_syncs_upload_limits():
    set_config({"max_upload_bytes": 1024, "allowed_upload_types": ["application/pdf"]})
    assert UPLOAD_LIMITS.max_bytes == 1024
    assert UPLOAD_LIMITS.allowed_types == ("application/pdf",)
    set_config({})
    assert config["max_upload_bytes"] == DEFAULT_CONFIG["max_upload_bytes"]
    assert "image/png" in UPLOAD_LIMITS.allowed_types
