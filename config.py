"""Application configuration and defaults."""

from dataclasses import dataclass


@dataclass
class UploadLimits:
    """Centralized limits for ID proof uploads."""

    max_bytes: int = 5 * 1024 * 1024
    allowed_types: tuple[str, ...] = (
        "image/jpeg",
        "image/png",
        "image/webp",
        "application/pdf",
    )


UPLOAD_LIMITS = UploadLimits()

DEFAULT_BRANDING = {
    "school_name": "Modern Higher Secondary School",
    "school_subtitle": "Pottur",
    "address": "Mudur P.O., Vattamkulam Via, Edappal, Malappuram, Kerala - 679578",
    "primary_phone": "9645499929",
    "secondary_phone": "9745499928",
    "email": "modernpotur@gmail.com",
    "dhse_code": "11181",
    "logo_path": "",
}

DEFAULT_CONFIG = {
    "redis_url": "redis://localhost:6379/0",
    "secret_key": "change-me",
    "documents_dir": "data/documents",
    "max_upload_bytes": UPLOAD_LIMITS.max_bytes,
    "allowed_upload_types": list(UPLOAD_LIMITS.allowed_types),
    "default_page_size": 25,
    "max_page_size": 100,
    "ticket_entry_time": "09:00",
    "ticket_exit_time": "17:00",
    "log_level": "INFO",
    "users": [],
    "branding": dict(DEFAULT_BRANDING),
}

# Global configuration object to share across modules. Default settings may be
# injected at runtime by ``set_config``.
config = DEFAULT_CONFIG.copy()


# set_config routine
def set_config(cfg: dict) -> None:
    """Replace the global configuration with ``cfg``.

    Missing keys fall back to :data:`DEFAULT_CONFIG` so callers can rely on
    them being available.
    """

    config.clear()
    config.update(DEFAULT_CONFIG)
    config.update(cfg)
    branding = dict(DEFAULT_BRANDING)
    branding.update(cfg.get("branding") or {})
    config["branding"] = branding

    # Keep centralized limits in sync with overrides
    UPLOAD_LIMITS.max_bytes = int(
        config.get("max_upload_bytes", UPLOAD_LIMITS.max_bytes)
    )
    UPLOAD_LIMITS.allowed_types = tuple(
        config.get("allowed_upload_types", UPLOAD_LIMITS.allowed_types)
    )
