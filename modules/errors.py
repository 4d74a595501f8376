"""Exception taxonomy for the gate pass workflow.

Every error carries a machine-readable ``code`` and the HTTP status the API
layer responds with. Routers translate them through
:func:`utils.api_errors.error_response`.
"""

from __future__ import annotations

from typing import Any, Mapping


class GatepassError(Exception):
    """Base class for workflow errors surfaced to the caller."""

    status_code = 400
    default_code = "error"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = dict(details) if details else None


class ValidationFailed(GatepassError):
    """Input rejected before any side effect."""

    status_code = 422
    default_code = "validation_failed"

    def __init__(self, errors: Mapping[str, str], message: str = "Invalid input"):
        super().__init__(message, details={"fields": dict(errors)})
        self.errors = dict(errors)


class UploadFailed(GatepassError):
    status_code = 502
    default_code = "upload_failed"


class InsertFailed(GatepassError):
    status_code = 502
    default_code = "insert_failed"


class UpdateFailed(GatepassError):
    status_code = 502
    default_code = "update_failed"


class RenderFailed(GatepassError):
    status_code = 500
    default_code = "render_failed"


class NotFound(GatepassError):
    status_code = 404
    default_code = "not_found"


class AuthRequired(GatepassError):
    status_code = 401
    default_code = "auth_required"


class Conflict(GatepassError):
    status_code = 409
    default_code = "conflict"


class StoreUnavailable(GatepassError):
    status_code = 503
    default_code = "store_unavailable"
