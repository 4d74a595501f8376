from __future__ import annotations

"""Gatepass router package with shared helpers and combined routes."""

import mimetypes
from urllib.parse import quote

from fastapi import APIRouter
from fastapi.responses import Response

router = APIRouter()


def attachment(content: bytes, filename: str, media_type: str | None = None) -> Response:
    """Return ``content`` as a download named ``filename``."""
    media_type = media_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"
    ascii_name = filename.encode("ascii", "replace").decode().replace('"', "")
    disposition = (
        f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"
    )
    return Response(
        content, media_type=media_type, headers={"Content-Disposition": disposition}
    )


from . import approval, create, reports, tickets  # noqa: E402

# reports first so /stats and /export win over /{request_id}
router.include_router(reports.router)
router.include_router(create.router)
router.include_router(approval.router)
router.include_router(tickets.router)

__all__ = ["router", "attachment"]
