"""Gate pass request workflow: submission, listing, decisions and documents."""

from __future__ import annotations

import mimetypes
from pathlib import PurePath
from typing import Any, Mapping, Optional

from loguru import logger

from config import UPLOAD_LIMITS
from config import config as cfg
from modules.auth import ensure_admin
from modules.documents import ID_PROOF_BUCKET, TICKET_BUCKET, DocumentStore
from modules.errors import Conflict, GatepassError, NotFound, ValidationFailed
from modules.saga import Saga
from modules.store import RequestStore, TicketStore
from schemas.gatepass import (
    DecisionUpdate,
    RequestFilters,
    parse_decision,
    parse_filters,
    parse_submission,
)
from utils.audit import log_audit
from utils.ids import document_name
from utils.pagination import Page, clamp_limit, page_window, paginate
from utils.time import day_bounds, utcnow_iso

_EXT_BY_TYPE = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "application/pdf": "pdf",
}

# Upper bound on rows scanned when a free-text search is active
SEARCH_SCAN_LIMIT = 5000

EXPORT_COLUMNS = [
    ("id", "ID"),
    ("name", "Name"),
    ("mobile_number", "Mobile"),
    ("email", "Email"),
    ("designation", "Designation"),
    ("purpose", "Purpose"),
    ("status", "Status"),
    ("created_at", "Submitted"),
    ("updated_at", "Updated"),
]


# validate_upload routine
def validate_upload(filename: str, content_type: str | None, size: int) -> str:
    """Check an ID proof upload and return the file extension to store it with."""
    content_type = (content_type or "").split(";")[0].strip().lower()
    if not content_type or content_type == "application/octet-stream":
        content_type = mimetypes.guess_type(filename or "")[0] or ""
    if content_type not in UPLOAD_LIMITS.allowed_types:
        raise ValidationFailed(
            {"id_proof_document": "ID proof must be an image (JPG, PNG, WEBP) or a PDF"}
        )
    if size <= 0:
        raise ValidationFailed({"id_proof_document": "ID proof document is required"})
    if size > UPLOAD_LIMITS.max_bytes:
        limit_mb = UPLOAD_LIMITS.max_bytes / (1024 * 1024)
        raise ValidationFailed(
            {"id_proof_document": f"ID proof must be smaller than {limit_mb:g} MB"}
        )
    # the stored extension follows the checked type, never the client filename
    ext = _EXT_BY_TYPE.get(content_type) or mimetypes.guess_extension(content_type)
    return (ext or "bin").lstrip(".")


# submit_request routine
def submit_request(
    store: RequestStore,
    documents: DocumentStore,
    data: Mapping[str, Any],
    *,
    filename: str,
    content_type: str | None,
    content: bytes,
) -> dict:
    """Validate, upload the ID proof, then insert the request row.

    A failed insert removes the uploaded file before the error propagates.
    """
    submission = parse_submission(data)
    ext = validate_upload(filename, content_type, len(content))
    path = document_name(ext)

    with Saga("gate pass submission") as saga:
        documents.upload(ID_PROOF_BUCKET, path, content)
        saga.on_rollback(
            "remove id proof", lambda: documents.remove(ID_PROOF_BUCKET, [path])
        )
        row = submission.to_row()
        row.update(
            id_proof_document_path=path,
            status="pending",
            admin_comments=None,
        )
        row = store.insert(row)
    logger.info(
        "gate pass request {} submitted by {} ({})",
        row["id"],
        row["name"],
        row["designation"],
    )
    return row


def _store_bounds(f: RequestFilters) -> dict[str, Any]:
    """Translate filters into the server-side part of a store query."""
    return {
        "status": f.status,
        "designation": f.designation,
        "created_from": day_bounds(f.date_from).timestamp() if f.date_from else None,
        "created_to": day_bounds(f.date_to, end=True).timestamp() if f.date_to else None,
    }


def _matches(row: dict, needle: str) -> bool:
    return any(
        needle in str(row.get(field) or "").lower()
        for field in ("name", "email", "mobile_number")
    )


# list_requests routine
def list_requests(
    store: RequestStore,
    filters: Mapping[str, Any] | RequestFilters | None = None,
    page: int = 1,
    limit: int | None = None,
) -> Page[dict]:
    """Return one newest-first page of requests matching ``filters``.

    Status, designation and date range are resolved by the store; the text
    search then narrows the rows the store returns.
    """
    f = parse_filters(filters)
    limit = clamp_limit(limit, cfg["default_page_size"], cfg["max_page_size"])
    page = max(page, 1)
    bounds = _store_bounds(f)
    if not f.search:
        offset, count = page_window(page, limit)
        rows, total = store.list(offset=offset, limit=count, **bounds)
        return Page(items=rows, total=total, page=page, limit=limit)

    needle = f.search.lower()
    matches = [
        row
        for row in store.scan(max_rows=SEARCH_SCAN_LIMIT, **bounds)
        if _matches(row, needle)
    ]
    return Page(
        items=paginate(matches, page, limit), total=len(matches), page=page, limit=limit
    )


def iter_export_rows(
    store: RequestStore, filters: Mapping[str, Any] | RequestFilters | None = None
):
    """Yield every row matching ``filters`` for CSV export."""
    f = parse_filters(filters)
    bounds = _store_bounds(f)
    needle = (f.search or "").lower()
    for row in store.scan(max_rows=SEARCH_SCAN_LIMIT, **bounds):
        if not needle or _matches(row, needle):
            yield row


def get_request(store: RequestStore, request_id: str) -> dict:
    row = store.get(request_id)
    if row is None:
        raise NotFound("Gate pass request not found")
    return row


def request_stats(store: RequestStore) -> dict[str, int]:
    return store.counts()


# decide routine
def decide(
    store: RequestStore,
    request_id: str,
    decision: Mapping[str, Any] | DecisionUpdate,
    user: Optional[dict],
) -> dict:
    """Approve or reject a pending request on behalf of an admin."""
    admin = ensure_admin(user)
    update = parse_decision(decision)
    current = get_request(store, request_id)
    if current["status"] != "pending":
        raise Conflict(
            f"Request has already been {current['status']}", code="already_decided"
        )
    patch = {
        "status": update.status,
        "admin_comments": update.admin_comments,
        "updated_at": utcnow_iso(),
    }
    row = store.update(request_id, patch, expected_status="pending")
    log_audit(
        f"gatepass_{update.status}",
        admin["name"],
        target=request_id,
        reason=update.admin_comments,
    )
    return row


# delete_request routine
def delete_request(
    store: RequestStore,
    tickets: TicketStore,
    documents: DocumentStore,
    request_id: str,
    user: Optional[dict],
) -> dict:
    """Delete a request, its ticket, and their stored files."""
    admin = ensure_admin(user)
    get_request(store, request_id)
    # the ticket goes first so a failure leaves the request that points at it
    ticket = tickets.get_by_request(request_id)
    if ticket:
        tickets.delete(ticket["id"])
    row = store.delete(request_id)
    if row is None:
        raise NotFound("Gate pass request not found")
    leftovers = [(ID_PROOF_BUCKET, row.get("id_proof_document_path"))]
    if ticket:
        leftovers.append((TICKET_BUCKET, ticket.get("pdf_path")))
    for bucket, path in leftovers:
        if not path:
            continue
        try:
            documents.remove(bucket, [path])
        except GatepassError:
            logger.exception("orphaned file {}/{} after deleting {}", bucket, path, request_id)
    log_audit("gatepass_delete", admin["name"], target=request_id)
    return row


def id_proof_display_name(row: dict) -> str:
    ext = PurePath(row.get("id_proof_document_path") or "").suffix or ".bin"
    return f"{row.get('name', 'document')}_ID_Proof{ext}"


# fetch_id_proof routine
def fetch_id_proof(
    store: RequestStore, documents: DocumentStore, request_id: str
) -> tuple[bytes, str]:
    """Return ``(content, display_name)`` for the request's ID proof."""
    row = get_request(store, request_id)
    path = row.get("id_proof_document_path")
    if not path:
        raise NotFound("No ID proof stored for this request")
    return documents.download(ID_PROOF_BUCKET, path), id_proof_display_name(row)
