from __future__ import annotations

"""Admin listing, statistics, export and detail routes."""

from datetime import date

from fastapi import APIRouter, Depends, Query

from modules import export, gatepass_service
from modules.auth import require_admin
from modules.store import RequestStore, TicketStore
from utils.deps import get_request_store, get_ticket_store

router = APIRouter(dependencies=[Depends(require_admin)])


def _filters(
    status: str | None = None,
    designation: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    search: str | None = None,
) -> dict:
    return {
        "status": status,
        "designation": designation,
        "date_from": date_from,
        "date_to": date_to,
        "search": search,
    }


@router.get("/gatepass/requests")
async def gatepass_list(
    filters: dict = Depends(_filters),
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    store: RequestStore = Depends(get_request_store),
):
    """Return one page of requests, newest first."""
    result = gatepass_service.list_requests(store, filters, page=page, limit=limit)
    return {
        "ok": True,
        "items": result.items,
        "total": result.total,
        "page": result.page,
        "limit": result.limit,
        "pages": result.pages,
    }


@router.get("/gatepass/requests/stats")
async def gatepass_stats(store: RequestStore = Depends(get_request_store)):
    return {"ok": True, "stats": gatepass_service.request_stats(store)}


@router.get("/gatepass/requests/export")
async def gatepass_export(
    filters: dict = Depends(_filters),
    store: RequestStore = Depends(get_request_store),
):
    """Download the filtered requests as CSV."""
    rows = gatepass_service.iter_export_rows(store, filters)
    return export.export_csv(
        rows,
        gatepass_service.EXPORT_COLUMNS,
        f"gate-pass-requests-{date.today().isoformat()}",
    )


@router.get("/gatepass/requests/{request_id}")
async def gatepass_detail(
    request_id: str,
    store: RequestStore = Depends(get_request_store),
    tickets: TicketStore = Depends(get_ticket_store),
):
    row = gatepass_service.get_request(store, request_id)
    return {"ok": True, "request": row, "ticket": tickets.get_by_request(request_id)}
