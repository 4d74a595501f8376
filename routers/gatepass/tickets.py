from __future__ import annotations

"""Ticket listing, issuance, download and gate verification routes."""

import asyncio
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query

from modules import tickets as ticket_service
from modules.auth import require_admin
from modules.documents import DocumentStore
from modules.errors import ValidationFailed
from modules.store import RequestStore, TicketStore
from utils.deps import get_documents, get_request_store, get_ticket_store

from . import attachment

router = APIRouter()


@router.post("/gatepass/requests/{request_id}/ticket", status_code=201)
async def ticket_issue(
    request_id: str,
    payload: Optional[dict] = Body(None),
    user: dict = Depends(require_admin),
    store: RequestStore = Depends(get_request_store),
    tickets: TicketStore = Depends(get_ticket_store),
    documents: DocumentStore = Depends(get_documents),
):
    """Issue the entry ticket for an approved request."""
    ticket = await asyncio.to_thread(
        ticket_service.issue_ticket, store, tickets, documents, request_id, payload, user
    )
    return {"ok": True, "ticket": ticket}


@router.get("/gatepass/tickets", dependencies=[Depends(require_admin)])
async def ticket_list(
    status: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    search: str | None = None,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    tickets: TicketStore = Depends(get_ticket_store),
    store: RequestStore = Depends(get_request_store),
):
    """Return one page of issued tickets, newest first."""
    filters = {
        "status": status,
        "date_from": date_from,
        "date_to": date_to,
        "search": search,
    }
    result = ticket_service.list_tickets(tickets, store, filters, page=page, limit=limit)
    return {
        "ok": True,
        "items": result.items,
        "total": result.total,
        "page": result.page,
        "limit": result.limit,
        "pages": result.pages,
    }


@router.post("/gatepass/tickets/verify", dependencies=[Depends(require_admin)])
async def ticket_verify(
    payload: dict = Body(...),
    tickets: TicketStore = Depends(get_ticket_store),
):
    """Check a scanned QR payload against the stored ticket."""
    raw = payload.get("qr_code_data")
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationFailed({"qr_code_data": "QR payload is required"})
    result = ticket_service.verify_ticket(tickets, raw)
    return {"ok": True, **result}


@router.get("/gatepass/tickets/{ticket_id}", dependencies=[Depends(require_admin)])
async def ticket_detail(
    ticket_id: str, tickets: TicketStore = Depends(get_ticket_store)
):
    return {"ok": True, "ticket": ticket_service.get_ticket(tickets, ticket_id)}


@router.get(
    "/gatepass/tickets/{ticket_id}/pdf", dependencies=[Depends(require_admin)]
)
async def ticket_pdf(
    ticket_id: str,
    tickets: TicketStore = Depends(get_ticket_store),
    documents: DocumentStore = Depends(get_documents),
):
    content, name = ticket_service.fetch_ticket_pdf(tickets, documents, ticket_id)
    return attachment(content, name, "application/pdf")


@router.post("/gatepass/tickets/{ticket_id}/use")
async def ticket_use(
    ticket_id: str,
    user: dict = Depends(require_admin),
    tickets: TicketStore = Depends(get_ticket_store),
):
    """Record that the visitor has passed the gate."""
    ticket = ticket_service.mark_ticket_used(tickets, ticket_id, user)
    return {"ok": True, "ticket": ticket}
