from __future__ import annotations

"""Admin decision, deletion and ID proof routes."""

from fastapi import APIRouter, Body, Depends

from modules import gatepass_service
from modules.auth import require_admin
from modules.documents import DocumentStore
from modules.store import RequestStore, TicketStore
from utils.deps import get_documents, get_request_store, get_ticket_store

from . import attachment

router = APIRouter()


@router.post("/gatepass/requests/{request_id}/decision")
async def gatepass_decide(
    request_id: str,
    payload: dict = Body(...),
    user: dict = Depends(require_admin),
    store: RequestStore = Depends(get_request_store),
):
    """Approve or reject a pending request."""
    row = gatepass_service.decide(store, request_id, payload, user)
    return {"ok": True, "request": row}


@router.delete("/gatepass/requests/{request_id}")
async def gatepass_delete(
    request_id: str,
    user: dict = Depends(require_admin),
    store: RequestStore = Depends(get_request_store),
    tickets: TicketStore = Depends(get_ticket_store),
    documents: DocumentStore = Depends(get_documents),
):
    gatepass_service.delete_request(store, tickets, documents, request_id, user)
    return {"ok": True, "deleted": request_id}


@router.get(
    "/gatepass/requests/{request_id}/document",
    dependencies=[Depends(require_admin)],
)
async def gatepass_document(
    request_id: str,
    store: RequestStore = Depends(get_request_store),
    documents: DocumentStore = Depends(get_documents),
):
    """Download the stored ID proof under a readable name."""
    content, name = gatepass_service.fetch_id_proof(store, documents, request_id)
    return attachment(content, name)
