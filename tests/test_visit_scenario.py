"""Purpose: Walk one parent visit from submission to an issued ticket."""

import json
from datetime import date, timedelta

from conftest import ADMIN, PDF_BYTES, parent_form
from modules import gatepass_service, tickets
from utils.time import parse_iso


def test_parent_visit_scenario(request_store, ticket_store, documents):
    row = gatepass_service.submit_request(
        request_store,
        documents,
        parent_form(),
        filename="admission-letter.pdf",
        content_type="application/pdf",
        content=PDF_BYTES,
    )
    assert row["status"] == "pending"
    assert row["id_proof_document_path"]
    assert request_store.counts()["total"] == 1

    approved = gatepass_service.decide(
        request_store,
        row["id"],
        {"status": "approved", "admin_comments": "OK, verified"},
        ADMIN,
    )
    assert approved["status"] == "approved"
    assert parse_iso(approved["updated_at"]) > parse_iso(approved["created_at"])

    ticket = tickets.issue_ticket(
        request_store,
        ticket_store,
        documents,
        row["id"],
        {"permitted_entry_time": "09:00", "permitted_exit_time": "17:00"},
        ADMIN,
    )
    tomorrow = (date.today() + timedelta(days=1)).isoformat()
    assert ticket["permitted_entry_date"] == tomorrow
    assert ticket["permitted_exit_date"] == tomorrow
    payload = json.loads(ticket["qr_code_data"])
    assert payload["gatePassId"] == row["id"]
    assert payload["ticketId"] == ticket["id"]
