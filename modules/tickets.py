"""Ticket issuance, rendering and verification for approved gate passes."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Mapping, Optional

from loguru import logger

from config import config as cfg
from modules import export, gatepass_service
from modules.auth import ensure_admin
from modules.documents import TICKET_BUCKET, DocumentStore
from modules.errors import (
    Conflict,
    NotFound,
    RenderFailed,
    UploadFailed,
    ValidationFailed,
)
from modules.saga import Saga
from modules.store import RequestStore, TicketStore
from schemas.ticket import (
    QRPayload,
    TicketFilters,
    TicketOptions,
    parse_ticket_filters,
    parse_ticket_options,
)
from utils.audit import log_audit
from utils.ids import generate_id, ticket_number
from utils.pagination import Page, clamp_limit, page_window, paginate
from utils.time import parse_hhmm, tomorrow, utcnow_iso

DATE_FMT = "%Y-%m-%d"
TIME_FMT = "%H:%M"

# fresh ticket numbers drawn when the PDF path is already taken
TICKET_NUMBER_ATTEMPTS = 5


def resolve_window(
    options: TicketOptions, today: date | None = None
) -> tuple[datetime, Optional[datetime]]:
    """Return the permitted entry and exit instants for ``options``.

    With no options the window is tomorrow between the configured entry and
    exit times. A custom entry without any exit leaves the exit open. An exit
    earlier than the entry is rejected.
    """
    default_day = tomorrow(today)
    entry_day = options.permitted_entry_date or default_day
    entry_time = options.permitted_entry_time or parse_hhmm(cfg["ticket_entry_time"])
    entry = datetime.combine(entry_day, entry_time)

    exit_day = options.permitted_exit_date
    exit_time = options.permitted_exit_time
    custom_entry = options.permitted_entry_date or options.permitted_entry_time
    if exit_day is None and exit_time is None and custom_entry:
        return entry, None
    exit_at = datetime.combine(
        exit_day or entry_day, exit_time or parse_hhmm(cfg["ticket_exit_time"])
    )
    if exit_at < entry:
        raise ValidationFailed(
            {"permitted_exit_time": "Exit must not be earlier than entry"}
        )
    return entry, exit_at


def build_ticket(
    request_row: dict,
    entry: datetime,
    exit_at: Optional[datetime],
    issued_by: str,
) -> dict[str, Any]:
    """Assemble a complete ticket record, QR payload included.

    The id is generated here so the payload can embed it before the ticket
    is written.
    """
    ticket_id = generate_id()
    number = ticket_number()
    payload = QRPayload(
        ticket_id=ticket_id,
        visitor_name=request_row["name"],
        purpose_of_visit=request_row["purpose"],
        permitted_entry_date=entry.strftime(DATE_FMT),
        permitted_entry_time=entry.strftime(TIME_FMT),
        permitted_exit_date=exit_at.strftime(DATE_FMT) if exit_at else None,
        permitted_exit_time=exit_at.strftime(TIME_FMT) if exit_at else None,
        gate_pass_id=request_row["id"],
    )
    return {
        "id": ticket_id,
        "ticket_number": number,
        "gate_pass_request_id": request_row["id"],
        "permitted_entry_date": payload.permitted_entry_date,
        "permitted_entry_time": payload.permitted_entry_time,
        "permitted_exit_date": payload.permitted_exit_date,
        "permitted_exit_time": payload.permitted_exit_time,
        "qr_code_data": payload.to_json(),
        "pdf_path": f"{number}.pdf",
        "is_used": False,
        "used_at": None,
        "issued_by": issued_by,
        "issued_at": utcnow_iso(),
    }


def _display_time(day: Optional[str], hhmm: Optional[str]) -> str:
    if not day or not hhmm:
        return "Not specified"
    return datetime.strptime(f"{day} {hhmm}", f"{DATE_FMT} {TIME_FMT}").strftime(
        "%d %b %Y, %I:%M %p"
    )


def render_ticket_html(ticket: dict, request_row: dict) -> str:
    """Render the printable ticket page."""
    branding = cfg.get("branding", {})
    fields = [
        ("Visitor Name", request_row.get("name") or "N/A"),
        ("Purpose", request_row.get("purpose") or "N/A"),
        ("Mobile", request_row.get("mobile_number") or "N/A"),
        (
            "Entry Time",
            _display_time(ticket["permitted_entry_date"], ticket["permitted_entry_time"]),
        ),
        ("Status", "Used" if ticket.get("is_used") else "Valid"),
    ]
    return export.render_template(
        "ticket.html",
        ticket=ticket,
        branding=branding,
        logo=export.file_data_uri(branding.get("logo_path", "")),
        fields=fields,
        qr_img=export.qr_data_uri(ticket["qr_code_data"]),
    )


def render_ticket_pdf(ticket: dict, request_row: dict) -> bytes:
    try:
        return export.html_to_pdf(render_ticket_html(ticket, request_row))
    except Exception as exc:
        logger.exception("ticket render failed for {}", ticket.get("ticket_number"))
        raise RenderFailed("Failed to render ticket PDF") from exc


def _store_ticket(
    tickets: TicketStore, documents: DocumentStore, ticket: dict, pdf: bytes
) -> None:
    with Saga("ticket issuance") as saga:
        documents.upload(TICKET_BUCKET, ticket["pdf_path"], pdf)
        saga.on_rollback(
            "remove ticket pdf",
            lambda: documents.remove(TICKET_BUCKET, [ticket["pdf_path"]]),
        )
        tickets.insert(ticket)


# issue_ticket routine
def issue_ticket(
    requests: RequestStore,
    tickets: TicketStore,
    documents: DocumentStore,
    request_id: str,
    options: Mapping[str, Any] | TicketOptions | None,
    user: Optional[dict],
) -> dict:
    """Issue the single entry ticket for an approved request.

    Steps run as a saga: render the PDF, store it, then insert the ticket.
    Any failure removes what earlier steps produced.
    """
    admin = ensure_admin(user)
    opts = parse_ticket_options(options)
    row = gatepass_service.get_request(requests, request_id)
    if row["status"] == "pending" and opts.approve:
        row = gatepass_service.decide(
            requests,
            request_id,
            {"status": "approved", "admin_comments": opts.admin_comments},
            admin,
        )
    if row["status"] != "approved":
        raise Conflict(
            "Tickets can only be issued for approved requests", code="not_approved"
        )
    if tickets.get_by_request(request_id):
        raise Conflict(
            "A ticket was already issued for this request", code="ticket_exists"
        )

    entry, exit_at = resolve_window(opts)
    for attempt in range(1, TICKET_NUMBER_ATTEMPTS + 1):
        ticket = build_ticket(row, entry, exit_at, admin["name"])
        pdf = render_ticket_pdf(ticket, row)
        try:
            _store_ticket(tickets, documents, ticket, pdf)
            break
        except UploadFailed as exc:
            if exc.code != "duplicate_path" or attempt == TICKET_NUMBER_ATTEMPTS:
                raise
            logger.warning(
                "ticket number {} already taken, drawing another", ticket["ticket_number"]
            )
    log_audit(
        "ticket_issue",
        admin["name"],
        target=request_id,
        ticket=ticket["ticket_number"],
    )
    return ticket


# request fields shown alongside a listed ticket
REQUEST_SUMMARY_FIELDS = ("name", "purpose", "mobile_number", "email")


def _with_requests(requests: RequestStore, rows: list[dict]) -> list[dict]:
    found = requests.get_many([t["gate_pass_request_id"] for t in rows])
    for ticket in rows:
        row = found.get(ticket["gate_pass_request_id"]) or {}
        ticket["request"] = {key: row.get(key) for key in REQUEST_SUMMARY_FIELDS}
    return rows


def _ticket_matches(ticket: dict, f: TicketFilters, needle: str) -> bool:
    entry = ticket["permitted_entry_date"]
    if f.date_from and entry < f.date_from.isoformat():
        return False
    if f.date_to and entry > f.date_to.isoformat():
        return False
    if not needle:
        return True
    visitor = ticket["request"].get("name") or ""
    return needle in ticket["ticket_number"].lower() or needle in visitor.lower()


# list_tickets routine
def list_tickets(
    tickets: TicketStore,
    requests: RequestStore,
    filters: Mapping[str, Any] | TicketFilters | None = None,
    page: int = 1,
    limit: int | None = None,
) -> Page[dict]:
    """Return one page of tickets, newest issued first.

    Each ticket carries a ``request`` summary of its visitor. The used/issued
    state is resolved by the store; entry dates and the text search narrow the
    scanned rows.
    """
    f = parse_ticket_filters(filters)
    limit = clamp_limit(limit, cfg["default_page_size"], cfg["max_page_size"])
    page = max(page, 1)
    if not (f.date_from or f.date_to or f.search):
        offset, count = page_window(page, limit)
        rows, total = tickets.list(state=f.status, offset=offset, limit=count)
        return Page(
            items=_with_requests(requests, rows), total=total, page=page, limit=limit
        )

    needle = (f.search or "").lower()
    rows = _with_requests(
        requests,
        list(tickets.scan(state=f.status, max_rows=gatepass_service.SEARCH_SCAN_LIMIT)),
    )
    matches = [ticket for ticket in rows if _ticket_matches(ticket, f, needle)]
    return Page(
        items=paginate(matches, page, limit), total=len(matches), page=page, limit=limit
    )


def get_ticket(tickets: TicketStore, ticket_id: str) -> dict:
    ticket = tickets.get(ticket_id)
    if ticket is None:
        raise NotFound("Ticket not found")
    return ticket


def fetch_ticket_pdf(
    tickets: TicketStore, documents: DocumentStore, ticket_id: str
) -> tuple[bytes, str]:
    """Return ``(pdf, display_name)`` for a stored ticket."""
    ticket = get_ticket(tickets, ticket_id)
    content = documents.download(TICKET_BUCKET, ticket["pdf_path"])
    return content, f"gate-pass-ticket-{ticket['ticket_number']}.pdf"


# verify_ticket routine
def verify_ticket(
    tickets: TicketStore, qr_code_data: str | bytes, now: datetime | None = None
) -> dict[str, Any]:
    """Check a scanned QR payload against the stored ticket.

    Returns ``{"valid": bool, "reason": str | None, "ticket": dict}``.
    """
    payload = QRPayload.from_json(qr_code_data)
    ticket = get_ticket(tickets, payload.ticket_id)
    stored = QRPayload.from_json(ticket["qr_code_data"])
    now = now or datetime.now()

    reason = None
    if stored != payload:
        reason = "payload_mismatch"
    elif ticket.get("is_used"):
        reason = "already_used"
    else:
        entry = datetime.strptime(
            f"{stored.permitted_entry_date} {stored.permitted_entry_time}",
            f"{DATE_FMT} {TIME_FMT}",
        )
        if now < entry:
            reason = "not_yet_valid"
        elif stored.permitted_exit_date and stored.permitted_exit_time:
            exit_at = datetime.strptime(
                f"{stored.permitted_exit_date} {stored.permitted_exit_time}",
                f"{DATE_FMT} {TIME_FMT}",
            )
            if now > exit_at:
                reason = "expired"
    if reason:
        logger.warning("ticket {} rejected at gate: {}", ticket["ticket_number"], reason)
    return {"valid": reason is None, "reason": reason, "ticket": ticket}


def mark_ticket_used(
    tickets: TicketStore, ticket_id: str, user: Optional[dict]
) -> dict:
    admin = ensure_admin(user)
    ticket = tickets.mark_used(ticket_id, utcnow_iso())
    log_audit("ticket_use", admin["name"], target=ticket_id)
    return ticket
