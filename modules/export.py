"""Rendering helpers: QR images, HTML templates, PDF and CSV output."""

from __future__ import annotations

import base64
import csv
import io
import mimetypes
from pathlib import Path
from typing import Iterable, Sequence

import qrcode
from fastapi.responses import Response
from jinja2 import Environment, FileSystemLoader, select_autoescape
from loguru import logger

BASE_DIR = Path(__file__).resolve().parent.parent
TEMPLATE_DIR = BASE_DIR / "templates"

# Jinja environment for offline template rendering
_env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(["html", "xml"]),
)


def qr_data_uri(data: str) -> str:
    """Return a PNG data URI for the given QR data."""
    buf = io.BytesIO()
    qrcode.make(data).save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode()


def file_data_uri(path: str | Path) -> str:
    """Return a data URI for a local image, or ``""`` when unavailable."""
    if not path:
        return ""
    p = Path(path)
    if not p.is_absolute():
        p = BASE_DIR / p
    if not p.is_file():
        logger.warning("logo not found at {}", p)
        return ""
    mime = mimetypes.guess_type(p.name)[0] or "image/png"
    return f"data:{mime};base64," + base64.b64encode(p.read_bytes()).decode()


def render_template(name: str, **context) -> str:
    return _env.get_template(name).render(**context)


def html_to_pdf(html: str) -> bytes:
    """Convert ``html`` to PDF bytes with WeasyPrint."""
    from weasyprint import HTML

    return HTML(string=html, base_url=str(BASE_DIR)).write_pdf()


# leading characters a spreadsheet reads as the start of a formula
_FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")


def csv_cell(value) -> str:
    """Return ``value`` as CSV text that spreadsheets will not evaluate."""
    if value is None:
        return ""
    text = str(value)
    if text.startswith(_FORMULA_PREFIXES):
        return "'" + text
    return text


def csv_bytes(rows: Iterable[dict], columns: Sequence[tuple[str, str]]) -> bytes:
    """Serialize ``rows`` to CSV using ``(key, header)`` column pairs."""
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow([header for _, header in columns])
    for row in rows:
        writer.writerow([csv_cell(row.get(key)) for key, _ in columns])
    return buf.getvalue().encode("utf-8")


def export_csv(
    rows: Iterable[dict], columns: Sequence[tuple[str, str]], filename: str
) -> Response:
    return Response(
        csv_bytes(rows, columns),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}.csv"'},
    )
