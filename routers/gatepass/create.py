from __future__ import annotations

"""Public gate pass submission route."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.datastructures import UploadFile

from config import UPLOAD_LIMITS
from modules import gatepass_service
from modules.documents import DocumentStore
from modules.errors import ValidationFailed
from modules.store import RequestStore
from utils.deps import get_documents, get_request_store

router = APIRouter()

FILE_FIELD = "id_proof_document"


@router.post("/gatepass/requests", status_code=201)
async def gatepass_submit(
    request: Request,
    store: RequestStore = Depends(get_request_store),
    documents: DocumentStore = Depends(get_documents),
):
    """Accept a visitor request with its ID proof upload."""
    form = await request.form()
    upload = form.get(FILE_FIELD)
    if not isinstance(upload, UploadFile) or not upload.filename:
        raise ValidationFailed({FILE_FIELD: "ID proof document is required"})
    # forms post every input; blanks belong to other designations
    data = {
        key: value
        for key, value in form.items()
        if key != FILE_FIELD and isinstance(value, str) and value.strip()
    }
    # one byte past the limit is enough to reject an oversized file
    content = await upload.read(UPLOAD_LIMITS.max_bytes + 1)
    row = gatepass_service.submit_request(
        store,
        documents,
        data,
        filename=upload.filename,
        content_type=upload.content_type,
        content=content,
    )
    logger.debug("submission stored at {}", row["id_proof_document_path"])
    return JSONResponse({"ok": True, "request": row}, status_code=201)
