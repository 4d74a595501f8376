"""Purpose: Test the public submission flow and its compensation."""

import pytest

from conftest import PDF_BYTES, parent_form
from config import set_config
from modules import gatepass_service
from modules.documents import ID_PROOF_BUCKET
from modules.errors import InsertFailed, UploadFailed, ValidationFailed


def _files(documents):
    bucket = documents.root / ID_PROOF_BUCKET
    return sorted(p.name for p in bucket.glob("*")) if bucket.exists() else []


def _submit(request_store, documents, **kwargs):
    params = {
        "filename": "aadhaar.pdf",
        "content_type": "application/pdf",
        "content": PDF_BYTES,
    }
    params.update(kwargs)
    return gatepass_service.submit_request(
        request_store, documents, parent_form(), **params
    )


def test_submit_stores_pending_row_and_document(request_store, documents):
    row = _submit(request_store, documents)
    assert row["status"] == "pending"
    assert row["admin_comments"] is None
    assert row["class"] == "10A"
    assert row["created_at"] == row["updated_at"]
    path = row["id_proof_document_path"]
    assert path.endswith(".pdf")
    assert documents.download(ID_PROOF_BUCKET, path) == PDF_BYTES
    assert request_store.get(row["id"]) == row


def test_invalid_submission_has_no_side_effects(request_store, documents):
    with pytest.raises(ValidationFailed):
        gatepass_service.submit_request(
            request_store,
            documents,
            parent_form(mobile_number="12345"),
            filename="id.pdf",
            content_type="application/pdf",
            content=PDF_BYTES,
        )
    assert _files(documents) == []
    assert request_store.counts()["total"] == 0


def test_failed_insert_removes_uploaded_document(request_store, documents, monkeypatch):
    def _boom(row):
        raise InsertFailed("Failed to save gate pass request")

    monkeypatch.setattr(request_store, "insert", _boom)
    with pytest.raises(InsertFailed):
        _submit(request_store, documents)
    assert _files(documents) == []


def test_failed_upload_skips_insert(request_store, documents, monkeypatch):
    def _boom(bucket, path, data):
        raise UploadFailed("Failed to upload document")

    monkeypatch.setattr(documents, "upload", _boom)
    with pytest.raises(UploadFailed):
        _submit(request_store, documents)
    assert request_store.counts()["total"] == 0


@pytest.mark.parametrize(
    "filename,content_type",
    [("notes.txt", "text/plain"), ("run.exe", "application/octet-stream")],
)
def test_upload_type_rejected(request_store, documents, filename, content_type):
    with pytest.raises(ValidationFailed) as exc:
        _submit(request_store, documents, filename=filename, content_type=content_type)
    assert "id_proof_document" in exc.value.errors
    assert _files(documents) == []


def test_upload_size_limit(request_store, documents):
    set_config({"max_upload_bytes": 10})
    with pytest.raises(ValidationFailed) as exc:
        _submit(request_store, documents)
    assert "smaller than" in exc.value.errors["id_proof_document"]


def test_empty_upload_rejected(request_store, documents):
    with pytest.raises(ValidationFailed):
        _submit(request_store, documents, content=b"")


def test_extension_guessed_from_content_type(request_store, documents):
    row = _submit(
        request_store,
        documents,
        filename="photo",
        content_type="image/jpeg",
        content=b"\xff\xd8\xff\xe0jpeg",
    )
    assert row["id_proof_document_path"].endswith(".jpg")


def test_content_type_guessed_from_filename():
    assert gatepass_service.validate_upload("scan.png", "application/octet-stream", 5) == "png"


def test_extension_follows_checked_content_type(request_store, documents):
    row = _submit(
        request_store,
        documents,
        filename="payload.html",
        content_type="image/png",
        content=b"\x89PNG\r\n\x1a\nfake",
    )
    assert row["id_proof_document_path"].endswith(".png")
    assert gatepass_service.id_proof_display_name(row) == "A. Kumar_ID_Proof.png"
