"""Purpose: Test the filesystem document store."""

import pytest

from modules.documents import ID_PROOF_BUCKET, TICKET_BUCKET
from modules.errors import NotFound, UploadFailed


def test_upload_download_remove(documents):
    documents.upload(ID_PROOF_BUCKET, "1-abc.pdf", b"data")
    assert documents.exists(ID_PROOF_BUCKET, "1-abc.pdf")
    assert documents.download(ID_PROOF_BUCKET, "1-abc.pdf") == b"data"
    assert documents.remove(ID_PROOF_BUCKET, ["1-abc.pdf", "missing.pdf"]) == ["1-abc.pdf"]
    assert not documents.exists(ID_PROOF_BUCKET, "1-abc.pdf")


def test_buckets_are_separate(documents):
    documents.upload(TICKET_BUCKET, "TKT00000001.pdf", b"pdf")
    with pytest.raises(NotFound):
        documents.download(ID_PROOF_BUCKET, "TKT00000001.pdf")


def test_upload_never_overwrites(documents):
    documents.upload(ID_PROOF_BUCKET, "same.pdf", b"first")
    with pytest.raises(UploadFailed) as exc:
        documents.upload(ID_PROOF_BUCKET, "same.pdf", b"second")
    assert exc.value.code == "duplicate_path"
    assert documents.download(ID_PROOF_BUCKET, "same.pdf") == b"first"


@pytest.mark.parametrize("path", ["../secret.txt", "../../etc/passwd", "", "/etc/passwd"])
def test_paths_confined_to_bucket(documents, path):
    with pytest.raises(NotFound) as exc:
        documents.download(ID_PROOF_BUCKET, path)
    assert exc.value.code == "invalid_path"


def test_traversal_into_sibling_bucket(documents):
    documents.upload(TICKET_BUCKET, "t.pdf", b"pdf")
    with pytest.raises(NotFound):
        documents.download(ID_PROOF_BUCKET, f"../{TICKET_BUCKET}/t.pdf")


def test_missing_document(documents):
    with pytest.raises(NotFound) as exc:
        documents.download(ID_PROOF_BUCKET, "nope.pdf")
    assert exc.value.code == "not_found"
