"""Shared pytest fixtures for app testing."""

import json
import sys
from pathlib import Path

import fakeredis
import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from config import set_config
from modules import export
from modules.auth import hash_password
from modules.documents import DocumentStore
from modules.store import RequestStore, TicketStore

ADMIN = {"name": "admin", "role": "admin"}
ADMIN_PASSWORD = "rapidadmin"
VIEWER_PASSWORD = "justlooking"

PDF_BYTES = b"%PDF-1.4\n% test document\n"


def parent_form(**overrides) -> dict:
    """Submission fields for a parent visiting their child."""
    data = {
        "name": "A. Kumar",
        "mobile_number": "9876543210",
        "email": "a@x.com",
        "address": "12 Temple Road, Edappal",
        "purpose": "Meet class teacher",
        "designation": "parent",
        "student_name": "R. Kumar",
        "class": "10A",
        "admission_number": "ADM001",
    }
    data.update(overrides)
    return data


@pytest.fixture(autouse=True)
def _reset_config():
    set_config({})
    yield
    set_config({})


@pytest.fixture(autouse=True)
def rendered_html(monkeypatch):
    """Replace WeasyPrint with a stub and collect the rendered HTML."""
    pages: list[str] = []

    def _fake_pdf(html: str) -> bytes:
        pages.append(html)
        return PDF_BYTES

    monkeypatch.setattr(export, "html_to_pdf", _fake_pdf)
    return pages


@pytest.fixture
def redis_client():
    client = fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield client
    client.flushall()


@pytest.fixture
def request_store(redis_client) -> RequestStore:
    return RequestStore(redis_client, scan_batch=2)


@pytest.fixture
def ticket_store(redis_client) -> TicketStore:
    return TicketStore(redis_client)


@pytest.fixture
def documents(tmp_path) -> DocumentStore:
    return DocumentStore(tmp_path / "documents")


@pytest.fixture
def config_file(tmp_path) -> Path:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "secret_key": "test-secret",
                "documents_dir": "documents",
                "users": [
                    {
                        "username": "admin",
                        "password": hash_password(ADMIN_PASSWORD, rounds=4),
                        "role": "admin",
                    },
                    {
                        "username": "guard",
                        "password": hash_password(VIEWER_PASSWORD, rounds=4),
                        "role": "viewer",
                    },
                ],
            }
        )
    )
    return path


@pytest.fixture
def client(config_file, redis_client):
    import app

    app.init_app(config_path=str(config_file), redis_client=redis_client)
    with TestClient(app.app) as c:
        yield c
    for attr in ("request_store", "ticket_store", "documents", "redis_client"):
        setattr(app.app.state, attr, None)


@pytest.fixture
def admin_client(client):
    resp = client.post(
        "/login", data={"username": "admin", "password": ADMIN_PASSWORD}
    )
    assert resp.status_code == 200
    return client
