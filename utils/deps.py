"""Dependency providers for shared application state."""

from __future__ import annotations

from fastapi import Request

from modules.documents import DocumentStore
from modules.store import RequestStore, TicketStore


def get_settings(request: Request) -> dict:
    return request.app.state.config


def get_request_store(request: Request) -> RequestStore:
    return request.app.state.request_store


def get_ticket_store(request: Request) -> TicketStore:
    return request.app.state.ticket_store


def get_documents(request: Request) -> DocumentStore:
    return request.app.state.documents
