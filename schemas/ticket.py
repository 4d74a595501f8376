from __future__ import annotations

"""Pydantic models for gate pass tickets and their QR payload."""

import json
from datetime import date, time
from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from modules.errors import ValidationFailed
from schemas.gatepass import field_errors


class TicketOptions(BaseModel):
    """Permit window requested by the issuing admin.

    Unset values fall back to tomorrow at the configured entry and exit times.
    ``approve`` lets the admin approve a pending request in the same action.
    """

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    permitted_entry_date: Optional[date] = None
    permitted_entry_time: Optional[time] = None
    permitted_exit_date: Optional[date] = None
    permitted_exit_time: Optional[time] = None
    approve: bool = False
    admin_comments: Optional[str] = Field(default=None, max_length=500)

    @field_validator(
        "permitted_entry_date",
        "permitted_entry_time",
        "permitted_exit_date",
        "permitted_exit_time",
        mode="before",
    )
    @classmethod
    def _blank(cls, value: Any) -> Any:
        return value or None


class QRPayload(BaseModel):
    """Verification payload embedded in the ticket QR code."""

    model_config = ConfigDict(populate_by_name=True)

    ticket_id: str = Field(alias="ticketId")
    visitor_name: str = Field(alias="visitorName")
    purpose_of_visit: str = Field(alias="purposeOfVisit")
    permitted_entry_date: str = Field(alias="permittedEntryDate")
    permitted_entry_time: str = Field(alias="permittedEntryTime")
    permitted_exit_date: Optional[str] = Field(default=None, alias="permittedExitDate")
    permitted_exit_time: Optional[str] = Field(default=None, alias="permittedExitTime")
    gate_pass_id: str = Field(alias="gatePassId")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @classmethod
    def from_json(cls, raw: str | bytes) -> "QRPayload":
        try:
            return cls.model_validate(json.loads(raw))
        except json.JSONDecodeError as exc:
            raise ValidationFailed({"qr_code_data": "QR payload is not valid JSON"}) from exc
        except ValidationError as exc:
            raise ValidationFailed(field_errors(exc)) from exc


def parse_ticket_options(data: Mapping[str, Any] | TicketOptions | None) -> TicketOptions:
    if data is None:
        return TicketOptions()
    if isinstance(data, TicketOptions):
        return data
    try:
        return TicketOptions.model_validate(dict(data))
    except ValidationError as exc:
        raise ValidationFailed(field_errors(exc)) from exc


class TicketFilters(BaseModel):
    """Ticket list filters; ``"all"`` or empty status means no filter.

    The date range bounds ``permitted_entry_date``. ``search`` matches the
    ticket number or the visitor name.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    status: Optional[Literal["issued", "used"]] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    search: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _all_means_unset(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().lower() in {"", "all"}:
            return None
        return value

    @field_validator("date_from", "date_to", "search", mode="before")
    @classmethod
    def _blank(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


def parse_ticket_filters(data: Mapping[str, Any] | TicketFilters | None) -> TicketFilters:
    if data is None:
        return TicketFilters()
    if isinstance(data, TicketFilters):
        return data
    try:
        return TicketFilters.model_validate(dict(data))
    except ValidationError as exc:
        raise ValidationFailed(field_errors(exc)) from exc
