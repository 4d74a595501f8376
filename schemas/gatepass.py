from __future__ import annotations

"""Pydantic models for gate pass requests.

A submission is a tagged union keyed on ``designation``: each branch only
accepts the extra fields that belong to it.
"""

from datetime import date
from typing import Annotated, Any, Literal, Mapping, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    TypeAdapter,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from modules.errors import ValidationFailed

DESIGNATIONS = ("parent", "alumni", "maintenance", "other")
STATUSES = ("pending", "approved", "rejected")

MOBILE_PATTERN = r"^[6-9][0-9]{9}$"

# Friendlier messages for errors whose pydantic wording is unhelpful
FIELD_MESSAGES = {
    "mobile_number": "Please enter a valid 10-digit mobile number",
    "email": "Please enter a valid email address",
    "designation": "Please select a valid designation",
}


class _SubmissionBase(BaseModel):
    """Fields shared by every designation."""

    model_config = ConfigDict(
        extra="forbid", populate_by_name=True, str_strip_whitespace=True
    )

    name: str = Field(min_length=2, max_length=100)
    mobile_number: str = Field(pattern=MOBILE_PATTERN)
    email: EmailStr
    address: str = Field(min_length=10, max_length=500)
    purpose: str = Field(min_length=5, max_length=200)

    def to_row(self) -> dict[str, Any]:
        """Return the storable row with ``class`` under its wire name."""
        return self.model_dump(by_alias=True)


class ParentRequest(_SubmissionBase):
    designation: Literal["parent"]
    student_name: str = Field(min_length=2, max_length=100)
    student_class: str = Field(alias="class", min_length=1, max_length=20)
    admission_number: str = Field(min_length=1, max_length=20)


class AlumniRequest(_SubmissionBase):
    designation: Literal["alumni"]


class MaintenanceRequest(_SubmissionBase):
    designation: Literal["maintenance"]
    authorized_person: str = Field(min_length=2, max_length=100)


class OtherRequest(_SubmissionBase):
    designation: Literal["other"]
    person_to_meet: str = Field(min_length=2, max_length=100)


GatePassSubmission = Annotated[
    Union[ParentRequest, AlumniRequest, MaintenanceRequest, OtherRequest],
    Field(discriminator="designation"),
]

_submission_adapter: TypeAdapter = TypeAdapter(GatePassSubmission)


class DecisionUpdate(BaseModel):
    """Admin decision on a pending request."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    status: Literal["approved", "rejected"]
    admin_comments: Optional[str] = Field(
        default=None, max_length=500, validate_default=True
    )

    @field_validator("admin_comments")
    @classmethod
    def _required_on_reject(
        cls, value: Optional[str], info: ValidationInfo
    ) -> Optional[str]:
        if info.data.get("status") == "rejected" and not value:
            raise ValueError("Comments are required when rejecting a request")
        return value or None


class RequestFilters(BaseModel):
    """Admin list filters; ``"all"`` or empty means no filter."""

    model_config = ConfigDict(str_strip_whitespace=True)

    status: Optional[Literal["pending", "approved", "rejected"]] = None
    designation: Optional[Literal["parent", "alumni", "maintenance", "other"]] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    search: Optional[str] = None

    @field_validator("status", "designation", mode="before")
    @classmethod
    def _all_means_unset(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().lower() in {"", "all"}:
            return None
        return value

    @field_validator("search", mode="before")
    @classmethod
    def _blank_search(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def _blank_date(cls, value: Any) -> Any:
        return value or None


def field_errors(exc: ValidationError) -> dict[str, str]:
    """Collapse pydantic errors into ``{field: first message}``."""
    errors: dict[str, str] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        if err["type"].startswith("union_tag"):
            field = "designation"
        elif len(loc) > 1 and loc[0] in DESIGNATIONS:
            field = loc[1]
        else:
            field = loc[0] if loc else "__root__"
        ctx = err.get("ctx") or {}
        if err["type"] == "value_error" and "error" in ctx:
            message = str(ctx["error"])
        elif err["type"] == "extra_forbidden":
            message = "Field not allowed for this designation"
        else:
            message = FIELD_MESSAGES.get(field, err["msg"])
        errors.setdefault(field, message)
    return errors


def parse_submission(
    data: Mapping[str, Any],
) -> ParentRequest | AlumniRequest | MaintenanceRequest | OtherRequest:
    """Validate a raw submission or raise :class:`ValidationFailed`."""
    try:
        return _submission_adapter.validate_python(dict(data))
    except ValidationError as exc:
        raise ValidationFailed(field_errors(exc)) from exc


def parse_decision(data: Mapping[str, Any] | DecisionUpdate) -> DecisionUpdate:
    if isinstance(data, DecisionUpdate):
        return data
    try:
        return DecisionUpdate.model_validate(dict(data))
    except ValidationError as exc:
        raise ValidationFailed(field_errors(exc)) from exc


def parse_filters(data: Mapping[str, Any] | RequestFilters | None) -> RequestFilters:
    if data is None:
        return RequestFilters()
    if isinstance(data, RequestFilters):
        return data
    try:
        return RequestFilters.model_validate(dict(data))
    except ValidationError as exc:
        raise ValidationFailed(field_errors(exc)) from exc
