# records.py
# -----------------------------------------------
# Raw JSON records, two schema versions:
#   v1: browser local-storage export (camelCase)
#   v2: database rows (snake_case, project/activity/approval fields)
# Both are read through the same pydantic models via alias choices.
# -----------------------------------------------
from __future__ import annotations

import datetime as dt
import uuid
from typing import Any, Iterable, Mapping, Type, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from domain import MAX_MINUTES_PER_ENTRY, EntryValidationError, TimeEntry, User
from utils import parse_hhmm

M = TypeVar("M", bound=BaseModel)

_FIELD_MESSAGES = {
    "date": "Data inválida ou ausente (use AAAA-MM-DD).",
    "start_time": "Horário de início inválido ou ausente (use HH:MM).",
    "minutes": f"Minutos deve ser um número inteiro entre 1 e {MAX_MINUTES_PER_ENTRY}.",
    "user_id": "Registro sem usuário.",
    "id": "Perfil sem identificador.",
    "name": "Perfil sem nome.",
    "email": "Perfil sem e-mail.",
}


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


class EntryFields(BaseModel):
    """The fields every entry needs before it can be stored."""

    model_config = ConfigDict(extra="ignore")

    date: dt.date
    start_time: str = Field(validation_alias=AliasChoices("start_time", "startTime"))
    minutes: int = Field(ge=1, le=MAX_MINUTES_PER_ENTRY)

    @field_validator("date", mode="before")
    @classmethod
    def validate_date(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()[:10]
        if isinstance(v, (int, float)):
            raise ValueError("date must be an ISO calendar date")
        return v

    @field_validator("start_time", mode="before")
    @classmethod
    def validate_start_time(cls, v: Any) -> str:
        t = parse_hhmm(v) if isinstance(v, str) else None
        if t is None:
            raise ValueError("start_time must be HH:MM")
        return t.strftime("%H:%M")

    @field_validator("minutes", mode="before")
    @classmethod
    def validate_minutes(cls, v: Any) -> Any:
        if isinstance(v, bool):
            raise ValueError("minutes must be an integer")
        return v


class TimeEntryRecord(EntryFields):
    id: str | None = None
    user_id: str = Field(validation_alias=AliasChoices("user_id", "userId"), min_length=1)
    ticket_id: str | None = Field(None, validation_alias=AliasChoices("ticket_id", "ticketId"))
    description: str | None = None
    project_name: str | None = Field(None, validation_alias=AliasChoices("project_name", "projectName"))
    activity_type: str | None = Field(None, validation_alias=AliasChoices("activity_type", "activityType"))
    is_billable: bool | None = Field(None, validation_alias=AliasChoices("is_billable", "isBillable"))
    is_approved: bool | None = Field(None, validation_alias=AliasChoices("is_approved", "isApproved"))
    approved_by: str | None = Field(None, validation_alias=AliasChoices("approved_by", "approvedBy"))
    approved_at: dt.datetime | None = Field(None, validation_alias=AliasChoices("approved_at", "approvedAt"))
    created_at: dt.datetime | None = Field(None, validation_alias=AliasChoices("created_at", "createdAt"))
    updated_at: dt.datetime | None = Field(None, validation_alias=AliasChoices("updated_at", "updatedAt"))

    @field_validator(
        "id", "ticket_id", "description", "project_name", "activity_type", "approved_by",
        "approved_at", "created_at", "updated_at", "is_billable", "is_approved",
        mode="before",
    )
    @classmethod
    def blank_is_missing(cls, v: Any) -> Any:
        v = _blank_to_none(v)
        return v.strip() if isinstance(v, str) else v

    def to_entry(self) -> TimeEntry:
        return TimeEntry(
            id=self.id or uuid.uuid4().hex,
            user_id=self.user_id,
            date=self.date.isoformat(),
            start_time=self.start_time,
            minutes=self.minutes,
            ticket_id=self.ticket_id,
            description=self.description,
            project_name=self.project_name,
            activity_type=self.activity_type,
            is_billable=True if self.is_billable is None else self.is_billable,
            is_approved=bool(self.is_approved),
            approved_by=self.approved_by,
            approved_at=self.approved_at,
            created_at=self.created_at,
            updated_at=self.updated_at or self.created_at,
        )


class ProfileRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    department: str = ""
    phone: str | None = None
    timezone: str | None = None
    is_active: bool = Field(True, validation_alias=AliasChoices("is_active", "isActive"))
    created_at: dt.datetime | None = Field(None, validation_alias=AliasChoices("created_at", "createdAt"))
    updated_at: dt.datetime | None = Field(None, validation_alias=AliasChoices("updated_at", "updatedAt"))

    @field_validator("id", "name", "department", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("phone", "timezone", "created_at", "updated_at", mode="before")
    @classmethod
    def blank_is_missing(cls, v: Any) -> Any:
        return _blank_to_none(v)

    def to_user(self) -> User:
        return User(
            id=self.id,
            name=self.name,
            email=self.email,
            department=self.department,
            phone=self.phone,
            timezone=self.timezone,
            is_active=self.is_active,
            created_at=self.created_at,
            updated_at=self.updated_at or self.created_at,
        )


def _validate(model: Type[M], data: Any) -> M:
    """Runs pydantic validation and reports the first problem as EntryValidationError."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        err = e.errors()[0]
        field = str(err["loc"][0]) if err["loc"] else ""
        # aliases report the key that was tried; map v1 names back
        field = {"startTime": "start_time", "userId": "user_id"}.get(field, field)
        raise EntryValidationError(_FIELD_MESSAGES.get(field, f"Campo inválido: {field}")) from e


def validate_entry_fields(entry_date: Any, start_time: Any, minutes: Any) -> tuple[str, str, int]:
    """Normalized (ISO date, zero-padded HH:MM, int minutes) or EntryValidationError."""
    f = _validate(EntryFields, {"date": entry_date, "start_time": start_time, "minutes": minutes})
    return f.date.isoformat(), f.start_time, f.minutes


def entry_from_record(record: Mapping[str, Any]) -> TimeEntry:
    """Validates a raw entry record of either schema version."""
    return _validate(TimeEntryRecord, dict(record)).to_entry()


def user_from_record(record: Mapping[str, Any]) -> User:
    return _validate(ProfileRecord, dict(record)).to_user()


def profile_ids_for_email(records: Iterable[Mapping[str, Any]], email: str) -> set[str]:
    """
    Ids of exported profiles registered with `email`. Used to pick, from a
    local-storage export, only the entries that belonged to the importing user.
    Invalid profiles are skipped.
    """
    email = email.strip().lower()
    ids = set()
    for rec in records:
        try:
            user = user_from_record(rec)
        except EntryValidationError:
            continue
        if user.email == email:
            ids.add(user.id)
    return ids
