"""
Pydantic models used across the backend.

These models provide validation at the FastAPI route boundary and are
reused in the service/repo layers. JSON uses camelCase (`displayName`,
`ownerId`) while Python code uses snake_case; `populate_by_name` lets
repositories build models from snake_case DB rows.

Guidelines:
- Input shapes (`RegisterIn`, `EventDraft`) carry no DB-generated fields.
- Records (`UserRecord`, `EventRecord`) mirror a stored row.
- Patches carry optional fields only; `changes()` returns what is set.
"""

import re
import secrets
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# 12 random bytes as hex, the shape of a Mongo ObjectId.
ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")


def new_id() -> str:
    return secrets.token_hex(12)


def to_utc(value: datetime) -> datetime:
    """Normalize to UTC. Naive datetimes are taken to be UTC already."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _present(values: Dict[str, Any]) -> Dict[str, Any]:
    # form fields arrive as "" when left blank; treat that as absent too
    return {k: v for k, v in values.items() if v is not None and v != ""}


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MessageOut(BaseModel):
    message: str


class TokenOut(BaseModel):
    token: str


# ---------------------------------------------------------------- users


class RegisterIn(CamelModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    display_name: str = Field(min_length=1)


class LoginIn(CamelModel):
    username: str
    password: str


class PasswordUpdateIn(CamelModel):
    current_password: str
    new_password: str = Field(min_length=1)


class UserOut(CamelModel):
    """Public view of an identity. Never carries the password hash."""

    id: str
    username: str
    display_name: str
    subtitle: str | None = None
    description: str | None = None
    profile_image: str | None = None


class UserRecord(UserOut):
    password_hash: str = Field(exclude=True)

    def public(self) -> UserOut:
        return UserOut.model_validate(self.model_dump())


class ProfilePatch(CamelModel):
    display_name: str | None = None
    subtitle: str | None = None
    description: str | None = None
    profile_image: str | None = None

    def changes(self) -> Dict[str, Any]:
        return _present(self.model_dump())


class ProfileUpdateOut(BaseModel):
    message: str
    user: UserOut


class TokenClaims(BaseModel):
    """Decoded session token payload."""

    sub: str
    username: str
    iat: int | None = None
    exp: int


# --------------------------------------------------------------- events


class EventStatus(str, Enum):
    UPCOMING = "Upcoming"
    ONGOING = "Ongoing"
    COMPLETED = "Completed"


class EventDraft(CamelModel):
    """Fields a caller supplies when creating an event."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, use_enum_values=True
    )

    name: str = Field(min_length=1)
    date: datetime
    location: str = Field(min_length=1)
    description: str = Field(min_length=1)
    status: EventStatus

    @field_validator("date")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return to_utc(v)


class EventRecord(EventDraft):
    id: str
    owner_id: str
    image: str | None = None


class EventPatch(CamelModel):
    """Partial update. `owner_id` is deliberately not patchable."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, use_enum_values=True
    )

    name: str | None = None
    date: datetime | None = None
    location: str | None = None
    description: str | None = None
    status: EventStatus | None = None
    image: str | None = None

    @field_validator("date")
    @classmethod
    def _utc(cls, v: datetime | None) -> datetime | None:
        return to_utc(v) if v is not None else None

    def changes(self) -> Dict[str, Any]:
        return _present(self.model_dump())


class QueryPlan(BaseModel):
    """Normalized listing request. Built by `QueryEngine.plan()` only."""

    model_config = ConfigDict(frozen=True)

    search: str | None = None
    status: str | None = None
    sort: str = "date"
    descending: bool = False
    page: int = 1
    limit: int = 10

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


class EventPage(CamelModel):
    total: int
    page: int
    limit: int
    items: List[EventRecord]


class StatusCount(CamelModel):
    status: str
    count: int


class Analytics(CamelModel):
    total_events: int
    events_by_status: List[StatusCount]
    next_event: EventRecord | None = None
