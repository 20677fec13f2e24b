"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import AwareDatetime, BaseModel, Field, StrictInt, field_validator

_RFC3339_PATTERN = re.compile(
    r"^\d{4}-\d{2}-\d{2}[Tt]\d{2}:\d{2}:\d{2}(\.\d+)?([Zz]|[+-]\d{2}:\d{2})$"
)


class ExportFormat(str, Enum):
    """Output formats supported by the users export."""

    json = "json"
    csv = "csv"


class Device(BaseModel):
    """An IoT device observed at the submission location."""

    id: StrictInt = 0
    name: str = ""

    @field_validator("id", "name", mode="before")
    @classmethod
    def _null_as_zero_value(cls, value: Any, info) -> Any:
        if value is None:
            return 0 if info.field_name == "id" else ""
        return value


class Location(BaseModel):
    """Coordinates of a submission; ``None`` means the client left them out."""

    latitude: Optional[float] = None
    longitude: Optional[float] = None


class Submission(BaseModel):
    """Data submitted by clients to ``/submit-iot-data``.

    Every field has an "unset" default so that missing values reach the
    validator instead of failing at decode time. The timestamp must be an
    RFC 3339 string carrying a UTC offset.
    """

    timestamp: Optional[AwareDatetime] = None
    location: Location = Field(default_factory=Location)
    devices: List[Device] = Field(default_factory=list)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _require_rfc3339(cls, value: Any) -> Any:
        if value is None or isinstance(value, datetime):
            return value
        if not isinstance(value, str) or not _RFC3339_PATTERN.match(value):
            raise ValueError("timestamp must be an RFC 3339 date-time string")
        return value

    @field_validator("location", "devices", mode="before")
    @classmethod
    def _null_as_unset(cls, value, info):
        if value is None:
            return {} if info.field_name == "location" else []
        return value


class UserOut(BaseModel):
    """A single entry of the JSON users export."""

    id: int
    name: str
    email: str


class HelloItem(BaseModel):
    key: str
    value: str


class HelloResponse(BaseModel):
    message: str
    items: List[HelloItem] = Field(default_factory=list)
