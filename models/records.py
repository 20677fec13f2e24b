"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class DeviceInteraction:
    """One persisted row: a single device seen in a submission."""

    timestamp: datetime
    latitude: float
    longitude: float
    device_id: int
    device_name: str


@dataclass(slots=True)
class UserRecord:
    """A row of the pre-existing ``users`` table."""

    id: int
    name: str
    email: str
