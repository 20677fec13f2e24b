"""Validation, duplicate detection and persistence of device submissions."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional

from sqlalchemy import Connection, Engine, func, insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.schemas import Submission
from datastore.database import build_default_engine, open_connection
from datastore.tables import device_interactions
from models.records import DeviceInteraction
from settings import get_settings

logger = logging.getLogger(__name__)

_ZERO_TIMESTAMP = datetime(1, 1, 1, tzinfo=timezone.utc)


class SubmissionValidationError(ValueError):
    """A submission is structurally invalid."""


class DuplicateSubmissionError(ValueError):
    """A ``(timestamp, device_id)`` pair of the submission is already stored."""


class SubmissionWriteError(RuntimeError):
    """Inserting device interactions failed."""


def _is_unset_timestamp(value: Optional[datetime]) -> bool:
    return value is None or value == _ZERO_TIMESTAMP


def _is_unset_coordinate(value: Optional[float], allow_zero: bool) -> bool:
    if value is None:
        return True
    return value == 0 and not allow_zero


def validate_submission(submission: Submission, allow_zero_coordinates: bool = False) -> None:
    """Raise :class:`SubmissionValidationError` on the first structural problem.

    Checks run in order: timestamp, coordinates, devices. By default a
    coordinate of exactly ``0`` counts as missing, so a reading on the equator
    or the prime meridian is rejected unless ``allow_zero_coordinates`` is set.
    """
    if _is_unset_timestamp(submission.timestamp):
        raise SubmissionValidationError("Timestamp is required")

    location = submission.location
    if _is_unset_coordinate(location.latitude, allow_zero_coordinates) or _is_unset_coordinate(
        location.longitude, allow_zero_coordinates
    ):
        raise SubmissionValidationError("Latitude and Longitude are required")

    if not submission.devices:
        raise SubmissionValidationError("At least one device is required")


def normalize_timestamp(value: datetime) -> datetime:
    """Return the aware ``value`` as a naive UTC datetime, the form stored in the table."""
    try:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    except OverflowError as exc:
        raise SubmissionValidationError("Timestamp is out of range") from exc


def build_interactions(submission: Submission) -> list[DeviceInteraction]:
    """Expand a validated submission into one row per device, in list order."""
    if submission.timestamp is None:
        raise SubmissionValidationError("Timestamp is required")
    timestamp = normalize_timestamp(submission.timestamp)
    latitude = submission.location.latitude or 0.0
    longitude = submission.location.longitude or 0.0
    return [
        DeviceInteraction(
            timestamp=timestamp,
            latitude=latitude,
            longitude=longitude,
            device_id=device.id,
            device_name=device.name,
        )
        for device in submission.devices
    ]


def has_duplicate_timestamp(interactions: list[DeviceInteraction], connection: Connection) -> bool:
    """Return ``True`` if any interaction already exists or the lookup fails.

    Stops at the first device that is either a duplicate or whose lookup
    raises; later devices are not queried.
    """
    for interaction in interactions:
        query = (
            select(func.count())
            .select_from(device_interactions)
            .where(device_interactions.c.timestamp == interaction.timestamp)
            .where(device_interactions.c.device_id == interaction.device_id)
        )
        try:
            with connection.begin():
                count = connection.execute(query).scalar_one()
        except SQLAlchemyError:
            logger.exception(
                "Duplicate lookup failed; treating submission as anomalous",
                extra={"device_id": interaction.device_id, "reason": "query_failed"},
            )
            return True

        if count > 0:
            logger.info(
                "Duplicate device interaction detected",
                extra={
                    "device_id": interaction.device_id,
                    "timestamp": interaction.timestamp.isoformat(),
                    "reason": "duplicate",
                },
            )
            return True

    return False


def has_anomalies(interactions: list[DeviceInteraction], connection: Connection) -> bool:
    # Duplicate (timestamp, device_id) pairs are the only anomaly checked today.
    return has_duplicate_timestamp(interactions, connection)


def _insert_interaction(connection: Connection, interaction: DeviceInteraction) -> None:
    connection.execute(
        insert(device_interactions).values(
            timestamp=interaction.timestamp,
            latitude=interaction.latitude,
            longitude=interaction.longitude,
            device_id=interaction.device_id,
            device_name=interaction.device_name,
        )
    )


def insert_device_interactions(
    interactions: list[DeviceInteraction],
    connection: Connection,
    atomic: bool = True,
) -> int:
    """Insert one row per interaction and return the number of rows written.

    With ``atomic`` all rows share a single transaction, so a failure leaves
    nothing behind. Without it every row commits on its own and rows written
    before a failure stay persisted.
    """
    try:
        if atomic:
            with connection.begin():
                for interaction in interactions:
                    _insert_interaction(connection, interaction)
        else:
            for interaction in interactions:
                with connection.begin():
                    _insert_interaction(connection, interaction)
    except IntegrityError as exc:
        raise DuplicateSubmissionError("An anomaly was detected within the submission") from exc
    except SQLAlchemyError as exc:
        raise SubmissionWriteError("Error inserting data into the database") from exc
    return len(interactions)


class SubmissionService:
    """Validates, deduplicates and stores submissions using one connection per call."""

    def __init__(
        self,
        engine: Engine,
        atomic_writes: bool = True,
        allow_zero_coordinates: bool = False,
    ) -> None:
        self.engine = engine
        self.atomic_writes = atomic_writes
        self.allow_zero_coordinates = allow_zero_coordinates

    def submit(self, submission: Submission) -> int:
        """Persist ``submission`` and return the number of rows written.

        Raises:
        - :class:`SubmissionValidationError` for structurally invalid input
        - :class:`datastore.database.StorageConnectionError` if no connection can be opened
        - :class:`DuplicateSubmissionError` when an anomaly is detected
        - :class:`SubmissionWriteError` when the insert fails
        """
        validate_submission(submission, allow_zero_coordinates=self.allow_zero_coordinates)
        interactions = build_interactions(submission)

        with open_connection(self.engine) as connection:
            if has_anomalies(interactions, connection):
                raise DuplicateSubmissionError("An anomaly was detected within the submission")
            written = insert_device_interactions(
                interactions, connection, atomic=self.atomic_writes
            )

        logger.info(
            "Received submission: devices=%s",
            ", ".join(f"{i.device_id}:{i.device_name}" for i in interactions),
            extra={
                "timestamp": interactions[0].timestamp.isoformat(),
                "latitude": interactions[0].latitude,
                "longitude": interactions[0].longitude,
                "device_count": written,
            },
        )
        return written


@lru_cache
def build_default_submission_service() -> SubmissionService:
    """Factory that wires the submission service with the default engine."""
    settings = get_settings()
    return SubmissionService(
        engine=build_default_engine(),
        atomic_writes=settings.atomic_writes,
        allow_zero_coordinates=settings.allow_zero_coordinates,
    )
