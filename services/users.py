"""Export of the ``users`` table as JSON or CSV."""

from __future__ import annotations

import csv
import io
import logging
from functools import lru_cache
from typing import Iterable, Iterator, List

from sqlalchemy import Engine, select
from sqlalchemy.exc import SQLAlchemyError

from app.schemas import UserOut
from datastore.database import build_default_engine, open_connection
from datastore.tables import users
from models.records import UserRecord

logger = logging.getLogger(__name__)

CSV_HEADER = ("ID", "Name", "Email")
CSV_FILENAME = "users.csv"


class UserExportError(RuntimeError):
    """A stage of the users export failed; the message names the stage."""


def iter_csv_lines(records: Iterable[UserRecord]) -> Iterator[str]:
    """Yield the CSV export one line at a time, header first."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")

    def _flush() -> str:
        line = buffer.getvalue()
        buffer.seek(0)
        buffer.truncate(0)
        return line

    writer.writerow(CSV_HEADER)
    yield _flush()
    for record in records:
        writer.writerow((record.id, record.name, record.email))
        yield _flush()


class UserExportService:

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def fetch_users(self) -> List[UserRecord]:
        """Read every user ordered by id.

        Raises :class:`datastore.database.StorageConnectionError` when the
        database is unreachable and :class:`UserExportError` when the query fails.
        """
        query = select(users.c.id, users.c.name, users.c.email).order_by(users.c.id)
        with open_connection(self.engine) as connection:
            try:
                rows = connection.execute(query).all()
            except SQLAlchemyError as exc:
                raise UserExportError("Error querying the database") from exc
        records = [UserRecord(id=row.id, name=row.name, email=row.email) for row in rows]
        logger.info("Fetched users for export", extra={"row_count": len(records)})
        return records

    def export_json(self) -> list[UserOut]:
        return [
            UserOut(id=record.id, name=record.name, email=record.email)
            for record in self.fetch_users()
        ]

    def export_csv(self) -> str:
        """Render the whole CSV export in memory for one request."""
        records = self.fetch_users()
        try:
            return "".join(iter_csv_lines(records))
        except csv.Error as exc:
            raise UserExportError("Error exporting users to CSV") from exc


@lru_cache
def build_default_user_export_service() -> UserExportService:
    return UserExportService(engine=build_default_engine())
