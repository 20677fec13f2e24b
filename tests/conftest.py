from __future__ import annotations

from typing import Callable, Iterator

import pytest
from sqlalchemy import Engine, create_engine, event, func, insert, select
from sqlalchemy.exc import OperationalError

from datastore.tables import create_schema, device_interactions, users


@pytest.fixture()
def engine(tmp_path) -> Iterator[Engine]:
    engine = create_engine(f"sqlite:///{tmp_path / 'ingest.db'}")
    create_schema(engine)
    yield engine
    engine.dispose()


def count_interactions(engine: Engine) -> int:
    with engine.connect() as connection:
        return connection.execute(select(func.count()).select_from(device_interactions)).scalar_one()


def stored_device_ids(engine: Engine) -> list[int]:
    with engine.connect() as connection:
        rows = connection.execute(
            select(device_interactions.c.device_id).order_by(device_interactions.c.id)
        )
        return [row.device_id for row in rows]


def seed_users(engine: Engine, rows: list[dict]) -> None:
    with engine.begin() as connection:
        connection.execute(insert(users), rows)


def fail_nth_insert(engine: Engine, nth: int) -> None:
    """Make the ``nth`` INSERT issued through ``engine`` fail like a dropped write."""
    calls = {"count": 0}

    @event.listens_for(engine, "before_cursor_execute")
    def _maybe_fail(conn, cursor, statement, parameters, context, executemany):
        if not statement.lstrip().upper().startswith("INSERT"):
            return
        calls["count"] += 1
        if calls["count"] == nth:
            raise OperationalError(statement, parameters, Exception("disk I/O error"))


def record_statements(engine: Engine) -> list[str]:
    statements: list[str] = []

    @event.listens_for(engine, "before_cursor_execute")
    def _record(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    return statements


@pytest.fixture()
def submission_payload() -> Callable[..., dict]:
    def build(
        timestamp: str = "2024-01-01T12:00:00Z",
        latitude: float = 10.0,
        longitude: float = 20.0,
        devices: list[dict] | None = None,
    ) -> dict:
        return {
            "timestamp": timestamp,
            "location": {"latitude": latitude, "longitude": longitude},
            "devices": devices if devices is not None else [{"id": 1, "name": "Device1"}],
        }

    return build
