from __future__ import annotations

import csv
import io

import pytest
from sqlalchemy import Engine, text

from conftest import seed_users
from models.records import UserRecord
from services.users import UserExportError, UserExportService, iter_csv_lines


def test_fetch_users_orders_by_id(engine: Engine) -> None:
    seed_users(
        engine,
        [
            {"id": 2, "name": "B", "email": "b@x"},
            {"id": 1, "name": "A", "email": "a@x"},
        ],
    )

    records = UserExportService(engine).fetch_users()

    assert records == [UserRecord(1, "A", "a@x"), UserRecord(2, "B", "b@x")]


def test_export_json_on_empty_table_is_empty(engine: Engine) -> None:
    assert UserExportService(engine).export_json() == []


def test_export_csv_has_header_and_rows(engine: Engine) -> None:
    seed_users(engine, [{"id": 1, "name": "Smith, Jane", "email": "jane@x"}])

    content = UserExportService(engine).export_csv()

    rows = list(csv.reader(io.StringIO(content)))
    assert rows == [["ID", "Name", "Email"], ["1", "Smith, Jane", "jane@x"]]


def test_iter_csv_lines_yields_one_line_per_record() -> None:
    lines = list(iter_csv_lines([UserRecord(1, "A", "a@x"), UserRecord(2, "B", "b@x")]))

    assert lines == ["ID,Name,Email\n", "1,A,a@x\n", "2,B,b@x\n"]


def test_query_failure_names_the_stage(engine: Engine) -> None:
    with engine.begin() as connection:
        connection.execute(text("DROP TABLE users"))

    with pytest.raises(UserExportError, match="Error querying the database"):
        UserExportService(engine).fetch_users()
