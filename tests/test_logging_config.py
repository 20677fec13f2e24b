from __future__ import annotations

import logging

import logging_config
from logging_config import ContextualFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="services.submission",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Received submission",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_appends_known_extras_in_order() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    line = formatter.format(_record(device_count=2, timestamp="2024-01-01T00:00:00", unrelated="x"))

    assert line == "Received submission | timestamp=2024-01-01T00:00:00 device_count=2"


def test_formatter_skips_missing_and_none_values() -> None:
    formatter = ContextualFormatter(fmt="%(message)s", extra_keys=["device_id", "reason"])

    assert formatter.format(_record(reason=None)) == "Received submission"


def test_configure_logging_keeps_sqlalchemy_quiet_below_debug(monkeypatch) -> None:
    monkeypatch.setattr(logging_config, "_configured", False)

    logging_config.configure_logging("INFO")

    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
    assert logging.getLogger().level == logging.INFO
