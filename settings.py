from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_DATABASE_URL_ENV = "DATABASE_URL"
_DB_DRIVER_ENV = "DB_DRIVER"
_DB_HOST_ENV = "DB_HOST"
_DB_PORT_ENV = "DB_PORT"
_DB_USER_ENV = "DB_USER"
_DB_PASSWORD_ENV = "DB_PASSWORD"
_DB_NAME_ENV = "DB_NAME"
_DB_CREATE_SCHEMA_ENV = "DB_CREATE_SCHEMA"
_ATOMIC_WRITES_ENV = "SUBMISSION_ATOMIC_WRITES"
_ALLOW_ZERO_COORDINATES_ENV = "ALLOW_ZERO_COORDINATES"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class DatabaseSettings:
    driver: str
    host: str
    port: int
    user: str
    password: str
    name: str
    url: Optional[str] = None
    create_schema: bool = False


@dataclass(frozen=True)
class Settings:
    database: DatabaseSettings
    atomic_writes: bool
    allow_zero_coordinates: bool
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_port(default: int) -> int:
    value = os.getenv(_DB_PORT_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if 0 < parsed < 65536 else default


def _read_bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in _TRUE_VALUES:
        return True
    if candidate in _FALSE_VALUES:
        return False
    return default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


def _read_database_settings() -> DatabaseSettings:
    # Passwords may legitimately be blank, so no fallback-on-empty here.
    password = os.getenv(_DB_PASSWORD_ENV, "")
    return DatabaseSettings(
        driver=_read_str_env(_DB_DRIVER_ENV, "mysql+pymysql"),
        host=_read_str_env(_DB_HOST_ENV, "127.0.0.1"),
        port=_read_port(3306),
        user=_read_str_env(_DB_USER_ENV, "root"),
        password=password,
        name=_read_str_env(_DB_NAME_ENV, "tech_test"),
        url=_read_optional_env(_DATABASE_URL_ENV, None),
        create_schema=_read_bool_env(_DB_CREATE_SCHEMA_ENV, False),
    )


@lru_cache
def get_settings() -> Settings:
    return Settings(
        database=_read_database_settings(),
        atomic_writes=_read_bool_env(_ATOMIC_WRITES_ENV, True),
        allow_zero_coordinates=_read_bool_env(_ALLOW_ZERO_COORDINATES_ENV, False),
        log_level=_read_log_level("INFO"),
    )
