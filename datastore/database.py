from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import replace
from functools import lru_cache
from typing import Iterator, Optional

from sqlalchemy import Connection, Engine, create_engine
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import SQLAlchemyError

from datastore.tables import create_schema
from settings import DatabaseSettings, get_settings

logger = logging.getLogger(__name__)


class StorageConnectionError(RuntimeError):
    """Raised when a connection to the database cannot be opened."""


def build_url(config: DatabaseSettings) -> URL:
    if config.url:
        return make_url(config.url)
    return URL.create(
        drivername=config.driver,
        username=config.user or None,
        password=config.password or None,
        host=config.host,
        port=config.port,
        database=config.name,
    )


def build_engine(config: DatabaseSettings) -> Engine:
    """Create an engine for ``config`` and optionally create missing tables."""
    url = build_url(config)
    engine = create_engine(url, pool_pre_ping=True)
    if config.create_schema:
        create_schema(engine)
    return engine


@contextmanager
def open_connection(engine: Engine) -> Iterator[Connection]:
    """Check a connection out of the pool for the duration of one request.

    Failures to connect are raised as :class:`StorageConnectionError`; errors
    raised inside the ``with`` block propagate untouched. The connection is
    returned to the pool on every exit path.
    """
    try:
        connection = engine.connect()
    except SQLAlchemyError as exc:
        raise StorageConnectionError("Error connecting to the database") from exc
    try:
        yield connection
    finally:
        connection.close()


@lru_cache
def build_default_engine(url: Optional[str] = None) -> Engine:
    config = get_settings().database
    if url is not None:
        config = replace(config, url=url)
    engine = build_engine(config)
    logger.info("Database engine created for %s", engine.url.render_as_string(hide_password=True))
    return engine
