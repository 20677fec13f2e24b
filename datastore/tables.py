"""SQLAlchemy table metadata for the relational store."""

from __future__ import annotations

from sqlalchemy import (
    Column,
    DateTime,
    Engine,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    UniqueConstraint,
)
from sqlalchemy.dialects import mysql

metadata = MetaData()

device_interactions = Table(
    "device_interactions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("timestamp", DateTime().with_variant(mysql.DATETIME(fsp=6), "mysql"), nullable=False),
    Column("latitude", Float, nullable=False),
    Column("longitude", Float, nullable=False),
    Column("device_id", Integer, nullable=False),
    Column("device_name", String(255), nullable=False),
    UniqueConstraint("timestamp", "device_id", name="uq_device_interactions_timestamp_device"),
)

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False),
)


def create_schema(engine: Engine) -> None:
    """Create any missing tables. Existing tables are left untouched."""
    metadata.create_all(engine, checkfirst=True)
