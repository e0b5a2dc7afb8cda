# -*- coding: utf-8 -*-
"""
Database Module

Table definitions (SQLAlchemy Core) and engine creation.
Tables are created if missing; no migrations are handled here.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    func,
)
from sqlalchemy.engine import Engine

from app.config import DATABASE_URL

logger = logging.getLogger(__name__)

metadata = MetaData()

entries_table = Table(
    "entries",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("date", String(10), nullable=False),
    Column("category", String(32), nullable=False),
    Column("amount", Float, nullable=False),
    Column("memo", Text, nullable=True),
    Column("created_at", DateTime, server_default=func.now()),
    Column("updated_at", DateTime, nullable=True),
)

logs_table = Table(
    "logs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("level", String(16), nullable=False),
    Column("message", Text, nullable=False),
    Column("meta", Text, nullable=True),
    Column("created_at", DateTime, server_default=func.now()),
)


def create_db_engine(database_url: Optional[str] = None) -> Engine:
    """Create engine and make sure the tables exist."""
    url = database_url or DATABASE_URL
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    engine = create_engine(url, connect_args=connect_args)
    metadata.create_all(engine)
    logger.info(f"Database ready: {engine.url.render_as_string(hide_password=True)}")
    return engine


def row_to_dict(row) -> Dict[str, Any]:
    """Result row -> JSON-friendly dict (datetimes as text)."""
    data = dict(row._mapping)
    for key in ("created_at", "updated_at"):
        if isinstance(data.get(key), datetime):
            data[key] = data[key].isoformat(sep=" ")
    return data
