# -*- coding: utf-8 -*-
"""
Audit Log Module

Best-effort append of pipeline milestones to the logs table.
append() never raises: storage problems only reach the python logger.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import insert, select
from sqlalchemy.engine import Engine

from app.services.database import logs_table, row_to_dict

logger = logging.getLogger(__name__)

LEVELS = ("webhook", "line", "gemini", "error")
META_MAX_LENGTH = 1000


def format_meta(meta: Any) -> str:
    """Serialize meta to text, cut to META_MAX_LENGTH."""
    if meta is None:
        return ""
    if not isinstance(meta, str):
        meta = json.dumps(meta, ensure_ascii=False, default=str)
    return meta[:META_MAX_LENGTH]


class NullAuditLog:
    """Used when no storage is configured; keeps call sites unconditional."""

    def append(self, level: str, message: str, meta: Any = None) -> None:
        logger.debug(f"[audit:{level}] {message}")

    def recent(self, limit: int = 50) -> List[Dict[str, Any]]:
        return []


class AuditLog(NullAuditLog):
    """Writes audit records to the logs table."""

    def __init__(self, engine: Optional[Engine]):
        self.engine = engine

    def append(self, level: str, message: str, meta: Any = None) -> None:
        try:
            if level not in LEVELS:
                logger.warning(f"Unknown audit level {level!r}")
            with self.engine.begin() as conn:
                conn.execute(
                    insert(logs_table).values(
                        level=level,
                        message=message,
                        meta=format_meta(meta),
                    )
                )
        except Exception as e:
            logger.error(f"[appendLog] {e}")

    def recent(self, limit: int = 50) -> List[Dict[str, Any]]:
        """Most recent records first (raises on storage errors)."""
        stmt = select(logs_table).order_by(logs_table.c.id.desc()).limit(limit)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [row_to_dict(row) for row in rows]
