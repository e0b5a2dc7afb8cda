# -*- coding: utf-8 -*-
"""
Entry Store Module

Parameterized insert/update/select on the entries table.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from app.records import Entry, truncate_memo
from app.services.database import entries_table, row_to_dict

logger = logging.getLogger(__name__)


class EntryStoreError(Exception):
    """Storage failure (wraps SQLAlchemyError)."""


class EntryStore:
    """
    Entries table access

    The dispatcher only calls add_entry(); list/update back the CRUD endpoints.
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    def add_entry(self, entry: Entry) -> int:
        """
        Insert one entry.

        Returns:
            int: New row id

        Raises:
            EntryStoreError: Insert failed
        """
        values = {
            "date": entry.date,
            "category": entry.category,
            "amount": entry.amount,
            "memo": truncate_memo(entry.memo),
        }
        try:
            with self.engine.begin() as conn:
                result = conn.execute(insert(entries_table).values(**values))
                entry_id = result.inserted_primary_key[0]
        except SQLAlchemyError as e:
            raise EntryStoreError(f"Failed to insert entry: {e}") from e

        logger.info(f"Inserted entry #{entry_id}: {entry.date} {entry.category} {entry.amount}")
        return entry_id

    def list_entries(self) -> List[Dict[str, Any]]:
        """All entries, newest first."""
        stmt = select(entries_table).order_by(
            entries_table.c.created_at.desc(), entries_table.c.id.desc()
        )
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt).fetchall()
        except SQLAlchemyError as e:
            raise EntryStoreError(f"Failed to list entries: {e}") from e
        return [row_to_dict(row) for row in rows]

    def get_entry(self, entry_id: int) -> Optional[Dict[str, Any]]:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(
                    select(entries_table).where(entries_table.c.id == entry_id)
                ).first()
        except SQLAlchemyError as e:
            raise EntryStoreError(f"Failed to get entry #{entry_id}: {e}") from e
        return row_to_dict(row) if row is not None else None

    def update_entry(self, entry_id: int, *, date: str, category: str, amount: float,
                     memo: Optional[str] = None) -> bool:
        """
        Overwrite all fields of one entry.

        Returns:
            bool: False if no row has this id
        """
        stmt = (
            update(entries_table)
            .where(entries_table.c.id == entry_id)
            .values(
                date=date,
                category=category,
                amount=amount,
                memo=truncate_memo(memo),
                updated_at=func.now(),
            )
        )
        try:
            with self.engine.begin() as conn:
                result = conn.execute(stmt)
        except SQLAlchemyError as e:
            raise EntryStoreError(f"Failed to update entry #{entry_id}: {e}") from e

        if result.rowcount == 0:
            logger.warning(f"Entry #{entry_id} not found for update")
            return False
        logger.info(f"Updated entry #{entry_id}")
        return True


class UnavailableEntryStore:
    """
    Stand-in used when the database cannot be reached.

    Every call raises EntryStoreError, so the failure surfaces inside the
    per-event error handling (and as a 500 on the CRUD endpoints) instead of
    before any event is processed.
    """

    def __init__(self, error: Exception):
        self.error = error

    def _fail(self, action: str):
        raise EntryStoreError(f"Database unavailable, cannot {action}: {self.error}") from self.error

    def add_entry(self, entry: Entry) -> int:
        self._fail("add entry")

    def list_entries(self) -> List[Dict[str, Any]]:
        self._fail("list entries")

    def get_entry(self, entry_id: int) -> Optional[Dict[str, Any]]:
        self._fail(f"get entry #{entry_id}")

    def update_entry(self, entry_id: int, **fields) -> bool:
        self._fail(f"update entry #{entry_id}")
