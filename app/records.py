# -*- coding: utf-8 -*-
"""
Bookkeeping record and classification result types.

ClassificationResult is a closed union of two variants:

- BookkeepingResult: an Entry to persist plus the reply for the user
- OtherResult: only a reply (greeting, question, failure diagnostics)

Consumers match on the concrete class; there is no optional-field form.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

# Memo is free text; cut before storage/logging
MEMO_MAX_LENGTH = 200

# Neutral acknowledgement when nothing better is available
DEFAULT_REPLY = "收到，有需要記帳跟我說～"


@dataclass(frozen=True)
class Entry:
    """One persisted bookkeeping record."""

    date: str                       # YYYY-MM-DD
    category: str                   # one of allowed_categories()
    amount: float                   # > 0
    memo: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "category": self.category,
            "amount": self.amount,
            "memo": self.memo,
        }


@dataclass(frozen=True)
class BookkeepingResult:
    entry: Entry
    reply: str
    intent: str = "bookkeeping"


@dataclass(frozen=True)
class OtherResult:
    reply: str
    intent: str = "other"


ClassificationResult = Union[BookkeepingResult, OtherResult]


def truncate_memo(memo: Optional[str]) -> Optional[str]:
    if memo is None:
        return None
    memo = memo.strip()
    if not memo:
        return None
    return memo[:MEMO_MAX_LENGTH]


def format_amount(amount: float) -> str:
    """50.0 -> '50', 12.5 -> '12.5'"""
    if float(amount).is_integer():
        return str(int(amount))
    return f"{amount:g}"


def format_recorded_message(entry: Entry) -> str:
    """Template confirmation used when no model-written reply exists."""
    message = f"已記一筆：{entry.date} {entry.category} {format_amount(entry.amount)} 元"
    if entry.memo:
        message += f" {entry.memo}"
    return message
