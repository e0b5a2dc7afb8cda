# -*- coding: utf-8 -*-
"""
Deterministic entry parser

Used when no Gemini key is configured. Grammar (whitespace separated):

    [YYYY-MM-DD] 類別 金額 [備註...]

類別 must be exactly one of the allowed categories. Any mismatch returns
None: "no match" is a normal outcome, not an error.

Usage:
    from app.parser import parse_entry
    parsed = parse_entry("餐飲 120 午餐")
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Optional

from app.shared.category_resolver import allowed_categories, is_allowed_category

_DATE_TOKEN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class ParsedEntry:
    """Parser output; date is None when the message did not give one."""

    category: str
    amount: float
    date: Optional[str] = None
    memo: Optional[str] = None


def _parse_amount(token: str) -> Optional[float]:
    try:
        amount = float(token)
    except ValueError:
        return None
    if not math.isfinite(amount):
        return None
    return amount


def parse_entry(text: str) -> Optional[ParsedEntry]:
    """
    解析「類別 金額 [備註]」格式。

    Examples:
        >>> parse_entry("餐飲 120 午餐")
        ParsedEntry(category='餐飲', amount=120.0, date=None, memo='午餐')
        >>> parse_entry("2025-01-02 交通 30")
        ParsedEntry(category='交通', amount=30.0, date='2025-01-02', memo=None)
        >>> parse_entry("奶茶 50") is None
        True
    """
    parts = (text or "").split()
    if len(parts) < 2:
        return None

    i = 0
    date = None
    if _DATE_TOKEN.match(parts[0]):
        date = parts[0]
        i = 1

    # need category and amount after the optional date
    if i >= len(parts) - 1:
        return None

    category = parts[i]
    if not is_allowed_category(category):
        return None

    amount = _parse_amount(parts[i + 1])
    if amount is None:
        return None

    memo = " ".join(parts[i + 2:]) or None
    return ParsedEntry(category=category, amount=amount, date=date, memo=memo)


def format_hint() -> str:
    """Reply sent when a message does not match the grammar."""
    return (
        "格式：類別 金額 [備註]\n"
        f"類別可填：{'、'.join(allowed_categories())}\n"
        "例：餐飲 120 午餐"
    )


__all__ = [
    "ParsedEntry",
    "parse_entry",
    "format_hint",
]
