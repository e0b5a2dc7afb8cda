# -*- coding: utf-8 -*-
"""
Validation for classification results.

Single normalization point: whatever the source (Gemini JSON, parser,
an earlier result), nothing with a bad category or a non-positive amount
leaves here as a BookkeepingResult.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Optional, Union

from app.records import (
    DEFAULT_REPLY,
    BookkeepingResult,
    ClassificationResult,
    Entry,
    OtherResult,
    format_recorded_message,
    truncate_memo,
)
from app.shared.category_resolver import is_allowed_category

logger = logging.getLogger(__name__)

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _coerce_amount(value: object) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(amount):
        return None
    return amount


def _reply_or_default(reply: object) -> str:
    if isinstance(reply, str) and reply.strip():
        return reply.strip()
    return DEFAULT_REPLY


def _as_candidate(candidate: Union[dict, ClassificationResult]) -> dict:
    if isinstance(candidate, BookkeepingResult):
        return {
            "intent": "bookkeeping",
            "entry": candidate.entry.to_dict(),
            "reply": candidate.reply,
        }
    if isinstance(candidate, OtherResult):
        return {"intent": "other", "reply": candidate.reply}
    if isinstance(candidate, dict):
        return candidate
    return {}


def _build_entry(raw_entry: object, today: str) -> Optional[Entry]:
    if not isinstance(raw_entry, dict):
        return None

    category = raw_entry.get("category")
    if not is_allowed_category(category):
        logger.warning(f"Rejected category: {category!r}")
        return None

    amount = _coerce_amount(raw_entry.get("amount"))
    if amount is None or amount <= 0:
        logger.warning(f"Rejected amount: {raw_entry.get('amount')!r}")
        return None

    date = raw_entry.get("date")
    if not isinstance(date, str) or not _ISO_DATE.match(date.strip()):
        date = today
    memo = raw_entry.get("memo")
    memo = truncate_memo(memo if isinstance(memo, str) else (None if memo is None else str(memo)))

    return Entry(date=date.strip(), category=category, amount=amount, memo=memo)


def validate_result(candidate: Union[dict, ClassificationResult], today: str) -> ClassificationResult:
    """
    Normalize a candidate into a ClassificationResult. Never raises.

    Args:
        candidate: Raw dict from the model or an existing result
        today: Default date (YYYY-MM-DD) for entries without one, computed by
            the caller in the configured timezone

    Returns:
        BookkeepingResult if intent/category/amount are valid, else OtherResult
    """
    data = _as_candidate(candidate)
    intent = data.get("intent")
    reply = data.get("reply")

    if intent == "bookkeeping":
        entry = _build_entry(data.get("entry"), today)
        if entry is not None:
            if isinstance(reply, str) and reply.strip():
                return BookkeepingResult(entry=entry, reply=reply.strip())
            return BookkeepingResult(entry=entry, reply=format_recorded_message(entry))

    if intent != "other" or not isinstance(reply, str):
        logger.info(f"Coercing {intent!r} candidate to other")
    return OtherResult(reply=_reply_or_default(reply))
