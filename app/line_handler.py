# -*- coding: utf-8 -*-
"""
LINE Message Handler Module

Dispatches the events of one webhook delivery:

    received -> classifying -> (persisted | skipped) -> replying -> done

Each event runs inside its own try block; a failing event gets a generic
error reply and the remaining events are still processed.
"""

import logging
import traceback
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Literal, Optional
from zoneinfo import ZoneInfo

from app.config import Settings
from app.gemini.classifier import classify
from app.gemini.validator import validate_result
from app.line.events import InboundEvent
from app.line.reply import LineReplier
from app.parser import format_hint, parse_entry
from app.records import BookkeepingResult, ClassificationResult, OtherResult
from app.services.audit_log import NullAuditLog
from app.services.entry_store import EntryStore

logger = logging.getLogger(__name__)

ERROR_REPLY = "系統處理訊息時發生錯誤，請重試。"


@dataclass
class DispatchOutcome:
    """What happened to one event (returned for diagnostics and tests)."""

    state: Literal["persisted", "skipped", "errored"]
    reply_text: str
    replied: bool
    entry_id: Optional[int] = None


def today_in(timezone: str) -> str:
    return datetime.now(ZoneInfo(timezone)).strftime("%Y-%m-%d")


def parse_with_grammar(text: str, today: str) -> ClassificationResult:
    """Deterministic path used when no Gemini key is configured."""
    parsed = parse_entry(text)
    if parsed is None or parsed.amount <= 0:
        return OtherResult(reply=format_hint())
    return validate_result(
        {
            "intent": "bookkeeping",
            "entry": {
                "date": parsed.date or today,
                "category": parsed.category,
                "amount": parsed.amount,
                "memo": parsed.memo,
            },
            "reply": "",
        },
        today=today,
    )


def interpret_message(text: str, settings: Settings, today: str) -> ClassificationResult:
    """Gemini when a key is configured, otherwise the grammar parser."""
    if settings.gemini_api_key:
        return classify(
            settings.gemini_api_key,
            text,
            today,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout=settings.gemini_timeout,
        )
    return parse_with_grammar(text, today)


def handle_text_event(
    event: InboundEvent,
    *,
    store: EntryStore,
    replier: LineReplier,
    settings: Settings,
    today: str,
    audit=None,
) -> DispatchOutcome:
    """
    Handle one text message event.

    Flow:
    1. Classify (Gemini or grammar parser)
    2. bookkeeping -> insert one entry; other -> no write
    3. Reply once with the chosen text (failure is logged, not retried)
    """
    audit = audit or NullAuditLog()
    text = event.message_text.strip()
    source = "gemini" if settings.gemini_api_key else "line"

    try:
        result = interpret_message(text, settings, today)
        audit.append(source, f"classified: {result.intent}", {"text": text, "reply": result.reply})

        entry_id = None
        if isinstance(result, BookkeepingResult):
            entry_id = store.add_entry(result.entry)
            state = "persisted"
        elif isinstance(result, OtherResult):
            state = "skipped"
        else:
            raise TypeError(f"Unknown classification result: {type(result).__name__}")

        reply_text = result.reply

    except Exception as e:
        logger.error(f"Error handling message: {e}")
        logger.error(f"Traceback: {traceback.format_exc()}")
        audit.append("error", f"event failed: {e}", {"text": text, "traceback": traceback.format_exc()})
        state = "errored"
        entry_id = None
        reply_text = ERROR_REPLY

    logger.info(f"Sending reply to LINE: {reply_text[:100]}")
    replied = replier.reply_text(event.reply_token, reply_text)
    if replied:
        audit.append("line", "replied", {"reply": reply_text[:200]})
    else:
        audit.append("error", "reply failed", {"reply": reply_text[:200]})

    return DispatchOutcome(state=state, reply_text=reply_text, replied=replied, entry_id=entry_id)


def handle_events(
    events: Iterable[InboundEvent],
    *,
    store: EntryStore,
    replier: LineReplier,
    settings: Settings,
    audit=None,
    today: Optional[str] = None,
) -> List[DispatchOutcome]:
    """Process events in order; non text-message events are dropped silently."""
    today = today or today_in(settings.timezone)
    outcomes = []
    for event in events:
        if not event.is_text_message:
            continue
        outcomes.append(
            handle_text_event(
                event,
                store=store,
                replier=replier,
                settings=settings,
                today=today,
                audit=audit,
            )
        )
    return outcomes
