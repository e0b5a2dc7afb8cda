# -*- coding: utf-8 -*-
"""
Inbound LINE webhook events

Decodes the (already signature-checked) webhook body into InboundEvent
objects. Only the fields the dispatcher needs are kept.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InboundEvent:
    """One event of a webhook delivery; never persisted."""

    type: str
    reply_token: Optional[str] = None
    message_type: Optional[str] = None
    message_text: str = ""

    @property
    def is_text_message(self) -> bool:
        """Only text messages with a reply token are processed."""
        return (
            self.type == "message"
            and self.message_type == "text"
            and bool(self.reply_token)
        )

    @classmethod
    def from_dict(cls, data: dict) -> "InboundEvent":
        message = data.get("message")
        if not isinstance(message, dict):
            message = {}
        text = message.get("text")
        return cls(
            type=str(data.get("type") or ""),
            reply_token=data.get("replyToken") or None,
            message_type=message.get("type"),
            message_text=text if isinstance(text, str) else "",
        )


def is_verify_probe(raw_body: str) -> bool:
    """
    True when the body is the LINE console "Verify" probe: {"events": []}.

    Non-JSON bodies are not probes; they continue to signature checking.
    """
    try:
        probe = json.loads(raw_body)
    except ValueError:
        return False
    return (
        isinstance(probe, dict)
        and isinstance(probe.get("events"), list)
        and len(probe["events"]) == 0
    )


def decode_events(body: Any) -> List[InboundEvent]:
    """Decode body["events"] keeping the original order."""
    if not isinstance(body, dict):
        return []
    raw_events = body.get("events") or []
    if not isinstance(raw_events, list):
        return []

    events = []
    for raw in raw_events:
        if not isinstance(raw, dict):
            logger.warning(f"Skipping malformed event: {str(raw)[:100]}")
            continue
        events.append(InboundEvent.from_dict(raw))
    return events
