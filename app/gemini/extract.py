# -*- coding: utf-8 -*-
"""
Text -> candidate extraction for Gemini output.

Models sometimes wrap the JSON in prose or a markdown fence even when asked
not to. Each tier below is a pure function `text -> dict | None`; they are
tried in order and the first candidate with a known intent wins.
"""

from __future__ import annotations

import json
import re
from typing import Callable, Iterable, Optional

KNOWN_INTENTS = ("bookkeeping", "other")

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)


def _load_candidate(raw: Optional[str]) -> Optional[dict]:
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except ValueError:
        return None
    if isinstance(parsed, dict) and parsed.get("intent") in KNOWN_INTENTS:
        return parsed
    return None


def parse_whole_text(text: str) -> Optional[dict]:
    return _load_candidate(text.strip())


def parse_fenced_block(text: str) -> Optional[dict]:
    match = _FENCE_PATTERN.fullmatch(text.strip())
    if not match:
        return None
    return _load_candidate(match.group(1).strip())


def parse_brace_span(text: str) -> Optional[dict]:
    start = text.find("{")
    end = text.rfind("}")
    if start < 0 or end <= start:
        return None
    return _load_candidate(text[start:end + 1])


EXTRACTION_TIERS: tuple[Callable[[str], Optional[dict]], ...] = (
    parse_whole_text,
    parse_fenced_block,
    parse_brace_span,
)


def extract_candidate(text: Optional[str], tiers: Iterable[Callable[[str], Optional[dict]]] = EXTRACTION_TIERS) -> Optional[dict]:
    """Return the first candidate any tier recognizes, or None."""
    if not isinstance(text, str) or not text.strip():
        return None
    for tier in tiers:
        candidate = tier(text)
        if candidate is not None:
            return candidate
    return None


def iter_part_texts(envelope: object) -> list[str]:
    """
    Text of every part of the first candidate.

    Non-text artifacts (thoughtSignature, thought parts) are skipped.
    """
    if not isinstance(envelope, dict):
        return []
    candidates = envelope.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return []
    first = candidates[0] if isinstance(candidates[0], dict) else {}
    content = first.get("content") if isinstance(first.get("content"), dict) else {}
    parts = content.get("parts")
    if not isinstance(parts, list):
        return []

    texts = []
    for part in parts:
        if not isinstance(part, dict) or part.get("thought") is True:
            continue
        text = part.get("text")
        if isinstance(text, str):
            texts.append(text)
    return texts


def has_parts(envelope: object) -> bool:
    try:
        parts = envelope["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return False
    return isinstance(parts, list) and len(parts) > 0
