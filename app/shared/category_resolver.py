# -*- coding: utf-8 -*-
"""
Category list utilities.

The bot records every entry under one of a fixed, closed set of categories.
The list and the phrase -> category hints used in the Gemini prompt are
loaded from app/config/categories.yaml.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

import yaml

# Used when the YAML file is missing or empty
DEFAULT_CATEGORIES = ("餐飲", "交通", "日用品", "娛樂", "醫療", "教育", "其他")
DEFAULT_FALLBACK = "其他"


@lru_cache(maxsize=1)
def _load_config_from_yaml() -> dict:
    """Load full config from YAML file."""
    config_path = Path(__file__).resolve().parents[1] / "config" / "categories.yaml"
    if not config_path.exists():
        return {}

    with open(config_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


@lru_cache(maxsize=1)
def allowed_categories() -> tuple[str, ...]:
    data = _load_config_from_yaml()
    categories = data.get("categories") if isinstance(data, dict) else None
    if not categories:
        return DEFAULT_CATEGORIES
    return tuple(str(c).strip() for c in categories if str(c).strip())


def is_allowed_category(category: object) -> bool:
    """Exact (case-sensitive) membership test against the category list."""
    return isinstance(category, str) and category in allowed_categories()


def fallback_category() -> str:
    data = _load_config_from_yaml()
    fallback = data.get("fallback") if isinstance(data, dict) else None
    if fallback in allowed_categories():
        return fallback
    return DEFAULT_FALLBACK


def category_keywords() -> dict[str, list[str]]:
    """Phrase hints per category, only for categories still in the list."""
    data = _load_config_from_yaml()
    keywords = data.get("keywords") if isinstance(data, dict) else None
    if not isinstance(keywords, dict):
        return {}
    categories = allowed_categories()
    return {
        str(category): [str(k) for k in (words or [])]
        for category, words in keywords.items()
        if category in categories
    }


def get_category_mapping_description() -> str:
    """
    Render the keyword hints as one line, e.g.

        奶茶/飲料/咖啡→餐飲；買書/書籍→教育；無法歸類→其他
    """
    parts = [
        f"{'/'.join(words)}→{category}"
        for category, words in category_keywords().items()
        if words
    ]
    parts.append(f"無法歸類→{fallback_category()}")
    return "；".join(parts)
