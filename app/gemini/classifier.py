# -*- coding: utf-8 -*-
"""
Gemini 意圖判斷模組

此模組負責：
1. 呼叫 Gemini generateContent 分析使用者訊息
2. 判斷意圖（記帳 vs 其他）
3. 從回傳文字擷取 JSON（三層 fallback）並驗證

classify() 永遠回傳 ClassificationResult，不往外丟例外；
連線或解析失敗時回傳帶有診斷訊息的 OtherResult。
"""

import json
import logging
from typing import Optional
from urllib.parse import quote

import requests

from app.config import GEMINI_BASE_URL, GEMINI_MODEL, GEMINI_TIMEOUT
from app.gemini.extract import extract_candidate, has_parts, iter_part_texts
from app.gemini.prompts import build_user_content
from app.gemini.validator import validate_result
from app.records import ClassificationResult, OtherResult
from app.schemas import build_response_schema

logger = logging.getLogger(__name__)

# Diagnostic replies; the markers tell "never replied" from "replied badly"
TIMEOUT_REPLY = "[錯誤] Gemini 逾時，請再試一次"
CONNECTION_ERROR_REPLY = "[錯誤] Gemini 連線失敗: {error}"
HTTP_ERROR_REPLY = "[除錯] Gemini HTTP {status}"
NOT_JSON_REPLY = "[除錯] Gemini 回傳非 JSON"
EMPTY_REPLY = "[除錯] Gemini 空回傳"
UNPARSEABLE_REPLY = "[除錯] Gemini 回傳無法解析為 JSON"


def build_request_url(api_key: str, model: str = GEMINI_MODEL, base_url: str = GEMINI_BASE_URL) -> str:
    return f"{base_url.rstrip('/')}/models/{model}:generateContent?key={quote(api_key, safe='')}"


def build_payload(user_message: str, today: str) -> dict:
    return {
        "contents": [
            {"role": "user", "parts": [{"text": build_user_content(today, user_message)}]},
        ],
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseSchema": build_response_schema(),
        },
    }


def classify(
    api_key: str,
    user_message: str,
    today: str,
    *,
    model: str = GEMINI_MODEL,
    base_url: str = GEMINI_BASE_URL,
    timeout: Optional[float] = GEMINI_TIMEOUT,
) -> ClassificationResult:
    """
    Classify a user message with Gemini.

    Args:
        api_key: Gemini API key
        user_message: Raw text from LINE
        today: Default date (YYYY-MM-DD) for entries without one

    Returns:
        ClassificationResult: BookkeepingResult or OtherResult (never raises)
    """
    url = build_request_url(api_key, model=model, base_url=base_url)
    payload = build_payload(user_message, today)

    try:
        response = requests.post(
            url,
            json=payload,
            headers={"Content-Type": "application/json"},
            timeout=timeout,
        )
    except requests.Timeout:
        logger.error(f"Gemini request timeout after {timeout}s")
        return OtherResult(reply=TIMEOUT_REPLY)
    except requests.RequestException as e:
        logger.error(f"Gemini request failed: {e}")
        return OtherResult(reply=CONNECTION_ERROR_REPLY.format(error=e))

    raw = response.text or ""
    if not response.ok:
        logger.error(f"Gemini API error {response.status_code}: {raw[:500]}")
        return OtherResult(reply=HTTP_ERROR_REPLY.format(status=response.status_code))

    try:
        envelope = json.loads(raw)
    except ValueError:
        logger.error(f"Gemini response body not JSON: {raw[:300]}")
        return OtherResult(reply=NOT_JSON_REPLY)

    if not has_parts(envelope):
        logger.warning(f"Gemini returned no parts: {json.dumps(envelope, ensure_ascii=False)[:400]}")
        return OtherResult(reply=EMPTY_REPLY)

    texts = iter_part_texts(envelope)
    for text in texts:
        candidate = extract_candidate(text)
        if candidate is not None:
            result = validate_result(candidate, today=today)
            logger.info(f"Gemini parsed {result.intent}: {result.reply[:80]}")
            return result

    for i, text in enumerate(texts):
        logger.error(f"Gemini part {i} text: {text[:200]}")
    return OtherResult(reply=UNPARSEABLE_REPLY)
