#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
End-to-end smoke test against a running server

POST 範例訊息到 /api/test-webhook，確認回傳 ok 與 reply。
加上 --signed 時，另外送一筆帶簽章的 LINE webhook 到 /webhook/line
（需設定 LINE_CHANNEL_SECRET；LINE 回覆會因假 replyToken 失敗，但 webhook 應回 ok）。

使用方式：
    python api/webhook.py &
    python scripts/e2e_webhook.py [--base-url http://127.0.0.1:5000] [--signed]
"""

import argparse
import base64
import hashlib
import hmac
import json
import sys
from pathlib import Path

import requests

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from app.config import LINE_CHANNEL_SECRET


def generate_signature(body: str, channel_secret: str) -> str:
    """Sign a body the way LINE Platform does (sender side)."""
    digest = hmac.new(channel_secret.encode('utf-8'), body.encode('utf-8'), hashlib.sha256).digest()
    return base64.b64encode(digest).decode('utf-8')


# 測試案例：(訊息, 標籤)
TEST_CASES = [
    ("奶茶 50", "記帳"),
    ("嗨", "招呼"),
]


def run_test_webhook(base_url: str) -> bool:
    for text, label in TEST_CASES:
        response = requests.post(f"{base_url}/api/test-webhook", json={"text": text}, timeout=30)
        data = response.json()
        if not data.get("ok") or not isinstance(data.get("reply"), str) or not data["reply"]:
            print(f"E2E 失敗 [{label}] \"{text}\": {data}")
            return False
        print(f"E2E 通過 [{label}] \"{text}\" → {data['reply'][:50]}")
    return True


def run_signed_webhook(base_url: str) -> bool:
    if not LINE_CHANNEL_SECRET:
        print("LINE_CHANNEL_SECRET 未設定，略過簽章測試")
        return False

    payload = {
        "events": [
            {
                "type": "message",
                "replyToken": "e2e-dummy-token",
                "message": {"type": "text", "text": TEST_CASES[0][0]},
            }
        ]
    }
    # Signature must be computed over exactly the bytes sent
    body = json.dumps(payload, separators=(',', ':'), ensure_ascii=False)
    headers = {
        "Content-Type": "application/json",
        "X-Line-Signature": generate_signature(body, LINE_CHANNEL_SECRET),
    }
    response = requests.post(f"{base_url}/webhook/line", data=body.encode('utf-8'), headers=headers, timeout=30)
    if response.status_code != 200 or not response.json().get("ok"):
        print(f"E2E 失敗 [簽章 webhook]: {response.status_code} {response.text}")
        return False
    print("E2E 通過 [簽章 webhook]")
    return True


def main() -> int:
    parser = argparse.ArgumentParser(description="Smoke test the bookkeeping webhook")
    parser.add_argument("--base-url", default="http://127.0.0.1:5000")
    parser.add_argument("--signed", action="store_true", help="also send a signed LINE delivery")
    args = parser.parse_args()

    base_url = args.base_url.rstrip("/")
    try:
        requests.get(f"{base_url}/health", timeout=5).raise_for_status()
    except requests.RequestException as e:
        print(f"Server not reachable at {base_url}: {e}")
        return 1

    ok = run_test_webhook(base_url)
    if ok and args.signed:
        ok = run_signed_webhook(base_url)
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
