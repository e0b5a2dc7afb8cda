# -*- coding: utf-8 -*-
"""
End-to-end webhook tests (Flask test client, in-memory SQLite, LINE/Gemini mocked)
"""

import json
from dataclasses import replace
from unittest.mock import patch

import pytest
import requests
from sqlalchemy.exc import OperationalError

import api.webhook as webhook
from app.gemini.classifier import TIMEOUT_REPLY
from app.line_handler import ERROR_REPLY, today_in
from app.parser import format_hint
from tests.test_utils import TEST_SECRET, make_line_body, set_gemini_mock_json, signed_headers


@pytest.fixture
def client(mocker, engine, replier, parser_settings):
    mocker.patch("api.webhook.get_settings", return_value=parser_settings)
    mocker.patch("api.webhook.get_engine", return_value=engine)
    mocker.patch("api.webhook.get_replier", return_value=replier)
    webhook.app.config["TESTING"] = True
    with webhook.app.test_client() as client:
        yield client


def post_signed(client, body, secret=TEST_SECRET):
    return client.post("/webhook/line", data=body.encode("utf-8"), headers=signed_headers(body, secret))


class TestWebhookScenarios:

    def test_no_gemini_phrase_is_not_a_category(self, client, store, replier):
        """奶茶 50 without Gemini -> format hint, nothing stored"""
        response = post_signed(client, make_line_body("奶茶 50"))

        assert response.status_code == 200
        assert response.get_json() == {"ok": True}
        assert store.list_entries() == []
        replier.reply_text.assert_called_once_with("token-1", format_hint())

    @patch("app.gemini.classifier.requests.post")
    def test_gemini_bookkeeping(self, mock_post, mocker, client, store, replier, gemini_settings):
        """奶茶 50 with Gemini -> one 餐飲 entry dated today, model reply sent"""
        mocker.patch("api.webhook.get_settings", return_value=gemini_settings)
        set_gemini_mock_json(mock_post, {
            "intent": "bookkeeping",
            "entry": {"category": "餐飲", "amount": 50, "memo": "奶茶"},
            "reply": "好，奶茶 50 記好了～",
        })

        response = post_signed(client, make_line_body("奶茶 50"))

        assert response.get_json() == {"ok": True}
        rows = store.list_entries()
        assert len(rows) == 1
        assert (rows[0]["date"], rows[0]["category"], rows[0]["amount"]) == (
            today_in(gemini_settings.timezone), "餐飲", 50.0
        )
        replier.reply_text.assert_called_once_with("token-1", "好，奶茶 50 記好了～")

    def test_verify_probe_skips_signature(self, client, replier, mocker):
        verify = mocker.patch("api.webhook.verify_signature")

        response = client.post("/webhook/line", data='{"events":[]}', headers={"Content-Type": "application/json"})

        assert response.status_code == 200
        assert response.get_json() == {"ok": True}
        verify.assert_not_called()
        replier.reply_text.assert_not_called()

    def test_verify_probe_signed_when_bypass_disabled(self, client, mocker, parser_settings):
        mocker.patch("api.webhook.get_settings", return_value=replace(parser_settings, allow_unsigned_probe=False))

        unsigned = client.post("/webhook/line", data='{"events":[]}')
        signed = post_signed(client, '{"events":[]}')

        assert unsigned.status_code == 401
        assert signed.status_code == 200

    def test_tampered_body_rejected(self, client, store, audit, replier, mocker):
        decode = mocker.patch("api.webhook.decode_events")
        body = make_line_body("餐飲 50")
        headers = signed_headers(body, TEST_SECRET)

        response = client.post("/webhook/line", data=body.replace("50", "5000").encode("utf-8"), headers=headers)

        assert response.status_code == 401
        assert response.get_json() == {"error": "invalid signature"}
        decode.assert_not_called()
        replier.reply_text.assert_not_called()
        assert store.list_entries() == []
        assert audit.recent() == []

    @patch("app.gemini.classifier.requests.post")
    def test_gemini_timeout(self, mock_post, mocker, client, store, replier, gemini_settings):
        mocker.patch("api.webhook.get_settings", return_value=gemini_settings)
        mock_post.side_effect = requests.Timeout()
        add_entry = mocker.patch("app.services.entry_store.EntryStore.add_entry")

        response = post_signed(client, make_line_body("奶茶 50"))

        assert response.get_json() == {"ok": True}
        add_entry.assert_not_called()
        replier.reply_text.assert_called_once_with("token-1", TIMEOUT_REPLY)
        assert "逾時" in TIMEOUT_REPLY


class TestWebhookBoundary:

    def test_missing_signature(self, client):
        response = client.post("/webhook/line", data=make_line_body("餐飲 50"))
        assert response.status_code == 401
        assert response.get_json() == {"error": "missing signature or secret"}

    def test_missing_secret(self, client, mocker, parser_settings):
        mocker.patch("api.webhook.get_settings", return_value=replace(parser_settings, line_channel_secret=""))
        response = post_signed(client, make_line_body("餐飲 50"))
        assert response.status_code == 401

    def test_signed_non_json(self, client):
        response = post_signed(client, "not json")
        assert response.status_code == 400

    def test_vercel_path_alias(self, client, store):
        body = make_line_body("餐飲 50")
        response = client.post("/api/webhook", data=body.encode("utf-8"), headers=signed_headers(body, TEST_SECRET))
        assert response.get_json() == {"ok": True}
        assert len(store.list_entries()) == 1

    def test_multiple_events_one_failure(self, client, store, replier, mocker):
        from app.services.entry_store import EntryStoreError

        mocker.patch("app.services.entry_store.EntryStore.add_entry", side_effect=[EntryStoreError("boom"), 2])

        response = post_signed(client, make_line_body("餐飲 1", "交通 2"))

        assert response.get_json() == {"ok": True}
        assert replier.reply_text.call_count == 2
        assert replier.reply_text.call_args_list[0].args[1] == ERROR_REPLY
        assert replier.reply_text.call_args_list[1].args[1].startswith("已記一筆：")

    def test_database_down_still_replies(self, client, replier, mocker):
        mocker.patch("api.webhook.get_engine", side_effect=OperationalError("connect", {}, Exception("db down")))

        response = post_signed(client, make_line_body("嗨", "餐飲 50"))

        assert response.get_json() == {"ok": True}
        assert [c.args for c in replier.reply_text.call_args_list] == [
            ("token-1", format_hint()),
            ("token-2", ERROR_REPLY),
        ]

    def test_database_down_crud_returns_500(self, client, mocker):
        mocker.patch("api.webhook.get_engine", side_effect=OperationalError("connect", {}, Exception("db down")))
        response = client.get("/api/entries")
        assert response.status_code == 500
        assert response.get_json() == {"error": "failed to list entries"}

    def test_audit_trail(self, client, audit):
        post_signed(client, make_line_body("餐飲 50"))
        levels = [r["level"] for r in reversed(audit.recent())]
        assert levels == ["webhook", "line", "line"]


class TestDiagnosticEndpoints:

    def test_health(self, client):
        for path in ("/", "/health"):
            data = client.get(path).get_json()
            assert data["ok"] is True
            assert data["service"] == webhook.SERVICE_NAME

    def test_test_webhook_parser(self, client, store):
        data = client.post("/api/test-webhook", json={"text": "餐飲 120 午餐"}).get_json()
        assert data["ok"] is True
        assert data["intent"] == "bookkeeping"
        assert data["entry"]["amount"] == 120.0
        assert store.list_entries() == []

    def test_test_webhook_other(self, client):
        data = client.post("/api/test-webhook", json={"text": "嗨"}).get_json()
        assert data == {"ok": True, "intent": "other", "reply": format_hint()}

    def test_test_webhook_requires_text(self, client):
        assert client.post("/api/test-webhook", json={}).status_code == 400

    def test_logs(self, client, audit):
        for i in range(3):
            audit.append("line", f"m{i}")
        data = client.get("/api/logs?limit=2").get_json()
        assert [r["message"] for r in data] == ["m2", "m1"]


class TestEntryEndpoints:

    def test_create_list_update(self, client):
        created = client.post("/api/entries", json={"category": "教育", "amount": 300, "memo": "買書"}).get_json()
        assert created["ok"] is True

        rows = client.get("/api/entries").get_json()
        assert len(rows) == 1
        assert rows[0]["category"] == "教育"
        assert rows[0]["date"] == today_in("Asia/Taipei")

        updated = client.put(
            f"/api/entries/{created['id']}",
            data=json.dumps({"date": "2025-01-01", "category": "娛樂", "amount": 250}),
            content_type="application/json",
        )
        data = updated.get_json()
        assert data["ok"] is True
        assert data["entry"]["id"] == created["id"]
        assert data["entry"]["updated_at"] is not None
        row = client.get("/api/entries").get_json()[0]
        assert (row["date"], row["category"], row["amount"], row["memo"]) == ("2025-01-01", "娛樂", 250.0, None)

    def test_create_defaults(self, client):
        client.post("/api/entries", json={})
        row = client.get("/api/entries").get_json()[0]
        assert (row["category"], row["amount"]) == ("其他", 0.0)

    def test_bad_amount(self, client):
        assert client.post("/api/entries", json={"amount": "abc"}).status_code == 400

    def test_update_missing(self, client):
        assert client.put("/api/entries/42", json={"amount": 1}).status_code == 404
