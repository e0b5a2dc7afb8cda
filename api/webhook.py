# -*- coding: utf-8 -*-
"""
Vercel Serverless Function - LINE Bot Webhook Entry Point

This module handles:
1. Receive Webhook POST requests from LINE Platform
2. Validate X-Line-Signature against the raw body
3. Dispatch text message events (classify -> store -> reply)
4. Return {"ok": true} to LINE

It also serves the small diagnostic / CRUD endpoints around the bot.
"""

import sys
from pathlib import Path

# Add project root to sys.path for local development
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import json
import logging
from datetime import datetime, timezone

from flask import Flask, jsonify, request
from linebot.v3.exceptions import InvalidSignatureError
from sqlalchemy.exc import SQLAlchemyError

from app.config import Settings, load_settings
from app.line.events import decode_events, is_verify_probe
from app.line.reply import LineReplier
from app.line.signature import verify_signature
from app.line_handler import handle_events, interpret_message, today_in
from app.records import BookkeepingResult, Entry
from app.services.audit_log import AuditLog, NullAuditLog
from app.services.database import create_db_engine
from app.services.entry_store import EntryStore, EntryStoreError, UnavailableEntryStore
from app.shared.category_resolver import fallback_category

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

SERVICE_NAME = "linebot-gemini-bookkeeper"
DEFAULT_LOG_LIMIT = 50
MAX_LOG_LIMIT = 200

# Initialize Flask app
app = Flask(__name__)
app.json.ensure_ascii = False

# Global variables for lazy initialization (Vercel serverless requirement)
_engine = None
_replier = None


def get_settings() -> Settings:
    return load_settings()


def get_engine():
    """Get or initialize database engine (lazy initialization)"""
    global _engine
    if _engine is None:
        logger.info("Initializing database engine")
        _engine = create_db_engine()
    return _engine


def get_store():
    """Entry store, or one whose every call raises EntryStoreError when the database is unreachable."""
    try:
        return EntryStore(get_engine())
    except SQLAlchemyError as e:
        logger.error(f"Entry store unavailable: {e}")
        return UnavailableEntryStore(e)


def get_audit():
    """Audit log, or a no-op one when the database is unavailable."""
    try:
        return AuditLog(get_engine())
    except Exception as e:
        logger.error(f"Audit log unavailable: {e}")
        return NullAuditLog()


def get_replier() -> LineReplier:
    """Get or initialize LINE reply client (lazy initialization)"""
    global _replier
    if _replier is None:
        settings = get_settings()
        _replier = LineReplier(settings.line_channel_access_token, max_length=settings.reply_max_length)
    return _replier


def _health_payload() -> dict:
    return {
        "ok": True,
        "service": SERVICE_NAME,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.route("/", methods=['GET'])
@app.route("/health", methods=['GET'])
def health():
    """Health check: confirm the service is running"""
    return jsonify(_health_payload())


@app.route("/api/webhook", methods=['GET'])
@app.route("/webhook/line", methods=['GET'])
def webhook_health():
    """Health check endpoint for GET requests"""
    return 'LINE Bot is running!', 200


@app.route("/api/webhook", methods=['POST'])
@app.route("/webhook/line", methods=['POST'])
def webhook():
    """
    LINE Webhook entry function

    Returns:
        {"ok": true} when handled (per-event failures are replied to the
        user, not reported here); 401 on missing / invalid signature.
    """
    settings = get_settings()

    # Raw bytes: the signature covers exactly what was received
    raw_body = request.get_data(cache=True)
    body_text = raw_body.decode('utf-8', errors='replace')

    # LINE console "Verify" sends {"events": []}; accept it without signature
    if settings.allow_unsigned_probe and is_verify_probe(body_text):
        logger.warning("Accepted unsigned verify probe (events: [])")
        return jsonify(ok=True)

    signature = request.headers.get('X-Line-Signature')
    if not signature or not settings.line_channel_secret:
        logger.warning("Missing X-Line-Signature header or channel secret")
        return jsonify(error="missing signature or secret"), 401

    try:
        verify_signature(settings.line_channel_secret, raw_body, signature)
    except InvalidSignatureError:
        # Unauthenticated bodies are neither logged nor stored
        logger.error("Invalid signature")
        return jsonify(error="invalid signature"), 401

    try:
        body = json.loads(body_text)
    except ValueError:
        logger.error("Webhook body is not JSON")
        return jsonify(error="invalid json"), 400

    events = decode_events(body)
    audit = get_audit()
    audit.append("webhook", "received", {"events": len(events)})

    try:
        outcomes = handle_events(
            events,
            store=get_store(),
            replier=get_replier(),
            settings=settings,
            audit=audit,
        )
        logger.info(f"Handled {len(outcomes)} text event(s)")
    except Exception as e:
        # Even on error, return 200 to prevent LINE from retrying
        logger.error(f"Error handling webhook: {e}")
        audit.append("error", f"webhook failed: {e}")

    return jsonify(ok=True)


@app.route("/api/test-webhook", methods=['POST'])
def test_webhook():
    """Classify a text the way the webhook would (no storage, no LINE reply)."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    text = data.get("text")
    if not isinstance(text, str) or not text.strip():
        return jsonify(ok=False, error="text is required"), 400

    settings = get_settings()
    result = interpret_message(text.strip(), settings, today_in(settings.timezone))
    get_audit().append("webhook", "test-webhook", {"text": text, "intent": result.intent})

    payload = {"ok": True, "intent": result.intent, "reply": result.reply}
    if isinstance(result, BookkeepingResult):
        payload["entry"] = result.entry.to_dict()
    return jsonify(payload)


@app.route("/api/logs", methods=['GET'])
def list_logs():
    """Most recent audit log records"""
    limit = request.args.get("limit", default=DEFAULT_LOG_LIMIT, type=int)
    limit = max(1, min(limit, MAX_LOG_LIMIT))
    try:
        return jsonify(get_audit().recent(limit))
    except Exception as e:
        logger.error(f"Failed to read logs: {e}")
        return jsonify(error="failed to read logs"), 500


@app.route("/api/entries", methods=['GET'])
def list_entries():
    try:
        return jsonify(get_store().list_entries())
    except EntryStoreError as e:
        logger.error(str(e))
        return jsonify(error="failed to list entries"), 500


def _entry_fields(data: dict, *, date_default: str, category_default: str):
    try:
        amount = float(data.get("amount") or 0)
    except (TypeError, ValueError):
        return None
    memo = data.get("memo")
    return {
        "date": data.get("date") or date_default,
        "category": data.get("category") or category_default,
        "amount": amount,
        "memo": memo if isinstance(memo, str) else None,
    }


@app.route("/api/entries", methods=['POST'])
def create_entry():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    fields = _entry_fields(
        data,
        date_default=today_in(get_settings().timezone),
        category_default=fallback_category(),
    )
    if fields is None:
        return jsonify(error="amount must be a number"), 400

    try:
        entry_id = get_store().add_entry(Entry(**fields))
    except EntryStoreError as e:
        logger.error(str(e))
        return jsonify(error="failed to create entry"), 500
    return jsonify(ok=True, id=entry_id)


@app.route("/api/entries/<int:entry_id>", methods=['PUT'])
def update_entry(entry_id: int):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    fields = _entry_fields(data, date_default="", category_default="")
    if fields is None:
        return jsonify(error="amount must be a number"), 400

    store = get_store()
    try:
        if not store.update_entry(entry_id, **fields):
            return jsonify(error="entry not found"), 404
        entry = store.get_entry(entry_id)
    except EntryStoreError as e:
        logger.error(str(e))
        return jsonify(error="failed to update entry"), 500
    return jsonify(ok=True, entry=entry)


# Local development entry point
if __name__ == "__main__":
    app.run(debug=True, port=5000)
