"""
Environment configuration module
Loads all environment variables used by the bot.
"""

import logging
import os
from dataclasses import dataclass
from dotenv import load_dotenv

# Load .env file (for local development)
load_dotenv()

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


# LINE channel credentials
LINE_CHANNEL_ACCESS_TOKEN = os.getenv('LINE_CHANNEL_ACCESS_TOKEN', '')
LINE_CHANNEL_SECRET = os.getenv('LINE_CHANNEL_SECRET', '')

# Gemini (optional: without a key the deterministic parser is used)
GEMINI_API_KEY = os.getenv('GEMINI_API_KEY', '')
GEMINI_MODEL = os.getenv('GEMINI_MODEL', 'gemini-2.0-flash')
GEMINI_BASE_URL = os.getenv('GEMINI_BASE_URL', 'https://generativelanguage.googleapis.com/v1beta')
GEMINI_TIMEOUT = int(os.getenv('GEMINI_TIMEOUT', '15'))

# Storage (SQLAlchemy URL)
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///bookkeeping.sqlite3')

# Optional behaviour
TIMEZONE = os.getenv('TIMEZONE', 'Asia/Taipei')
LINE_REPLY_MAX_LENGTH = int(os.getenv('LINE_REPLY_MAX_LENGTH', '5000'))
# LINE console "Verify" sends {"events": []}, not always signed consistently
LINE_ALLOW_UNSIGNED_PROBE = _env_bool('LINE_ALLOW_UNSIGNED_PROBE', True)

# Warn about missing LINE variables; health and CRUD endpoints still work without them
required_vars = {
    'LINE_CHANNEL_ACCESS_TOKEN': LINE_CHANNEL_ACCESS_TOKEN,
    'LINE_CHANNEL_SECRET': LINE_CHANNEL_SECRET,
}

missing_vars = [var_name for var_name, var_value in required_vars.items() if not var_value]

if missing_vars:
    logger.warning(f"Missing environment variables: {', '.join(missing_vars)}")


@dataclass(frozen=True)
class Settings:
    """Snapshot of the settings the dispatcher needs (injectable in tests)."""

    line_channel_secret: str = ''
    line_channel_access_token: str = ''
    gemini_api_key: str = ''
    gemini_model: str = 'gemini-2.0-flash'
    gemini_base_url: str = 'https://generativelanguage.googleapis.com/v1beta'
    gemini_timeout: int = 15
    timezone: str = 'Asia/Taipei'
    reply_max_length: int = 5000
    allow_unsigned_probe: bool = True


def load_settings() -> Settings:
    return Settings(
        line_channel_secret=LINE_CHANNEL_SECRET,
        line_channel_access_token=LINE_CHANNEL_ACCESS_TOKEN,
        gemini_api_key=GEMINI_API_KEY,
        gemini_model=GEMINI_MODEL,
        gemini_base_url=GEMINI_BASE_URL,
        gemini_timeout=GEMINI_TIMEOUT,
        timezone=TIMEZONE,
        reply_max_length=LINE_REPLY_MAX_LENGTH,
        allow_unsigned_probe=LINE_ALLOW_UNSIGNED_PROBE,
    )
