from __future__ import annotations

from pathlib import Path
from unittest.mock import Mock

import pytest

from app.config import Settings
from app.line.reply import LineReplier
from app.services.audit_log import AuditLog
from app.services.database import create_db_engine
from app.services.entry_store import EntryStore
from tests.test_utils import TEST_SECRET


def _top_level_tests_group(path: Path) -> str | None:
    parts = path.parts
    try:
        tests_index = parts.index("tests")
    except ValueError:
        return None
    if tests_index + 1 >= len(parts):
        return None
    return parts[tests_index + 1]


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    for item in items:
        group = _top_level_tests_group(Path(str(item.fspath)))
        if group == "unit":
            item.add_marker(pytest.mark.unit)
        elif group == "integration":
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database with both tables."""
    engine = create_db_engine("sqlite://")
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine) -> EntryStore:
    return EntryStore(engine)


@pytest.fixture
def audit(engine) -> AuditLog:
    return AuditLog(engine)


@pytest.fixture
def replier() -> Mock:
    replier = Mock(spec=LineReplier)
    replier.reply_text.return_value = True
    return replier


@pytest.fixture
def parser_settings() -> Settings:
    """No Gemini key: the grammar parser handles messages."""
    return Settings(line_channel_secret=TEST_SECRET, line_channel_access_token="token")


@pytest.fixture
def gemini_settings() -> Settings:
    return Settings(
        line_channel_secret=TEST_SECRET,
        line_channel_access_token="token",
        gemini_api_key="test-gemini-key",
    )
