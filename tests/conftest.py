"""Shared fixtures for the auto-publish test suite."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from autopublish.models import Article, SyncResult
from autopublish.utils import utc_now


# ---------------------------------------------------------------------------
# Ensure we don't hit real APIs during tests
# ---------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _block_env_keys(monkeypatch):
    """Clear all keys and overrides so tests never hit real services."""
    keys = [
        "SUPABASE_URL",
        "SUPABASE_SERVICE_KEY",
        "SCHEDULER_INTERVAL_SECONDS",
        "SCHEDULER_INITIAL_DELAY_SECONDS",
        "HTTP_TIMEOUT_SECONDS",
        "LOG_LEVEL",
        "LOG_DIR",
    ]
    for key in keys:
        monkeypatch.delenv(key, raising=False)


# ---------------------------------------------------------------------------
# Common datetime fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def sample_utc_now():
    """A fixed UTC datetime for deterministic tests."""
    return datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


def _past(seconds: int = 1) -> str:
    return (utc_now() - timedelta(seconds=seconds)).isoformat()


# ---------------------------------------------------------------------------
# In-memory article store
# ---------------------------------------------------------------------------
class FakeArticleStore:
    """Minimal stand-in for :class:`autopublish.database.SupabaseDB`.

    Rows are plain dicts keyed by id.  Method calls are recorded so tests
    can assert on the exact patches the scheduler requested.
    """

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None) -> None:
        self.rows: Dict[Any, Dict[str, Any]] = {}
        for row in rows or []:
            self.rows[row["id"]] = dict(row)
        self.settings: Dict[tuple, str] = {}
        self.updates: List[tuple] = []
        self.status_queries: List[str] = []
        self.fail_update_for: set = set()
        self.raise_update_for: set = set()

    def add(self, **row: Any) -> Dict[str, Any]:
        self.rows[row["id"]] = dict(row)
        return self.rows[row["id"]]

    def configure(self, provider: str, **values: str) -> None:
        for key, value in values.items():
            self.settings[(provider, key)] = value

    async def get_articles_by_status(self, status: str) -> List[Article]:
        self.status_queries.append(status)
        return [
            Article.from_row(row)
            for _, row in sorted(self.rows.items())
            if row.get("status") == status
        ]

    async def update_article(self, article_id: Any, patch: Dict[str, Any]) -> Optional[Article]:
        self.updates.append((article_id, dict(patch)))
        if article_id in self.raise_update_for:
            raise RuntimeError(f"storage exploded for {article_id}")
        if article_id in self.fail_update_for or article_id not in self.rows:
            return None
        self.rows[article_id].update(patch)
        return Article.from_row(self.rows[article_id])

    async def get_integration_setting_by_key(self, provider: str, key: str) -> Optional[Dict[str, Any]]:
        value = self.settings.get((provider, key))
        return {"provider": provider, "key": key, "value": value} if value is not None else None


@pytest.fixture
def store():
    """An empty in-memory article store."""
    return FakeArticleStore()


@pytest.fixture
def airtable_configured(store):
    """Store with complete Airtable integration settings."""
    store.configure("airtable", api_key="key-123", base_id="appBASE", articles_table="My Articles")
    return store


@pytest.fixture
def cross_poster():
    """Cross-post adapter that always succeeds."""
    poster = MagicMock()
    poster.post_article_to_instagram = AsyncMock(return_value=SyncResult.ok(record_id="ig-1"))
    return poster


@pytest.fixture
def make_article():
    """Factory for ``Article`` instances with sensible defaults."""

    def _make(**overrides: Any) -> Article:
        row: Dict[str, Any] = {
            "id": 1,
            "title": "Scheduled story",
            "description": "Summary",
            "content": "Body text",
            "hashtags": "#news",
            "featured": "no",
            "status": "pending",
            "scheduled_at": _past(),
        }
        row.update(overrides)
        return Article.from_row(row)

    return _make


# ---------------------------------------------------------------------------
# Mock Supabase client
# ---------------------------------------------------------------------------
@pytest.fixture
def mock_supabase_client():
    """A mock Supabase async client whose query chain returns ``data``.

    Set ``client.result_data`` to control what ``execute()`` returns.
    """
    client = MagicMock()
    client.result_data = []
    table_mock = MagicMock()
    for method in ("select", "insert", "update", "eq", "order", "limit"):
        getattr(table_mock, method).return_value = table_mock

    async def mock_execute():
        return MagicMock(data=client.result_data)

    table_mock.execute = mock_execute
    client.table.return_value = table_mock
    client.table_mock = table_mock
    return client
