"""
Supabase storage adapter for articles and integration settings.

The scheduler needs three queries: list articles by status, patch one
article, and read one integration setting.  The activity log adds a plain
insert.  They all live on
:class:`SupabaseDB` so the scheduling code can be tested against an
in-memory stand-in with the same method names.

Usage::

    from autopublish.database import get_db

    db = await get_db()
    drafts = await db.get_articles_by_status("draft")
"""

import asyncio
import logging
import os
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from supabase import AsyncClient, create_async_client

from autopublish.exceptions import DatabaseError, ValidationError
from autopublish.models import Article

logger = logging.getLogger(__name__)


# =============================================================================
# VALIDATION HELPERS
# =============================================================================


def validate_not_empty(value: Any, name: str) -> None:
    """Validate that *value* is not ``None`` or an empty string.

    Args:
        value: The value to check.
        name: Human-readable field name used in error messages.

    Raises:
        ValidationError: If *value* is ``None`` or a blank string.
    """
    if value is None:
        raise ValidationError(f"{name} cannot be None")
    if isinstance(value, str) and not value.strip():
        raise ValidationError(f"{name} cannot be empty string")


def serialise_patch(patch: Dict[str, Any]) -> Dict[str, Any]:
    """Convert ``datetime`` values in a patch to ISO-8601 strings."""
    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in patch.items()
    }


# =============================================================================
# CONFIGURATION
# =============================================================================


@dataclass
class SupabaseConfig:
    """Connection parameters for the Supabase project.

    Attributes:
        url: Project URL, from ``SUPABASE_URL``.
        key: Service-role key, from ``SUPABASE_SERVICE_KEY``.  The scheduler
            writes to ``articles`` so the anon key is not enough.
    """

    url: str
    key: str

    @classmethod
    def from_env(cls) -> "SupabaseConfig":
        """Read the connection parameters from the environment.

        Raises:
            ValueError: If either variable is missing or empty.
        """
        url = os.environ.get("SUPABASE_URL")
        key = os.environ.get("SUPABASE_SERVICE_KEY")

        if not url or not key:
            raise ValueError(
                "SUPABASE_URL and SUPABASE_SERVICE_KEY must be set"
            )

        return cls(url=url, key=key)


# =============================================================================
# SUPABASE DATABASE CLIENT
# =============================================================================


class SupabaseDB:
    """Async queries over the ``articles`` and integration settings tables.

    Build instances with :meth:`create`; creating the Supabase async client
    has to be awaited.

    Args:
        client: Supabase async client.
        articles_table: Name of the articles table.
        settings_table: Name of the integration settings table.
    """

    def __init__(
        self,
        client: AsyncClient,
        articles_table: str = "articles",
        settings_table: str = "integration_settings",
    ) -> None:
        """Wrap an existing client.  Prefer :meth:`create`."""
        self.client = client
        self.articles_table = articles_table
        self.settings_table = settings_table

    @classmethod
    async def create(
        cls,
        config: Optional[SupabaseConfig] = None,
        tables: Optional[Dict[str, str]] = None,
    ) -> "SupabaseDB":
        """Connect to Supabase and return a ready :class:`SupabaseDB`.

        Args:
            config: Connection parameters.  Read from the environment
                when ``None``.
            tables: Optional table-name overrides (``articles``,
                ``integration_settings``).

        Returns:
            A connected :class:`SupabaseDB`.
        """
        config = config or SupabaseConfig.from_env()
        tables = tables or {}
        client = await create_async_client(config.url, config.key)
        return cls(
            client,
            articles_table=tables.get("articles", "articles"),
            settings_table=tables.get("integration_settings", "integration_settings"),
        )

    # -----------------------------------------------------------------
    # ARTICLES
    # -----------------------------------------------------------------

    async def get_articles_by_status(self, status: str) -> List[Article]:
        """Get all articles with the given status.

        Args:
            status: Status value (e.g. ``"draft"``).

        Returns:
            List of :class:`Article` ordered by ``id`` ascending, so that
            repeated scans see a stable order.

        Raises:
            ValidationError: If *status* is empty.
        """
        validate_not_empty(status, "status")

        result = await (
            self.client.table(self.articles_table)
            .select("*")
            .eq("status", status)
            .order("id", desc=False)
            .execute()
        )
        return [Article.from_row(row) for row in result.data or []]

    async def update_article(
        self, article_id: Any, patch: Dict[str, Any]
    ) -> Optional[Article]:
        """Apply a partial update to one article.

        Args:
            article_id: Primary key of the article.
            patch: Column -> value mapping.  ``datetime`` values are
                serialised to ISO-8601.

        Returns:
            The updated :class:`Article`, or ``None`` if no row matched.

        Raises:
            ValidationError: If *article_id* or *patch* is empty.
            DatabaseError: If the update matched more than one row.
        """
        validate_not_empty(article_id, "article_id")
        if not patch:
            raise ValidationError("patch cannot be None or empty")

        result = await (
            self.client.table(self.articles_table)
            .update(serialise_patch(patch))
            .eq("id", article_id)
            .execute()
        )
        if not result.data:
            logger.debug("Update matched no article with id %s", article_id)
            return None
        if len(result.data) > 1:
            raise DatabaseError(
                f"Update for article {article_id} matched {len(result.data)} rows"
            )
        return Article.from_row(result.data[0])

    # -----------------------------------------------------------------
    # INTEGRATION SETTINGS
    # -----------------------------------------------------------------

    async def get_integration_setting_by_key(
        self, provider: str, key: str
    ) -> Optional[Dict[str, Any]]:
        """Look up one integration setting.

        Args:
            provider: Integration name (e.g. ``"airtable"``).
            key: Setting key within the provider (e.g. ``"api_key"``).

        Returns:
            The setting row (with a ``value`` key) or ``None``.
        """
        validate_not_empty(provider, "provider")
        validate_not_empty(key, "key")

        result = await (
            self.client.table(self.settings_table)
            .select("*")
            .eq("provider", provider)
            .eq("key", key)
            .limit(1)
            .execute()
        )
        return result.data[0] if result.data else None

    # -----------------------------------------------------------------
    # ACTIVITY LOGS
    # -----------------------------------------------------------------

    async def insert(self, table: str, row: Dict[str, Any]) -> None:
        """Insert a single row into *table* (used by the activity logger)."""
        validate_not_empty(table, "table")
        await self.client.table(table).insert(row).execute()


# =============================================================================
# PROCESS-WIDE CLIENT
# =============================================================================

_db_instance: Optional[SupabaseDB] = None
_db_lock: Optional[asyncio.Lock] = None

# Guards lazy creation of _db_lock.
_init_lock = threading.Lock()


async def get_db(tables: Optional[Dict[str, str]] = None) -> SupabaseDB:
    """Return the shared :class:`SupabaseDB`, connecting on first use.

    Concurrent first calls connect only once.  *tables* is honoured on
    the connecting call and ignored afterwards.
    """
    global _db_instance, _db_lock

    if _db_lock is None:
        with _init_lock:
            if _db_lock is None:
                _db_lock = asyncio.Lock()

    if _db_instance is None:
        async with _db_lock:
            if _db_instance is None:
                _db_instance = await SupabaseDB.create(tables=tables)

    return _db_instance
