"""
Best-effort synchronisation of articles to external systems.

``ExternalSync`` owns the two side channels of the publish pipeline:

- :meth:`ExternalSync.ensure_mirrored` creates the article in the Airtable
  mirror once, recording the returned record id as ``external_id``.
- :meth:`ExternalSync.cross_post` posts a freshly published article to
  Instagram.

Neither method raises.  Every failure is logged and the caller carries on
with the article it already had, so a broken integration can never block
or revert a publish.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

import httpx

from autopublish.config import AIRTABLE_PROVIDER, AIRTABLE_SETTING_KEYS
from autopublish.models import Article, ArticleStatus
from autopublish.scheduling.due_dates import resolve_due_date
from autopublish.tools.airtable import AirtableClient
from autopublish.utils import to_iso_z, utc_now

logger = logging.getLogger(__name__)

MIRROR_SOURCE = "airtable"


def build_mirror_fields(article: Article) -> Dict[str, Any]:
    """Map an article onto the Airtable table's columns."""
    now = utc_now()
    scheduled = resolve_due_date(article) or now
    date = article.date
    if isinstance(date, datetime):
        date = to_iso_z(date)
    return {
        "Name": article.title,
        "Description": article.description or "",
        "Body": article.content or "",
        "Featured": article.featured == "yes",
        "Finished": article.status == ArticleStatus.PUBLISHED.value or article.finished is True,
        "Hashtags": article.hashtags or "",
        "Scheduled": to_iso_z(scheduled),
        "Date": date or to_iso_z(now),
    }


class ExternalSync:
    """Mirror and cross-post adapter for the publish pipeline.

    Args:
        db: Database client (:class:`~autopublish.database.SupabaseDB`).
        cross_poster: Object exposing ``post_article_to_instagram(article)``
            returning a :class:`~autopublish.models.SyncResult`
            (:class:`~autopublish.tools.instagram.InstagramPoster`).
        airtable_base_url: Optional Airtable API root override.
        timeout: HTTP timeout in seconds for mirror requests.
        transport: Optional ``httpx`` transport for tests.
    """

    def __init__(
        self,
        db: "SupabaseDB",  # noqa: F821
        cross_poster: Any,
        airtable_base_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.db = db
        self.cross_poster = cross_poster
        self.airtable_base_url = airtable_base_url
        self.timeout = timeout
        self._transport = transport

    # ================================================================
    # MIRROR
    # ================================================================

    async def _airtable_client(self) -> Optional[AirtableClient]:
        """Build a client from integration settings, or ``None`` if unset."""
        values: Dict[str, str] = {}
        for name, key in AIRTABLE_SETTING_KEYS.items():
            setting = await self.db.get_integration_setting_by_key(AIRTABLE_PROVIDER, key)
            value = (setting or {}).get("value")
            if not value:
                return None
            values[name] = value

        return AirtableClient(
            api_key=values["api_key"],
            base_id=values["base_id"],
            table_name=values["table_name"],
            base_url=self.airtable_base_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def ensure_mirrored(self, article: Article) -> Article:
        """Make sure *article* exists in the Airtable mirror.

        Create-once: an article that already has an ``external_id`` is
        returned untouched without any network call.  On success the
        returned article carries the new ``external_id`` and
        ``source="airtable"``; on any failure the input article is
        returned unchanged.
        """
        if article.external_id:
            return article

        try:
            client = await self._airtable_client()
            if client is None:
                logger.info(
                    "[SCHEDULER] Airtable not configured; skipping push for article %s",
                    article.id,
                )
                return article

            result = await client.create_record(build_mirror_fields(article))
            if not result.success:
                logger.warning("[SCHEDULER] %s (article %s)", result.error, article.id)
                return article

            updated = await self.db.update_article(
                article.id,
                {"external_id": result.record_id, "source": MIRROR_SOURCE},
            )
            if updated is None:
                logger.warning(
                    "[SCHEDULER] Could not record Airtable id %s on article %s",
                    result.record_id,
                    article.id,
                )
                return article

            logger.info(
                "[SCHEDULER] Article %s pushed to Airtable with id %s",
                article.id,
                result.record_id,
            )
            return updated
        except Exception as exc:
            logger.error(
                "[SCHEDULER] Error ensuring Airtable push for article %s: %s",
                article.id,
                exc,
            )
            return article

    # ================================================================
    # CROSS-POST
    # ================================================================

    async def cross_post(self, article: Article) -> None:
        """Post a published article to Instagram, logging the outcome."""
        try:
            result = await self.cross_poster.post_article_to_instagram(article)
        except Exception as exc:
            logger.error(
                "[SCHEDULER] Instagram post error for article %s: %s",
                article.id,
                exc,
            )
            return

        if result.success:
            logger.info("[SCHEDULER] Instagram post succeeded for article %s", article.id)
        else:
            logger.warning(
                "[SCHEDULER] Instagram post failed for article %s: %s",
                article.id,
                result.error,
            )
