"""
Publication pipeline: the ``draft|pending -> published`` transition.

The storage patch is authoritative.  Once it succeeds the article is
published, whatever happens to the Instagram cross-post afterwards.
"""

import logging

from autopublish.models import Article, ArticleStatus
from autopublish.scheduling.external_sync import ExternalSync
from autopublish.utils import utc_now

logger = logging.getLogger(__name__)


class PublicationPipeline:
    """Marks due articles as published and triggers the cross-post.

    Args:
        db: Database client (:class:`~autopublish.database.SupabaseDB`).
        external_sync: Adapter used for the post-publish cross-post.
    """

    def __init__(
        self,
        db: "SupabaseDB",  # noqa: F821
        external_sync: ExternalSync,
    ) -> None:
        self.db = db
        self.external_sync = external_sync

    async def publish(self, article: Article) -> bool:
        """Publish a single article.

        Patches ``status``, ``finished`` and ``published_at`` (keeping an
        existing ``published_at``).  If storage reports no updated row the
        cross-post is skipped and the article stays a candidate for the
        next cycle.

        Args:
            article: The due article, possibly already mirrored.

        Returns:
            ``True`` if the status transition was committed.

        Raises:
            Exception: Storage errors propagate to the caller's
                per-article failure boundary.
        """
        updated = await self.db.update_article(
            article.id,
            {
                "status": ArticleStatus.PUBLISHED.value,
                "finished": True,
                "published_at": article.published_at or utc_now(),
            },
        )

        if updated is None:
            logger.error("[SCHEDULER] Failed to update article %s to published", article.id)
            return False

        logger.info("[SCHEDULER] Published article %s: %s", article.id, article.title)

        await self.external_sync.cross_post(updated)
        return True
