"""
One auto-publish cycle: scan, filter, publish.

``CycleRunner.run_once`` collects draft and pending articles, keeps the ones
whose due date has passed, and runs each through mirror + publish.  Due
articles are processed strictly one after another in list order, which
keeps at most one Airtable/Instagram request in flight at a time.

Failures are contained at two levels:

- per article: an exception is logged, recorded in the report, and the
  loop moves on to the next article;
- per cycle: an exception while scanning or filtering is logged and
  recorded, and the cycle ends normally.

``run_once`` never raises (cancellation excepted).
"""

import logging
import time
from typing import Any, List, Optional

from autopublish.models import CANDIDATE_STATUSES, Article, CycleReport
from autopublish.scheduling.due_dates import is_due
from autopublish.scheduling.external_sync import ExternalSync
from autopublish.scheduling.publication import PublicationPipeline
from autopublish.utils import elapsed_ms, utc_now

logger = logging.getLogger(__name__)


class CycleRunner:
    """Runs a single scan-and-publish pass over candidate articles.

    Args:
        db: Database client (:class:`~autopublish.database.SupabaseDB`).
        external_sync: Mirror / cross-post adapter.
        pipeline: Publication pipeline.  Built from *db* and
            *external_sync* when ``None``.
        activity_logger: Optional
            :class:`~autopublish.logging.ActivityLogger`.  When ``None``,
            cycle reports are only written to the stdlib logger.
    """

    def __init__(
        self,
        db: "SupabaseDB",  # noqa: F821
        external_sync: ExternalSync,
        pipeline: Optional[PublicationPipeline] = None,
        activity_logger: Optional[Any] = None,
    ) -> None:
        self.db = db
        self.external_sync = external_sync
        self.pipeline = pipeline or PublicationPipeline(db, external_sync)
        self.activity_logger = activity_logger

    # ================================================================
    # SCAN
    # ================================================================

    async def _fetch_candidates(self) -> List[Article]:
        """Draft articles first, then pending, each in storage order."""
        candidates: List[Article] = []
        for status in CANDIDATE_STATUSES:
            candidates.extend(await self.db.get_articles_by_status(status.value))
        return candidates

    # ================================================================
    # CYCLE
    # ================================================================

    async def run_once(self) -> CycleReport:
        """Run one cycle and return its report."""
        report = CycleReport()
        started = time.monotonic()

        try:
            candidates = await self._fetch_candidates()
            report.candidates = len(candidates)
            if not candidates:
                return report

            now = utc_now()
            due = [article for article in candidates if is_due(article, now)]
            report.due = len(due)
            if not due:
                return report

            logger.info(
                "[SCHEDULER] Found %d articles due for publishing (%d candidates)",
                len(due),
                len(candidates),
            )

            # Sequential on purpose: one external call in flight at a time.
            for article in due:
                await self._process(article, report)

        except Exception as exc:
            logger.exception("[SCHEDULER] Scheduler error: %s", exc)
            report.error = str(exc)
        finally:
            report.finished_at = utc_now()
            report.duration_ms = elapsed_ms(started)
            logger.info("[SCHEDULER] Scheduler cycle completed in %dms", report.duration_ms)

        await self._record(report)
        return report

    async def _process(self, article: Article, report: CycleReport) -> None:
        """Mirror then publish one article inside its own failure boundary."""
        try:
            logger.info("[SCHEDULER] Auto-publish candidate %s: %s", article.id, article.title)
            ensured = await self.external_sync.ensure_mirrored(article)
            if await self.pipeline.publish(ensured):
                report.published.append(article.id)
            else:
                report.failed.append(article.id)
        except Exception as exc:
            logger.error("[SCHEDULER] Error auto-publishing article %s: %s", article.id, exc)
            report.failed.append(article.id)

    async def _record(self, report: CycleReport) -> None:
        """Write the report to the activity log, if one is configured."""
        if self.activity_logger is None:
            return
        try:
            await self.activity_logger.record_cycle(report)
        except Exception as exc:
            logger.warning("[SCHEDULER] Failed to record cycle report: %s", exc)
