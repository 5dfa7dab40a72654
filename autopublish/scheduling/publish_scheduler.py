"""
Background scheduler that runs auto-publish cycles on a fixed interval.

``PublishScheduler`` owns the timer and the single-flight guard:

- one delayed initial cycle shortly after :meth:`PublishScheduler.start`
  (so the rest of the process can finish booting), then
- one cycle every ``interval_seconds``.

Each tick spawns :meth:`PublishScheduler.run_cycle` as its own task, so a
slow cycle never delays the timer.  Overlap is prevented by the guard
flag instead: a tick that fires while a cycle is still running is dropped
entirely (not queued).  The check-and-set of the flag contains no
``await``, which makes it atomic on the event loop.

Module-level :func:`start_scheduler` / :func:`stop_scheduler` manage one
process-wide instance.
"""

import asyncio
import logging
from typing import Any, Optional, Set

from autopublish.config import Settings, get_settings
from autopublish.models import CycleReport
from autopublish.scheduling.cycle_runner import CycleRunner
from autopublish.scheduling.external_sync import ExternalSync
from autopublish.tools.instagram import InstagramPoster

logger = logging.getLogger(__name__)


class PublishScheduler:
    """Recurring, non-overlapping driver for :class:`CycleRunner`.

    Must be started from inside a running asyncio event loop.

    Args:
        runner: The cycle runner to drive.
        interval_seconds: Time between ticks (default: 60 seconds).
        initial_delay_seconds: Delay before the first, one-off cycle
            (default: 5 seconds).

    Raises:
        ValueError: If ``interval_seconds`` is not positive or
            ``initial_delay_seconds`` is negative.
    """

    def __init__(
        self,
        runner: CycleRunner,
        interval_seconds: float = 60.0,
        initial_delay_seconds: float = 5.0,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        if initial_delay_seconds < 0:
            raise ValueError(
                f"initial_delay_seconds cannot be negative, got {initial_delay_seconds}"
            )

        self.runner = runner
        self.interval_seconds = interval_seconds
        self.initial_delay_seconds = initial_delay_seconds

        self._running: bool = False
        self._timer_task: Optional["asyncio.Task[None]"] = None
        self._initial_handle: Optional[asyncio.TimerHandle] = None

        # Track in-flight cycle tasks to prevent garbage collection
        self._cycle_tasks: Set["asyncio.Task[Optional[CycleReport]]"] = set()

        self.cycles_started: int = 0
        self.cycles_completed: int = 0
        self.skipped_ticks: int = 0

    # ================================================================
    # STATE
    # ================================================================

    @property
    def is_started(self) -> bool:
        """``True`` while the recurring timer is scheduled."""
        return self._timer_task is not None

    @property
    def is_running(self) -> bool:
        """``True`` while a cycle is executing."""
        return self._running

    # ================================================================
    # LIFECYCLE
    # ================================================================

    def set_interval(self, interval_seconds: float) -> None:
        """Change the tick interval.  Takes effect on the next :meth:`start`.

        Raises:
            ValueError: If ``interval_seconds`` is not positive.
        """
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self.interval_seconds = interval_seconds

    def start(self) -> None:
        """Schedule the initial cycle and the recurring timer.

        Calling ``start`` on an already started scheduler does nothing.

        Raises:
            RuntimeError: If no event loop is running.
        """
        if self._timer_task is not None:
            return

        loop = asyncio.get_running_loop()
        logger.info(
            "[SCHEDULER] Starting publish scheduler (interval=%ss, initial_delay=%ss)",
            self.interval_seconds,
            self.initial_delay_seconds,
        )
        self._initial_handle = loop.call_later(self.initial_delay_seconds, self._spawn_cycle)
        self._timer_task = loop.create_task(self._tick_forever())

    def stop(self) -> None:
        """Cancel the timer.  Idempotent.

        An in-flight cycle is left to finish; use :meth:`wait_idle` to
        wait for it.
        """
        if self._initial_handle is not None:
            self._initial_handle.cancel()
            self._initial_handle = None

        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None
            logger.info("[SCHEDULER] Publish scheduler stopped")

    async def wait_idle(self) -> None:
        """Wait until every in-flight cycle task has finished."""
        if self._cycle_tasks:
            await asyncio.gather(*self._cycle_tasks, return_exceptions=True)

    # ================================================================
    # TICKS
    # ================================================================

    async def _tick_forever(self) -> None:
        """Spawn a cycle every ``interval_seconds`` until cancelled."""
        while True:
            await asyncio.sleep(self.interval_seconds)
            self._spawn_cycle()

    def _spawn_cycle(self) -> None:
        task = asyncio.get_running_loop().create_task(self.run_cycle())
        self._cycle_tasks.add(task)
        task.add_done_callback(self._on_cycle_done)

    def _on_cycle_done(self, task: "asyncio.Task[Optional[CycleReport]]") -> None:
        self._cycle_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "[SCHEDULER] Cycle task failed: %s",
                exc,
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    async def run_cycle(self) -> Optional[CycleReport]:
        """Run one cycle unless another is already running.

        Returns:
            The cycle report, or ``None`` if the tick was dropped because
            a previous cycle is still in progress.
        """
        if self._running:
            self.skipped_ticks += 1
            logger.debug("[SCHEDULER] Previous cycle still running; skipping tick")
            return None

        self._running = True
        self.cycles_started += 1
        try:
            return await self.runner.run_once()
        finally:
            self._running = False
            self.cycles_completed += 1


# =============================================================================
# PROCESS-WIDE SCHEDULER
# =============================================================================

_scheduler: Optional[PublishScheduler] = None


def build_runner(
    db: "SupabaseDB",  # noqa: F821
    settings: Optional[Settings] = None,
    activity_logger: Optional[Any] = None,
) -> CycleRunner:
    """Wire a :class:`CycleRunner` with the Airtable mirror and Instagram poster."""
    settings = settings or get_settings()
    poster = InstagramPoster(
        db,
        base_url=settings.instagram_api_url,
        timeout=settings.http_timeout_seconds,
    )
    external_sync = ExternalSync(
        db,
        poster,
        airtable_base_url=settings.airtable_api_url,
        timeout=settings.http_timeout_seconds,
    )
    return CycleRunner(db, external_sync, activity_logger=activity_logger)


async def start_scheduler(
    interval_seconds: Optional[float] = None,
    db: Optional["SupabaseDB"] = None,  # noqa: F821
    activity_logger: Optional[Any] = None,
    settings: Optional[Settings] = None,
) -> PublishScheduler:
    """Start the process-wide publish scheduler.

    A call while the scheduler is started returns the existing instance
    without rescheduling anything.  After :func:`stop_scheduler` the same
    instance is restarted rather than replaced, so a cycle still running
    from before the stop keeps blocking new ticks.  On restart only
    *interval_seconds* is applied; *db*, *activity_logger* and *settings*
    are fixed by the first call.

    Args:
        interval_seconds: Tick interval.  Defaults to
            ``settings.interval_seconds`` (60 seconds).
        db: Database client.  Defaults to :func:`~autopublish.database.get_db`.
        activity_logger: Optional structured activity logger.
        settings: Settings to use.  Defaults to :func:`get_settings`.

    Returns:
        The running :class:`PublishScheduler`.
    """
    global _scheduler
    if _scheduler is None:
        settings = settings or get_settings()
        if db is None:
            from autopublish.database import get_db

            db = await get_db(settings.tables)

    # No await from here on: concurrent callers cannot both create an instance.
    if _scheduler is None:
        _scheduler = PublishScheduler(
            build_runner(db, settings, activity_logger),
            interval_seconds=interval_seconds or settings.interval_seconds,
            initial_delay_seconds=settings.initial_delay_seconds,
        )
    elif not _scheduler.is_started and interval_seconds:
        _scheduler.set_interval(interval_seconds)

    _scheduler.start()
    return _scheduler


def stop_scheduler() -> None:
    """Stop the process-wide publish scheduler.  Idempotent.

    The instance is kept so that a later :func:`start_scheduler` shares its
    single-flight guard with any cycle that is still finishing.
    """
    if _scheduler is not None:
        _scheduler.stop()


# =============================================================================
# PUBLIC API
# =============================================================================

__all__ = [
    "PublishScheduler",
    "build_runner",
    "start_scheduler",
    "stop_scheduler",
]
