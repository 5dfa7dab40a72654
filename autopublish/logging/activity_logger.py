"""Structured activity log for the auto-publish service.

``ActivityLogger`` keeps a durable trail of what the scheduler did:

- every entry is appended as a JSON line to ``<log_dir>/activity.log``,
  and ERROR/CRITICAL entries are duplicated in ``errors.log``;
- entries at or above ``min_level`` are also inserted into a Supabase
  table when a client is supplied;
- the latest entries stay in memory for :meth:`ActivityLogger.get_recent`.

Nothing here may break a publish cycle.  File and Supabase failures are
reported on the stdlib logger and dropped.

Module helpers ``init_logger()`` and ``get_logger()`` hold the process-wide
instance that ``run.py`` creates.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import aiofiles

from autopublish.logging.models import LogComponent, LogEntry, LogLevel
from autopublish.models import CycleReport
from autopublish.utils import utc_now

logger = logging.getLogger(__name__)


class ActivityLogger:
    """Writes :class:`LogEntry` records to files, Supabase and memory.

    Parameters:
        log_dir: Where ``activity.log`` and ``errors.log`` are written.
            Created on construction.
        supabase_client: Anything with an ``insert(table, row)`` coroutine,
            normally :class:`~autopublish.database.SupabaseDB`.  ``None``
            disables the table output.
        table: Destination table for Supabase rows.
        min_level: Entries below this level are not sent to Supabase.
    """

    def __init__(
        self,
        log_dir: str = "logs",
        supabase_client: Any = None,
        table: str = "scheduler_logs",
        min_level: LogLevel = LogLevel.INFO,
    ) -> None:
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self._main_log = self.log_dir / "activity.log"
        self._error_log = self.log_dir / "errors.log"

        self.supabase = supabase_client
        self.table = table
        self.min_level = min_level

        self._recent_logs: List[LogEntry] = []
        self._max_recent: int = 500

        # Supabase inserts in flight; held here so they are not collected early
        self._pending_tasks: Set["asyncio.Task[None]"] = set()

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    async def log(
        self,
        level: LogLevel,
        component: LogComponent,
        message: str,
        article_id: Any = None,
        data: Optional[Dict[str, Any]] = None,
        error: Optional[BaseException] = None,
        duration_ms: Optional[int] = None,
    ) -> LogEntry:
        """Record one entry and return it.

        The file append is awaited.  The Supabase insert runs as a
        background task; :meth:`flush` waits for outstanding ones.
        """
        entry = LogEntry(
            timestamp=utc_now(),
            level=level,
            component=component,
            message=message,
            article_id=None if article_id is None else str(article_id),
            data=data or {},
            error_type=type(error).__name__ if error is not None else None,
            error_message=str(error) if error is not None else None,
            duration_ms=duration_ms,
        )

        self._remember(entry)

        try:
            await self._write_to_file(entry)
        except OSError as exc:
            logger.warning("[ACTIVITY] Could not append to %s: %s", self.log_dir, exc)

        if self.supabase is not None and level.value >= self.min_level.value:
            task = asyncio.create_task(self._write_to_supabase(entry))
            self._pending_tasks.add(task)
            task.add_done_callback(self._pending_tasks.discard)

        return entry

    async def info(self, component: LogComponent, message: str, **kwargs: Any) -> LogEntry:
        return await self.log(LogLevel.INFO, component, message, **kwargs)

    async def warning(self, component: LogComponent, message: str, **kwargs: Any) -> LogEntry:
        return await self.log(LogLevel.WARNING, component, message, **kwargs)

    async def error(self, component: LogComponent, message: str, **kwargs: Any) -> LogEntry:
        return await self.log(LogLevel.ERROR, component, message, **kwargs)

    async def record_cycle(self, report: CycleReport) -> LogEntry:
        """Summarise one scheduler cycle.

        A cycle-level error or any failed article makes the entry a
        WARNING; a clean cycle is INFO.  The full report goes in ``data``.
        """
        level = LogLevel.WARNING if (report.error or report.failed) else LogLevel.INFO
        message = (
            f"Cycle finished: {len(report.published)} published, "
            f"{len(report.failed)} failed of {report.due} due "
            f"({report.candidates} candidates)"
        )
        return await self.log(
            level,
            LogComponent.SCHEDULER,
            message,
            data=report.to_dict(),
            duration_ms=report.duration_ms,
        )

    # ------------------------------------------------------------------
    # Reading back
    # ------------------------------------------------------------------

    def get_recent(
        self,
        limit: int = 20,
        level: Optional[LogLevel] = None,
        component: Optional[LogComponent] = None,
    ) -> List[LogEntry]:
        """Latest in-memory entries, oldest first, optionally filtered."""
        matches = [
            entry
            for entry in self._recent_logs
            if (level is None or entry.level == level)
            and (component is None or entry.component == component)
        ]
        return matches[-limit:]

    async def flush(self) -> None:
        """Wait for outstanding Supabase inserts.  Call before shutdown."""
        if self._pending_tasks:
            await asyncio.gather(*self._pending_tasks, return_exceptions=True)
            self._pending_tasks.clear()

    # ------------------------------------------------------------------
    # Outputs
    # ------------------------------------------------------------------

    def _remember(self, entry: LogEntry) -> None:
        self._recent_logs.append(entry)
        overflow = len(self._recent_logs) - self._max_recent
        if overflow > 0:
            del self._recent_logs[:overflow]

    async def _write_to_file(self, entry: LogEntry) -> None:
        line = entry.to_json() + "\n"
        targets = [self._main_log]
        if entry.level.value >= LogLevel.ERROR.value:
            targets.append(self._error_log)

        for path in targets:
            async with aiofiles.open(path, "a", encoding="utf-8") as fh:
                await fh.write(line)

    async def _write_to_supabase(self, entry: LogEntry) -> None:
        try:
            await self.supabase.insert(self.table, entry.to_dict())
        except Exception as exc:
            logger.warning("[ACTIVITY] Supabase insert into %s failed: %s", self.table, exc)


# ======================================================================
# PROCESS-WIDE INSTANCE
# ======================================================================

_logger: Optional[ActivityLogger] = None


def init_logger(
    log_dir: str = "logs",
    supabase_client: Any = None,
    table: str = "scheduler_logs",
    min_level: LogLevel = LogLevel.INFO,
) -> ActivityLogger:
    """Create the process-wide :class:`ActivityLogger`, replacing any previous one."""
    global _logger
    _logger = ActivityLogger(
        log_dir=log_dir,
        supabase_client=supabase_client,
        table=table,
        min_level=min_level,
    )
    return _logger


def get_logger() -> ActivityLogger:
    """Return the instance created by :func:`init_logger`.

    Raises:
        RuntimeError: If :func:`init_logger` has not run.
    """
    if _logger is None:
        raise RuntimeError("Activity logger not initialised; call init_logger() first")
    return _logger
