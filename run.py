"""
Entry point: run the article auto-publish scheduler until interrupted.

Usage::

    python run.py
"""

import asyncio
import logging
import signal
import sys

from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("run")


async def main() -> None:
    from autopublish.config import get_settings, validate_env
    from autopublish.database import get_db
    from autopublish.logging import LogComponent, init_logger
    from autopublish.scheduling import start_scheduler, stop_scheduler

    validate_env(strict=True)
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    db = await get_db(settings.tables)
    activity = init_logger(
        log_dir=settings.log_dir,
        supabase_client=db if settings.log_to_supabase else None,
        table=settings.tables["logs"],
    )
    await activity.info(LogComponent.STARTUP, "Auto-publish service starting")

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows: fall back to KeyboardInterrupt
            pass

    scheduler = await start_scheduler(db=db, activity_logger=activity, settings=settings)

    try:
        await stop_event.wait()
    finally:
        logger.info("Shutting down; waiting for in-flight cycle")
        stop_scheduler()
        await scheduler.wait_idle()
        await activity.info(LogComponent.STARTUP, "Auto-publish service stopped")
        await activity.flush()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted")
        sys.exit(0)
