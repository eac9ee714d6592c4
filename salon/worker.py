# salon/worker.py

"""
Background sweep loop.

Runs the cleanup sweep and the reminder sweep every
``SWEEP_INTERVAL_SECONDS``. Started by the API lifespan when
``SWEEPS_ENABLED`` is true, or on its own with ``python -m salon.worker``.
"""

import asyncio
import logging
from typing import Optional

from salon.changes import ChangeFeed, feed as default_feed
from salon.config import settings
from salon.core.sweeps import cleanup_past_appointments, send_due_reminders
from salon.db import session_factory as default_session_factory
from salon.mailer import Mailer, get_mailer

logger = logging.getLogger(__name__)


async def run_sweeps_once(
    session_factory=None,
    mailer: Optional[Mailer] = None,
    feed: Optional[ChangeFeed] = None,
) -> None:
    session_factory = session_factory or default_session_factory
    mailer = mailer or get_mailer()
    feed = feed or default_feed

    # sweeps talk to the database and the mail API synchronously
    await asyncio.to_thread(cleanup_past_appointments, session_factory, None, feed)
    await asyncio.to_thread(send_due_reminders, session_factory, mailer)


async def run_sweeps_forever(interval: Optional[int] = None) -> None:
    interval = interval or settings.sweep_interval_seconds
    logger.info("worker.start", extra={"interval": interval})

    while True:
        try:
            await run_sweeps_once()
        except Exception:
            # store unreachable and the like; try again next tick
            logger.exception("worker.iteration_failed")

        await asyncio.sleep(interval)


if __name__ == "__main__":
    from salon.db import init_db
    from salon.logging_config import configure_logging

    configure_logging()
    init_db()
    asyncio.run(run_sweeps_forever())
