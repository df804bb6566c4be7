"""Main entry point for the lending background workers."""

import asyncio
import logging
import signal

from components.core.config import get_settings
from components.core.init_db import get_db_manager, init_db
from components.core.scheduling import PeriodicTask
from components.core.services import build_services

logger = logging.getLogger(__name__)


async def run_workers() -> None:
    """Run the reservation expiry sweep and loan reminders until interrupted."""
    settings = get_settings()
    manager = await init_db(get_db_manager())
    services = build_services(manager, policy=settings.lending_policy())

    tasks = [
        PeriodicTask(
            "reservation_cleanup",
            settings.RESERVATION_CLEANUP_INTERVAL,
            services.cleanup.cleanup_expired_reservations,
        ),
        PeriodicTask(
            "loan_reminders",
            settings.LOAN_REMINDER_INTERVAL,
            services.reminders.run,
        ),
    ]

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    for task in tasks:
        task.start()
    try:
        await stop.wait()
    finally:
        for task in tasks:
            await task.stop()
        await manager.dispose()


if __name__ == "__main__":
    logging.basicConfig(
        level=get_settings().LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(run_workers())
