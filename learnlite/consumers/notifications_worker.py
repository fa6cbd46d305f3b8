import argparse
import asyncio
import logging
import signal

from learnlite.core.config import DB_URL, LOG_LEVEL, NotificationSettings
from learnlite.core.db import close_db, create_engine, create_session_factory, init_db
from learnlite.core.logging import configure_logging
from learnlite.notifications import build_dispatcher

log = logging.getLogger("notifications_worker")


async def start_notifications_worker(once: bool = False) -> None:
    """
    Runs the dispatcher as a standalone process until SIGINT/SIGTERM.
    Several of these may run against the same database; claims skip each other's rows.
    """
    settings = NotificationSettings.from_env()
    if not settings.enabled:
        log.info("Notifications dispatcher: disabled (set NOTIFICATIONS_ENABLED=true)")
        return

    engine = create_engine(DB_URL)
    try:
        await init_db(engine)
        dispatcher = build_dispatcher(settings, create_session_factory(engine))

        if once:
            await dispatcher.start(schedule=False)
            processed = await dispatcher.run_cycle()
            log.info(f"Single cycle finished, {processed} event(s) processed")
            await dispatcher.stop()
            return

        stop_requested = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop_requested.set)

        await dispatcher.start()
        log.info("--- Notifications Worker Started ---")
        await stop_requested.wait()
        log.info("Shutdown requested, draining in-flight cycle...")
        await dispatcher.stop()
    finally:
        await close_db(engine)


def main() -> None:
    parser = argparse.ArgumentParser(description="Deliver pending outbox notifications.")
    parser.add_argument("--once", action="store_true", help="run a single cycle and exit")
    args = parser.parse_args()

    configure_logging(LOG_LEVEL)
    asyncio.run(start_notifications_worker(once=args.once))


if __name__ == "__main__":
    main()
