# src/task_monitor/cli/main.py

"""
Daemon entrypoint.

Initializes logging, builds AppState, starts the task monitor on an asyncio loop
and stops it on SIGINT/SIGTERM.
"""

from __future__ import annotations

import asyncio
import logging
import signal

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _run(state) -> None:
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            # Windows event loops do not support signal handlers.
            pass

    await state.monitor.start()
    try:
        await stop_event.wait()
    finally:
        state.monitor.stop()
        close = getattr(state.notifier, "close", None)
        if close is not None:
            try:
                await close()
            except Exception:
                logger.debug("Notifier close failed.", exc_info=True)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    # Matrix auth/sync warnings matter when Matrix is the delivery channel.
    nio_console_level = logging.WARNING if settings.notifier == "matrix" else logging.ERROR
    setup_logging(log_dir=settings.data_dir, console_level=console_level, nio_console_level=nio_console_level)

    logging.getLogger("nio").setLevel(max(console_level, logging.INFO))

    logger.info("Starting %s...", settings.app_name)
    state = create_initial_state(settings=settings)

    try:
        asyncio.run(_run(state))
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt, exiting.")
    finally:
        state.task_store.close()
        logger.info("Bye.")


if __name__ == "__main__":
    main()
