#!/usr/bin/env python3
"""
Main entry point for the vaultkeeper secret lease daemon
"""

import asyncio
import logging
import signal
import sys

from .application_context import ApplicationContext
from .config import get_config_path, load_config
from .errors.handling import log_error
from .logging_config import LoggerConfigurator


def _install_signal_handlers(stop_event: asyncio.Event) -> None:  # pragma: no cover
    """Set the stop event on SIGINT/SIGTERM."""
    loop = asyncio.get_running_loop()

    def handler(signum: int) -> None:
        if stop_event.is_set():
            return
        logging.warning(f"🛑 Signal received - initiating shutdown (signal={signum})")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handler, sig)


async def main() -> None:
    """Load the config, keep its secrets alive until a stop signal arrives.

    Raises:
        SystemExit: If the configuration is missing or startup fails.
    """
    config = load_config()
    if config is None:
        logging.error(f"❌ No configuration found at {get_config_path()}")
        sys.exit(1)
    context = await ApplicationContext.create(config)
    stop_event = asyncio.Event()
    try:
        _install_signal_handlers(stop_event)
        await context.start()
        await stop_event.wait()
    except asyncio.CancelledError:
        raise
    except Exception as e:
        log_error("Main application error", e)
        sys.exit(1)
    finally:
        await context.shutdown()
        logging.info("✅ Application shutdown complete")


def run() -> None:
    """Synchronous entry point for the application."""
    LoggerConfigurator().configure()
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(0)
    except asyncio.CancelledError:
        sys.exit(0)


if __name__ == "__main__":
    run()
