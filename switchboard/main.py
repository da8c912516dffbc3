"""Main entry point for switchboard.

Initializes logging in two phases (defaults then config-driven),
creates the SwitchboardBot, and runs the async event loop with
graceful shutdown on SIGTERM/SIGINT.

Startup failures (missing token, handler load failure, publish
failure) exit with status 1.

Key functions:
    main: Async entry point -- sets up logging, config and bot, then
        runs the gateway connection until a shutdown signal.
    run: Synchronous wrapper that calls asyncio.run(main()).
"""

import asyncio
import signal
import sys

import structlog

from . import __version__
from .logging_config import setup_logging


async def main() -> int:
    """Main async entry point. Returns the process exit status."""
    # Phase 1: defaults, cache_logger_on_first_use=False
    setup_logging()
    logger = structlog.get_logger("switchboard")

    logger.info("switchboard_starting", version=__version__)

    # Import here to ensure logging is configured first
    from .bot import SwitchboardBot
    from .config import get_config
    from .exceptions import SwitchboardError

    try:
        config = get_config()
        config.validate()
    except SwitchboardError as e:
        logger.error("startup_failed", error=str(e), error_type=e.error_type.value)
        return 1

    # Phase 2: reconfigure with real config, cache_logger_on_first_use=True
    setup_logging(config)

    bot = SwitchboardBot(config)

    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def handle_shutdown(sig):
        logger.info("shutdown_signal_received", signal=sig.name)
        shutdown_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, handle_shutdown, sig)
        except NotImplementedError:
            # Windows: add_signal_handler not supported.
            if sig == signal.SIGINT:
                signal.signal(
                    signal.SIGINT,
                    lambda s, f: handle_shutdown(signal.SIGINT),
                )

    bot_task = asyncio.create_task(bot.run())
    shutdown_task = asyncio.create_task(shutdown_event.wait())
    try:
        done, _ = await asyncio.wait(
            {bot_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED
        )

        if bot_task in done:
            exc = bot_task.exception()
            if exc is not None:
                error_type = getattr(exc, "error_type", None)
                logger.error(
                    "startup_failed" if isinstance(exc, SwitchboardError) else "bot_error",
                    error=str(exc),
                    error_type=error_type.value if error_type else type(exc).__name__,
                    exc_info=exc,
                )
                return 1
            return 0

        bot_task.cancel()
        try:
            await bot_task
        except asyncio.CancelledError:
            pass
        return 0
    finally:
        shutdown_task.cancel()
        await bot.stop()
        logger.info("switchboard_stopped")


def run() -> None:
    """Synchronous entry point for the ``switchboard`` console script."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
