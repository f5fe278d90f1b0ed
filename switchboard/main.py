"""Main entry point for switchboard.

Initializes logging in two phases (defaults then config-driven),
validates the required configuration, creates the SwitchboardBot, and
runs the async event loop with graceful shutdown on SIGTERM/SIGINT.

Missing credentials and a rejected gateway login are the only fatal
errors: both exit with status 1.

Key functions:
    main: Async entry point.
    run: Synchronous wrapper that calls asyncio.run(main()).
"""

import asyncio
import signal
import sys

import structlog

from . import __version__
from .exceptions import (
    ConfigurationError,
    GatewayAuthError,
    GatewayError,
    HandlerConflictError,
)
from .logging_config import setup_logging

EXIT_FATAL = 1


async def main():
    """Main async entry point."""
    setup_logging()
    logger = structlog.get_logger("switchboard")

    logger.info("switchboard_starting", version=__version__)

    from .bot import SwitchboardBot
    from .config import get_config

    config = get_config()
    config.validate()

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
        await asyncio.wait({bot_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED)
        if bot_task.done():
            # Propagates fatal startup errors
            bot_task.result()
        else:
            bot_task.cancel()
            try:
                await bot_task
            except asyncio.CancelledError:
                pass
    finally:
        shutdown_task.cancel()
        await bot.stop()
        logger.info("switchboard_stopped")


def run():
    """Synchronous entry point for the ``switchboard`` console script."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
    except (ConfigurationError, HandlerConflictError) as e:
        structlog.get_logger("switchboard").error("fatal_configuration_error", error=str(e))
        print(f"switchboard: {e.message}", file=sys.stderr)
        sys.exit(EXIT_FATAL)
    except GatewayAuthError as e:
        structlog.get_logger("switchboard").error("fatal_gateway_auth_error", error=str(e))
        print(f"switchboard: login failed: {e.message}", file=sys.stderr)
        sys.exit(EXIT_FATAL)
    except GatewayError as e:
        structlog.get_logger("switchboard").error("fatal_gateway_error", error=str(e))
        print(f"switchboard: could not connect: {e.message}", file=sys.stderr)
        sys.exit(EXIT_FATAL)


if __name__ == "__main__":
    run()
