"""Entry point for the logging server (JSON-RPC over stdio)."""

import asyncio
import logging
import os
import signal
import sys

from logserver.config import Config, load_config
from logserver.dispatcher import Dispatcher
from logserver.errors import ConfigError
from logserver.mirror import build_mirror
from logserver.store import LogStore
from logserver.transport import StdioTransport, open_stdio_streams

logger = logging.getLogger("logserver")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s — %(message)s"


def configure_logging(config: Config) -> None:
    """Send diagnostics to stderr and the diagnostics file. Stdout carries the protocol."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.diagnostics_file:
        path = os.path.join(config.log_dir, config.diagnostics_file)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, config.diagnostics_level, logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


async def serve(config: Config) -> int:
    mirror = build_mirror(config)
    store = LogStore(config.log_dir, config.default_log_file, mirror)
    transport = StdioTransport(Dispatcher(store, config.server_name, config.server_version))

    try:
        try:
            reader, writer = await open_stdio_streams()
        except (OSError, ValueError) as e:
            logger.error("Failed to initialize stdio transport: %s", e)
            return 1

        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, stop_event.set)

        logger.info("Logging server running on stdio (log dir %s)", store.log_dir)
        serve_task = asyncio.create_task(transport.serve(reader, writer))
        stop_task = asyncio.create_task(stop_event.wait())
        done, _ = await asyncio.wait({serve_task, stop_task},
                                     return_when=asyncio.FIRST_COMPLETED)
        for task in (serve_task, stop_task):
            if task not in done:
                task.cancel()
        if serve_task in done:
            # Surface transport failures
            serve_task.result()
        else:
            logger.info("Received shutdown signal")
        return 0
    finally:
        await mirror.close()


def main() -> int:
    try:
        config = load_config()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    try:
        os.makedirs(config.log_dir, exist_ok=True)
        configure_logging(config)
    except OSError as e:
        print(f"Cannot use log directory {config.log_dir}: {e}", file=sys.stderr)
        return 1
    logger.info("Starting logging server %s %s", config.server_name, config.server_version)

    try:
        return asyncio.run(serve(config))
    except Exception:
        logger.exception("Fatal error in logging server")
        return 1


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
