"""Command-line entry point."""

from __future__ import annotations

import sys

import anyio

from . import __version__
from .config import ConfigError, Settings, load_settings
from .discord_transport import DiscordTransport
from .gateway import StartupError
from .logging import get_logger, setup_logging
from .loop import run_bot
from .modules import load_modules
from .transport import AuthenticationError

logger = get_logger(__name__)


async def _run(settings: Settings) -> None:
    transport = DiscordTransport(settings.token)
    modules = load_modules(settings)
    try:
        await run_bot(transport, transport, modules, version=__version__)
    finally:
        await transport.close()


def main() -> int:
    try:
        settings = load_settings()
    except ConfigError as exc:
        setup_logging()
        logger.error("startup.config_error", error=str(exc))
        return 1

    setup_logging(settings.log_level, settings.log_format)
    logger.info("startup", version=__version__)

    try:
        anyio.run(_run, settings)
    except (StartupError, AuthenticationError) as exc:
        logger.error("startup.failed", error=str(exc))
        return 1
    except KeyboardInterrupt:
        logger.info("shutdown.interrupted")
        return 0

    logger.info("shutdown")
    return 0


if __name__ == "__main__":
    sys.exit(main())
