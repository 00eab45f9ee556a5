"""Root logging setup shared by the API app and the CLI."""

import logging
import sys

from buildout_proxy.config import Settings, get_settings


def setup_logging(settings: Settings = None, level_name: str = None) -> None:
    """Configure the root logger at LOG_LEVEL (or level_name), writing to stdout."""
    settings = settings or get_settings()
    level_name = level_name or settings.log_level
    level = getattr(logging, level_name.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
    root_logger.addHandler(handler)

    # Suppress noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
