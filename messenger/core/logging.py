# messenger/core/logging.py

import logging
import os
import sys


DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Libraries that log every request / command at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "redis")


def setup_logging() -> None:
    """
    Configure logging for the messenger server and the sync client.

    - Level from LOG_LEVEL (default INFO)
    - One stdout handler on the root logger, unless something (uvicorn, pytest)
      already installed handlers; then only the level is applied
    - The HTTP client used for polling and the redis client are kept at WARNING
      in both cases, otherwise every 2 s poll tick writes two request lines
    """
    log_level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, log_level_name, logging.INFO)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if root_logger.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
    root_logger.addHandler(handler)


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Module logger, e.g. get_logger(__name__) -> "messenger.services.chat_service".

    Kept as the single entry point so handlers/levels stay owned by setup_logging().
    """
    return logging.getLogger(name)
