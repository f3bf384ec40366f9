"""Logging utilities."""

import logging
import sys


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Per-request and event loop chatter drowns out pipeline progress
NOISY_LOGGERS = ("asyncio", "httpx", "httpcore")


def setup_logging(level: str = "INFO") -> int:
    """Send pipeline logs to stdout at ``level`` and return the numeric level.

    Unknown level names fall back to INFO. Calling this again replaces the
    previous configuration, so a ``--log-level`` override wins over the
    configured one.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    return log_level
