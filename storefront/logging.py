"""
Logging for the storefront cart.

One stdout handler on the root logger, set up on first import. Level
comes from LOG_LEVEL (default INFO). Modules log through get_logger:

    from storefront.logging import get_logger
    logger = get_logger(__name__)
"""

import logging
import os
import sys
from functools import cache

_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"

# Per-request INFO lines from the rate fetch client
_QUIET_LOGGERS = ("httpx", "httpcore")

# Control characters that would let a client-supplied id forge log lines
_UNSAFE_CHARS = str.maketrans({"\n": "\\n", "\r": "\\r", "\t": "\\t", "\x00": None})


def configure_logging(level: str | None = None) -> None:
    """Attach the stdout handler unless the host application already configured logging."""
    root = logging.getLogger()
    if root.handlers:
        return

    level_name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level_name, logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


configure_logging()


@cache
def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def sanitize_id_for_logging(value: object, max_length: int = 32) -> str:
    """
    Make a client-supplied product id or currency code safe to log.

    Control characters are escaped and long values truncated; empty
    values become "N/A".
    """
    if not value:
        return "N/A"
    text = str(value).translate(_UNSAFE_CHARS)
    if len(text) <= max_length:
        return text
    return f"{text[:max_length]}..."


__all__ = ["configure_logging", "get_logger", "sanitize_id_for_logging"]
