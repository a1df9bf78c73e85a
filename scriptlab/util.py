"""
Copyright (c) 2009 Satoshi Nakamoto
Distributed under the MIT/X11 software license

Utility functions - logging, error, text/hex helpers
"""

import logging
import re
import sys
from typing import Literal, Optional

from scriptlab import config

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_FORMAT = "%(asctime)s [%(name)s] [%(levelname)s]: %(message)s"
_HEX_RE = re.compile(r"^[0-9a-fA-F]*$")
_WHITESPACE_RE = re.compile(r"\s+")


def get_logger(name: str, log_level: Optional[LogLevel] = None) -> logging.Logger:
    """
    Get a named logger writing to stdout

    The handler is attached once per logger, so calling this repeatedly
    with the same name is safe.
    """
    logger = logging.getLogger(name)
    logger.setLevel(log_level or config.LOG_LEVEL)

    if not logger.handlers:
        handler = logging.StreamHandler(stream=sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)

    return logger


_log = get_logger("scriptlab")


def error(format_str: str, *args) -> bool:
    """
    Error reporting function

    Formats the message, logs it at ERROR level and returns False for use
    in return statements.

    Example:
        if condition:
            return error("Operation failed: %s", reason)
    """
    try:
        message = format_str % args if args else format_str
    except (TypeError, ValueError):
        message = format_str + " " + " ".join(str(arg) for arg in args)

    _log.error(message)
    return False


def strip_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub("", text)


def text_to_hex(text: str) -> str:
    """Convert plain text to hex. "hello" -> "68656c6c6f" """
    return text.encode("utf-8").hex()


def hex_to_text(hex_str: str) -> str:
    """Convert hex to plain text. "68656c6c6f" -> "hello" """
    return bytes.fromhex(strip_whitespace(hex_str)).decode("utf-8", errors="replace")


def is_hex(text: str) -> bool:
    """True if text (ignoring whitespace) is hex digits of even length"""
    cleaned = strip_whitespace(text)
    return bool(_HEX_RE.match(cleaned)) and len(cleaned) % 2 == 0
