"""
Tests for logging and text helpers
"""

import logging

from .context import scriptlab
from scriptlab.util import error, get_logger


def test_text_hex():
    """Test text and hex conversion"""
    assert scriptlab.text_to_hex("hello") == "68656c6c6f"
    assert scriptlab.hex_to_text("68 65 6c 6c 6f") == "hello"
    assert scriptlab.hex_to_text("ff") == "�"


def test_is_hex():
    """Test hex detection ignores whitespace and needs even length"""
    assert scriptlab.is_hex("dead beef")
    assert scriptlab.is_hex("")
    assert not scriptlab.is_hex("abc")
    assert not scriptlab.is_hex("OP_1")


def test_get_logger():
    """Test loggers get exactly one handler"""
    logger = get_logger("scriptlab.test", "DEBUG")
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    assert get_logger("scriptlab.test") is logger
    assert len(logger.handlers) == 1


def test_error():
    """Test error logs and returns False"""
    assert error("Operation failed: %s", "reason") is False
    assert error("no args") is False
    assert error("bad format %d", "x") is False
