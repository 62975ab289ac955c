"""Tests for the structlog configuration wrapper.

Deliberately minimal; structlog's own suite covers the processors.
"""

import logging

import structlog

from buff.core.logging import configure_structlog


class TestConfigureStructlog:
    def test_configure_does_not_raise_in_debug_mode(self) -> None:
        configure_structlog(debug=True)

    def test_configure_does_not_raise_in_quiet_mode(self) -> None:
        configure_structlog(debug=False)

    def test_logger_usable_after_configure(self) -> None:
        configure_structlog(debug=True)
        logger = structlog.get_logger("test")
        logger.info("test message", key="value")

    def test_quiet_mode_raises_root_level_to_warning(self) -> None:
        configure_structlog(debug=False)
        assert logging.getLogger().level == logging.WARNING

    def test_debug_mode_lowers_root_level(self) -> None:
        configure_structlog(debug=True)
        assert logging.getLogger().level == logging.DEBUG

    def test_output_goes_to_stderr(self, capsys) -> None:
        configure_structlog(debug=False)
        structlog.get_logger("test").warning("careful")
        captured = capsys.readouterr()
        assert "careful" in captured.err
        assert captured.out == ""
