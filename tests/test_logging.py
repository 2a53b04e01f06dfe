"""Tests for logging configuration."""

import logging

from fpl_chat.utils.logging import LogConfig, get_logger, setup_logging


class TestLogging:
    """Tests for root logger setup and module loggers."""

    def test_log_file(self, tmp_path):
        """Test that records go to the configured file."""
        log_file = tmp_path / "logs" / "chat_cli.log"
        try:
            setup_logging(LogConfig(level="INFO", log_file=str(log_file)))
            get_logger("fpl_chat.tests").info("history restored")
            for handler in logging.getLogger().handlers:
                handler.flush()

            assert "history restored" in log_file.read_text(encoding="utf-8")
        finally:
            setup_logging()

    def test_noisy_loggers_quietened(self):
        """Test that third-party HTTP loggers only emit warnings."""
        setup_logging()
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("anthropic").level == logging.WARNING

    def test_explicit_level(self, monkeypatch):
        """Test that an explicit level beats LOG_LEVEL."""
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        assert get_logger("fpl_chat.a").level == logging.ERROR
        assert get_logger("fpl_chat.b", "debug").level == logging.DEBUG
