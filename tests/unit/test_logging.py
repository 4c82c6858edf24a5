"""Unit tests for logging setup."""

import logging

import pytest

from chatbridge.config import ChatBridgeConfig, LoggingConfig
from chatbridge.utils.logging import configure_logging, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_stream_only(self):
        logger = setup_logging("chatbridge-test", level="WARNING")
        root = logging.getLogger()
        assert logger.name == "chatbridge-test"
        assert root.level == logging.WARNING
        assert not any(isinstance(h, logging.FileHandler) for h in root.handlers)

    def test_file_handler(self, tmp_path):
        setup_logging("chatbridge-test", log_dir=tmp_path / "logs", level=logging.DEBUG)
        logging.getLogger("chatbridge-test").debug("hello from test")
        for handler in logging.getLogger().handlers:
            handler.flush()
        log_text = (tmp_path / "logs" / "chatbridge-test.log").read_text()
        assert "hello from test" in log_text

    def test_overwrite_mode(self, tmp_path):
        log_file = tmp_path / "chatbridge-test.log"
        log_file.write_text("stale line\n")
        setup_logging("chatbridge-test", log_dir=tmp_path, mode="w")
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "stale line" not in log_file.read_text()


class TestConfigureLogging:
    """Tests for config-driven logging."""

    def test_uses_logging_section(self, tmp_path):
        config = ChatBridgeConfig(logging=LoggingConfig(level="DEBUG", log_dir=tmp_path))
        configure_logging("chatbridge", config)
        assert logging.getLogger().level == logging.DEBUG
        assert (tmp_path / "chatbridge.log").exists()
