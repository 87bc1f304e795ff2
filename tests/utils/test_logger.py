"""
Tests for logging setup.
"""

import io

import pytest
from loguru import logger

from chronicle.utils.exceptions import ConfigurationError
from chronicle.utils.logger import get_logger, setup_logging


@pytest.fixture
def console():
    """Route Chronicle logging into a buffer and restore stderr afterwards."""
    buffer = io.StringIO()
    yield buffer
    setup_logging(level="INFO")


class TestSetupLogging:
    """Tests for sink configuration."""

    def test_level_filters_console(self, console):
        setup_logging(level="warning", console=console)
        log = get_logger("chronicle.test")

        log.info("quiet")
        log.warning("loud")

        output = console.getvalue()
        assert "quiet" not in output
        assert "loud" in output
        assert "WARNING" in output

    def test_unknown_level(self, console):
        with pytest.raises(ConfigurationError, match="Unknown log level"):
            setup_logging(level="chatty", console=console)

    def test_file_sink(self, console, tmp_path):
        setup_logging(
            level="DEBUG", log_to_file=True, log_dir=str(tmp_path / "logs"), console=console
        )

        get_logger("chronicle.test").debug("to file")
        logger.complete()

        files = list((tmp_path / "logs").glob("chronicle_*.log"))
        assert len(files) == 1
        assert "to file" in files[0].read_text()


class TestGetLogger:
    def test_binds_module(self, console):
        setup_logging(level="DEBUG", console=console)

        get_logger("chronicle.core.example").debug("bound")

        assert "bound" in console.getvalue()
