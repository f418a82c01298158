"""
Unit tests for logging setup.
"""

from loguru import logger

from referral_engine.config.logging import setup_logging


class TestSetupLogging:
    def test_file_sink_receives_records(self, tmp_path):
        log_file = tmp_path / "engine.log"

        setup_logging(level="INFO", log_file=str(log_file))
        logger.bind(service="Test").info("Member registered")
        logger.debug("hidden at INFO")

        content = log_file.read_text(encoding="utf-8")
        assert "Member registered" in content
        assert "hidden at INFO" not in content

        setup_logging(level="DEBUG")
