"""Unit tests for the shared logging setup."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import logging
from logging.handlers import RotatingFileHandler
from app.utils.logger import get_logger


class TestGetLogger:
    def test_named_logger_and_single_configuration(self):
        get_logger("app.one")
        handlers_before = len(logging.getLogger().handlers)

        log = get_logger("app.two")

        assert log.name == "app.two"
        assert len(logging.getLogger().handlers) == handlers_before

    def test_writes_to_rotating_service_log(self):
        get_logger(__name__)
        files = [h for h in logging.getLogger().handlers if isinstance(h, RotatingFileHandler)]
        assert any(h.baseFilename.endswith("deadlinemind.log") for h in files)

    def test_httpx_request_lines_are_quiet(self):
        get_logger(__name__)
        assert logging.getLogger("httpx").level == logging.WARNING
