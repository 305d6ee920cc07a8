"""Tests for record_share.core.logger."""
from __future__ import annotations

import logging

from record_share.core.logger import setup_logger


class TestSetupLogger:
    def test_configures_once(self) -> None:
        name = "record_share.test_configures_once"
        log = setup_logger(name, level=logging.DEBUG)
        handlers = list(log.handlers)
        assert setup_logger(name, level=logging.ERROR) is log
        assert log.handlers == handlers
        assert log.level == logging.DEBUG

    def test_log_file(self, tmp_path) -> None:
        path = tmp_path / "logs" / "share.log"
        log = setup_logger("record_share.test_log_file", log_file=path)
        log.info("segment 1/3 received")
        for h in log.handlers:
            h.flush()
        text = path.read_text(encoding="utf-8")
        assert "| INFO | record_share.test_log_file | segment 1/3 received" in text
        for h in list(log.handlers):
            h.close()
            log.removeHandler(h)
