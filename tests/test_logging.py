"""
Unit tests for picking the log handler from the app config.
"""

import logging
from logging.handlers import RotatingFileHandler
from types import SimpleNamespace

from academy.logging_setup import FILE_FORMAT, LOG_FORMAT, _handler_for


class TestHandlerChoice:
    def test_console_by_default(self):
        handler, fmt = _handler_for(SimpleNamespace(config={"LOG_FILE": None}))
        assert type(handler) is logging.StreamHandler
        assert fmt == LOG_FORMAT

    def test_rotating_file(self, tmp_path):
        path = tmp_path / "logs" / "academy.log"
        handler, fmt = _handler_for(SimpleNamespace(config={"LOG_FILE": str(path)}))
        try:
            assert isinstance(handler, RotatingFileHandler)
            assert handler.maxBytes == 2_000_000
            assert handler.backupCount == 5
            assert fmt == FILE_FORMAT
            assert path.parent.is_dir()
        finally:
            handler.close()
