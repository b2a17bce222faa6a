import logging
from logging.handlers import RotatingFileHandler

import commonmodel.logging.logger as logger_module
from commonmodel.logging import setup_logging


def test_setup_logging_adds_handlers_once(tmp_path, monkeypatch):
    monkeypatch.setattr(logger_module, "_initialized", False)
    monkeypatch.delenv("OTEL_SDK_DISABLED", raising=False)
    root = logging.getLogger("")
    before = list(root.handlers)
    level = root.level
    try:
        setup_logging(level="DEBUG", log_dir=str(tmp_path), log_file="commonmodel.log")
        added = [h for h in root.handlers if h not in before]
        setup_logging(level="DEBUG", log_dir=str(tmp_path), log_file="commonmodel.log")

        assert [h for h in root.handlers if h not in before] == added
        assert any(isinstance(h, RotatingFileHandler) for h in added)
        assert root.level == logging.DEBUG
        assert (tmp_path / "commonmodel.log").exists()
    finally:
        for handler in root.handlers[:]:
            if handler not in before:
                root.removeHandler(handler)
                handler.close()
        root.setLevel(level)
