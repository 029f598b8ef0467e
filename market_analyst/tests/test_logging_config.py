"""
Tests for logging configuration.
"""

import logging

from market_analyst.logging_config import (
    ColoredFormatter,
    configure_default_logging,
    log_exception,
    setup_logging,
)


class TestSetupLogging:
    def test_file_handler_and_level(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"

        logger = setup_logging(name="market_analyst.test_file", level="debug", log_file=str(log_file), console=False)
        logger.debug("backtest started")
        for handler in logger.handlers:
            handler.flush()

        assert logger.level == logging.DEBUG
        assert not logger.propagate
        assert "backtest started" in log_file.read_text(encoding="utf-8")

    def test_json_format(self, tmp_path):
        log_file = tmp_path / "run.json.log"

        logger = setup_logging(
            name="market_analyst.test_json", level="INFO", log_file=str(log_file), console=False, json_format=True
        )
        logger.info("structured")
        for handler in logger.handlers:
            handler.flush()

        line = log_file.read_text(encoding="utf-8").strip()
        assert line.startswith('{"timestamp": ')
        assert '"message": "structured"' in line

    def test_repeated_setup_replaces_handlers(self):
        setup_logging(name="market_analyst.test_repeat", console=True)
        logger = setup_logging(name="market_analyst.test_repeat", console=True)
        assert len(logger.handlers) == 1

    def test_log_exception_includes_traceback(self, tmp_path):
        log_file = tmp_path / "errors.log"
        logger = setup_logging(name="market_analyst.test_exc", log_file=str(log_file), console=False)

        try:
            raise ValueError("bad candle")
        except ValueError as e:
            log_exception(logger, e, "Simulation failed")
        for handler in logger.handlers:
            handler.flush()

        text = log_file.read_text(encoding="utf-8")
        assert "Simulation failed: bad candle" in text
        assert "Traceback" in text

    def test_default_logging_from_environment(self, tmp_path, monkeypatch):
        log_file = tmp_path / "default.log"
        monkeypatch.setenv("LOG_FILE", str(log_file))
        monkeypatch.setenv("LOG_CONSOLE", "false")
        root = logging.getLogger()
        saved_handlers, saved_level, saved_propagate = list(root.handlers), root.level, root.propagate

        try:
            configure_default_logging()
            for handler in root.handlers:
                handler.flush()
            assert "Logging Initialized" in log_file.read_text(encoding="utf-8")
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
            root.propagate = saved_propagate


class TestColoredFormatter:
    def test_level_name_restored(self):
        formatter = ColoredFormatter("%(levelname)s %(message)s")
        record = logging.LogRecord("x", logging.WARNING, __file__, 1, "careful", None, None)

        output = formatter.format(record)

        assert "\033[33mWARNING\033[0m" in output
        assert record.levelname == "WARNING"
