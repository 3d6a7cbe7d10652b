"""Unit tests for rank-aware logging."""

import logging

import pytest

from topopt.config.settings import TopOptConfig
from topopt.utils.logging_utils import ColoredFormatter, RootRankFilter, setup_logging


def _record(level):
    return logging.LogRecord("topopt.test", level, __file__, 1, "message", None, None)


class TestRootRankFilter:

    def test_root_passes_everything(self):
        filt = RootRankFilter(rank=0)
        assert filt.filter(_record(logging.DEBUG))
        assert filt.filter(_record(logging.INFO))

    def test_other_ranks_only_warnings(self):
        filt = RootRankFilter(rank=3)
        assert not filt.filter(_record(logging.INFO))
        assert filt.filter(_record(logging.WARNING))
        assert filt.filter(_record(logging.CRITICAL))

    def test_rank_attached_to_record(self):
        record = _record(logging.ERROR)
        RootRankFilter(rank=2).filter(record)
        assert record.rank == 2


class TestSetupLogging:

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        yield
        for handler in root.handlers:
            if handler not in handlers:
                handler.close()
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_file_only_on_root(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        setup_logging(level="INFO", log_file=log_file, console_output=False, rank=1)
        assert not log_file.exists()

        setup_logging(level="INFO", log_file=log_file, console_output=False, rank=0)
        logging.getLogger("topopt.test").info("hello from root")
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "hello from root" in log_file.read_text()

    def test_console_filter_installed(self):
        setup_logging(level="DEBUG", rank=1)
        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert any(isinstance(f, RootRankFilter) for f in handlers[0].filters)

    def test_all_ranks(self):
        setup_logging(level="INFO", rank=None)
        assert logging.getLogger().handlers[0].filters == []

    def test_colored_console(self):
        setup_logging(level="INFO", colored_console=True)
        assert isinstance(logging.getLogger().handlers[0].formatter, ColoredFormatter)

    def test_config_colored_flag(self):
        config = TopOptConfig()
        config.logging.colored = True
        config.setup_logging(rank=0)
        assert isinstance(logging.getLogger().handlers[0].formatter, ColoredFormatter)

        config.logging.colored = False
        config.setup_logging(rank=0)
        assert not isinstance(logging.getLogger().handlers[0].formatter, ColoredFormatter)

    def test_invalid_level(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            setup_logging(level="LOUD")


class TestHelpers:

    def test_colored_formatter_restores_levelname(self):
        record = _record(logging.WARNING)
        text = ColoredFormatter("%(levelname)s %(message)s").format(record)
        assert "\033[33m" in text
        assert record.levelname == "WARNING"

