"""Logging utilities for SPMD topology optimization runs."""

import logging
import sys
from pathlib import Path
from typing import Optional, Union


class ColoredFormatter(logging.Formatter):
    """Colored console formatter for better readability."""

    # ANSI color codes
    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'        # Reset
    }

    def format(self, record):
        """Add color to log messages."""
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = (self.COLORS[levelname] +
                                levelname +
                                self.COLORS['RESET'])
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class RootRankFilter(logging.Filter):
    """
    Let only one rank emit routine records.

    Every rank runs the same code, so without this filter each INFO line
    would be printed once per rank. Warnings and errors pass on all ranks.
    """

    def __init__(self, rank: int, root: int = 0, min_level: int = logging.WARNING):
        super().__init__()
        self.rank = rank
        self.root = root
        self.min_level = min_level

    def filter(self, record):
        record.rank = self.rank
        return self.rank == self.root or record.levelno >= self.min_level


def _parse_level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    numeric_level = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {level}')
    return numeric_level


def setup_logging(
    level: Union[str, int] = logging.INFO,
    format_string: Optional[str] = None,
    log_file: Optional[Union[str, Path]] = None,
    console_output: bool = True,
    colored_console: bool = False,
    rank: Optional[int] = 0
) -> None:
    """
    Setup logging for a (possibly parallel) run.

    Args:
        level: Logging level
        format_string: Custom format string
        log_file: Path to log file (optional); only the root rank writes it
        console_output: Enable console output
        colored_console: Use colored console output
        rank: Rank of this process; None lets every rank log everything
    """
    level = _parse_level(level)
    if format_string is None:
        format_string = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    # Get root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Clear existing handlers
    root_logger.handlers.clear()

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)

        if colored_console:
            console_formatter = ColoredFormatter(format_string)
        else:
            console_formatter = logging.Formatter(format_string)

        console_handler.setFormatter(console_formatter)

        if rank is not None:
            console_handler.addFilter(RootRankFilter(rank))

        root_logger.addHandler(console_handler)

    if log_file and (rank is None or rank == 0):
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(format_string))
        root_logger.addHandler(file_handler)

    logger = logging.getLogger(__name__)
    logger.debug(f"Logging initialized: level={logging.getLevelName(level)}, "
                 f"console={console_output}, file={log_file is not None}, rank={rank}")

