"""Utility functions for topology optimization runs."""

from .logging_utils import setup_logging, RootRankFilter
from .mpi import get_default_comm, root_decides, is_root

__all__ = [
    "setup_logging",
    "RootRankFilter",
    "get_default_comm",
    "root_decides",
    "is_root"
]
