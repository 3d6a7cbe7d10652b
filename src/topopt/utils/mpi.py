"""Communicator helpers for SPMD execution."""

import logging
from typing import Any, Callable, Optional, TypeVar

from mpi4py import MPI

logger = logging.getLogger(__name__)

T = TypeVar("T")

ROOT = 0


def get_default_comm():
    """Return ``MPI.COMM_WORLD``."""
    return MPI.COMM_WORLD


def is_root(comm) -> bool:
    return comm.rank == ROOT


def root_decides(comm, decide: Callable[[], T]) -> T:
    """
    Evaluate ``decide`` on the root rank and broadcast the result.

    Every rank must call this collectively. If ``decide`` raises on the root,
    the exception is broadcast and re-raised on every rank so that no rank is
    left waiting in a collective the others have abandoned.
    """
    payload: Any = None
    if is_root(comm):
        try:
            payload = (True, decide())
        except Exception as e:
            payload = (False, e)
    ok, value = comm.bcast(payload, root=ROOT)
    if not ok:
        raise value
    return value


def root_only(comm, action: Callable[[], T]) -> Optional[T]:
    """
    Run ``action`` on the root rank only, e.g. centralized file access.

    The outcome is broadcast so that a failure on the root raises on every
    rank. Returns the action's result on the root and None elsewhere.
    """
    result = None
    error = None
    if is_root(comm):
        try:
            result = action()
        except Exception as e:
            error = e
    error = comm.bcast(error, root=ROOT)
    if error is not None:
        raise error
    return result
