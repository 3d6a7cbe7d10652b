"""
Test Suite for the Topology Optimization Core

Test Categories:
    - Unit tests: partitioning, grids, mesh, design state, checkpoint I/O,
      optimizer construction, configuration
    - Integration tests: full setup/checkpoint/resume pipeline and
      multi-rank layouts

Serial tests run on ``MPI.COMM_SELF``, so they also pass when the whole
suite is launched with ``mpiexec``. Tests marked ``parallel`` need more
than one rank:

    mpiexec -n 4 python -m pytest tests/integration/test_parallel_layout.py
"""

import threading
import sys
from pathlib import Path

import pytest
from mpi4py import MPI

# Add src directory to path for imports
test_dir = Path(__file__).parent
src_dir = test_dir.parent / 'src'
sys.path.insert(0, str(src_dir))


def serial_comm():
    """Single-rank communicator private to this process."""
    return MPI.COMM_SELF


def world_comm():
    return MPI.COMM_WORLD


parallel = pytest.mark.skipif(
    MPI.COMM_WORLD.size < 2, reason="run under mpiexec with at least 2 ranks"
)


def shared_dir(comm, tmp_path):
    """The root rank's ``tmp_path``, seen by every rank of ``comm``."""
    return Path(comm.bcast(str(tmp_path) if comm.rank == 0 else None, root=0))


class _ThreadGroup:
    def __init__(self, size):
        self.size = size
        self.barrier = threading.Barrier(size)
        self.slots = [None] * size


class ThreadComm:
    """One rank of an object-broadcast communicator simulated by threads."""

    def __init__(self, group, rank):
        self.group = group
        self.rank = rank

    @property
    def size(self):
        return self.group.size

    def bcast(self, obj, root=0):
        self.group.slots[self.rank] = obj
        self.group.barrier.wait()
        value = self.group.slots[root]
        self.group.barrier.wait()
        return value


def run_spmd(size, func, timeout=60.0):
    """
    Run ``func(comm)`` on ``size`` simulated ranks.

    Returns one ``(result, error)`` pair per rank.
    """
    group = _ThreadGroup(size)
    outcomes = [(None, None)] * size

    def worker(rank):
        try:
            outcomes[rank] = (func(ThreadComm(group, rank)), None)
        except Exception as e:
            outcomes[rank] = (None, e)

    threads = [threading.Thread(target=worker, args=(r,)) for r in range(size)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout)
        if t.is_alive():
            group.barrier.abort()
            raise RuntimeError("SPMD test run did not finish")
    return outcomes


__all__ = ['serial_comm', 'world_comm', 'parallel', 'shared_dir', 'ThreadComm', 'run_spmd']
