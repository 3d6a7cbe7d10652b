"""Ownership tables of structured grids over a Cartesian process grid."""

import math
import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from petsc4py import PETSc

from ..exceptions import PartitionError

logger = logging.getLogger(__name__)


def resolve_proc_sizes(
    global_shape: Sequence[int],
    size: int,
    requested: Optional[Sequence[Optional[int]]] = None
) -> Tuple[int, ...]:
    """
    Turn a requested process grid into DMDA ``proc_sizes``.

    Fixed entries are kept. A single ``None`` axis receives the remaining
    ranks; with more than one ``None`` axis those axes are left to PETSc
    (``PETSc.DECIDE``).

    Args:
        global_shape: Global number of points per axis (x first)
        size: Number of ranks in the communicator
        requested: Optional ranks per axis; ``None`` entries mean "decide"

    Returns:
        Ranks per axis, possibly containing ``PETSc.DECIDE``
    """
    dim = len(global_shape)
    if dim not in (2, 3):
        raise PartitionError(f"Only 2D and 3D grids are supported, got {dim}D")
    if requested is None:
        return (PETSc.DECIDE,) * dim
    if len(requested) != dim:
        raise PartitionError(f"Process grid {tuple(requested)} does not match {dim}D grid")

    fixed = [int(r) for r in requested if r is not None]
    if any(r < 1 for r in fixed):
        raise PartitionError(f"Invalid process grid {tuple(requested)}")
    fixed_product = math.prod(fixed)
    free = [axis for axis, r in enumerate(requested) if r is None]

    if not free:
        if fixed_product != size:
            raise PartitionError(
                f"Process grid {tuple(fixed)} requires {fixed_product} ranks, have {size}"
            )
        procs = tuple(fixed)
    elif size % fixed_product != 0:
        raise PartitionError(
            f"Process grid {tuple(requested)}: {fixed_product} ranks on the fixed axes "
            f"do not divide {size}"
        )
    elif len(free) == 1:
        procs = tuple(size // fixed_product if r is None else int(r) for r in requested)
    else:
        procs = tuple(PETSc.DECIDE if r is None else int(r) for r in requested)

    for axis, (n, p) in enumerate(zip(global_shape, procs)):
        if p != PETSc.DECIDE and n < p:
            raise PartitionError(
                f"Partition in {'xyz'[axis]} direction is too fine: {n} points over {p} ranks"
            )
    return procs


@dataclass(frozen=True)
class PartitionTable:
    """Per-axis slab extents for every position of the process grid."""
    proc_grid: Tuple[int, ...]
    ranges: Tuple[Tuple[int, ...], ...]

    @classmethod
    def from_dmda(cls, da: PETSc.DMDA) -> 'PartitionTable':
        """Read the decomposition PETSc chose for ``da``."""
        ranges = tuple(tuple(int(n) for n in r) for r in da.getOwnershipRanges())
        return cls(tuple(int(p) for p in da.getProcSizes()), ranges)

    @property
    def dim(self) -> int:
        return len(self.proc_grid)

    @property
    def size(self) -> int:
        return math.prod(self.proc_grid)

    @property
    def global_shape(self) -> Tuple[int, ...]:
        return tuple(sum(r) for r in self.ranges)

    def element_table(self) -> 'PartitionTable':
        """
        Derive the partition of the cell-centred element grid.

        The element grid has one cell fewer per axis than the node grid. Only
        the lowest slab of each axis absorbs that difference, so every rank
        owns the elements whose lower-left node it owns.
        """
        ranges = []
        for axis, axis_ranges in enumerate(self.ranges):
            adjusted = list(axis_ranges)
            adjusted[0] -= 1
            if adjusted[0] < 1:
                raise PartitionError(
                    f"First {'xyz'[axis]} slab owns a single node; "
                    f"element grid would leave rank 0 empty"
                )
            ranges.append(tuple(adjusted))
        return PartitionTable(self.proc_grid, tuple(ranges))

    def rank_coords(self, rank: int) -> Tuple[int, ...]:
        """Position of ``rank`` in the process grid, x varying fastest."""
        if not 0 <= rank < self.size:
            raise PartitionError(f"Rank {rank} outside process grid {self.proc_grid}")
        coords = []
        for p in self.proc_grid:
            coords.append(rank % p)
            rank //= p
        return tuple(coords)

    def slab(self, rank: int) -> Tuple[Tuple[int, ...], Tuple[int, ...]]:
        """
        Ownership of ``rank``.

        Returns:
            (starts, extents) per axis in global indices
        """
        coords = self.rank_coords(rank)
        starts = tuple(sum(r[:c]) for r, c in zip(self.ranges, coords))
        extents = tuple(r[c] for r, c in zip(self.ranges, coords))
        return starts, extents

    def __str__(self) -> str:
        return f"PartitionTable(procs={self.proc_grid}, ranges={self.ranges})"
