"""Distributed structured grid used for both nodal and element fields."""

import math
import numpy as np
from typing import Optional, Sequence, Tuple, TYPE_CHECKING
import logging

from petsc4py import PETSc

from ..exceptions import PartitionError
from .partition import PartitionTable, resolve_proc_sizes

if TYPE_CHECKING:
    from .vector import DistributedVector

logger = logging.getLogger(__name__)


class StructuredGrid:
    """
    A logically Cartesian grid distributed over a communicator.

    Wraps a PETSc DMDA. Every rank owns one box-shaped slab, recorded in a
    PartitionTable read back from the DMDA. Grid construction is collective:
    all ranks must build the same grids in the same order.
    """

    def __init__(
        self,
        comm,
        global_shape: Sequence[int],
        bounds: Sequence[float],
        dof: int = 1,
        stencil_width: int = 1,
        partition: Optional[PartitionTable] = None,
        proc_grid: Optional[Sequence[Optional[int]]] = None,
        element_type: Optional[str] = None
    ):
        """
        Create a structured grid.

        Args:
            comm: mpi4py communicator
            global_shape: Number of points per axis, x first
            bounds: Coordinates of the first and last point per axis,
                (x_min, x_max, y_min, y_max[, z_min, z_max])
            dof: Values stored per grid point
            stencil_width: Ghost layer width used by assembly kernels
            partition: Explicit ownership ranges; PETSc decides when omitted
            proc_grid: Optional ranks per axis when ``partition`` is omitted
            element_type: Finite element type tag for nodal grids (e.g. "Q1")
        """
        global_shape = tuple(int(n) for n in global_shape)
        dim = len(global_shape)
        if dim not in (2, 3):
            raise ValueError(f"Only 2D and 3D grids are supported, got {dim}D")
        if len(bounds) != 2 * dim:
            raise ValueError(f"Bounds must have {2 * dim} entries for a {dim}D grid")
        if any(n < 2 for n in global_shape):
            raise ValueError("Grid must have at least 2 points in each direction")
        if dof < 1:
            raise ValueError(f"Invalid number of dofs per point: {dof}")

        if partition is None:
            proc_sizes = resolve_proc_sizes(global_shape, comm.size, proc_grid)
            ownership_ranges = None
        elif partition.global_shape != global_shape:
            raise ValueError(
                f"Partition covers {partition.global_shape}, grid is {global_shape}"
            )
        else:
            proc_sizes = partition.proc_grid
            ownership_ranges = partition.ranges

        try:
            self.da = PETSc.DMDA().create(
                dim=dim,
                dof=dof,
                sizes=global_shape,
                proc_sizes=proc_sizes,
                boundary_type=(PETSc.DM.BoundaryType.NONE,) * dim,
                stencil_type=PETSc.DMDA.StencilType.BOX,
                stencil_width=stencil_width,
                ownership_ranges=ownership_ranges,
                comm=comm,
            )
        except PETSc.Error as e:
            raise PartitionError(
                f"Cannot distribute {global_shape} over {comm.size} ranks "
                f"(requested {proc_sizes}): {e}"
            ) from e
        self.da.setUniformCoordinates(*bounds)

        self.comm = comm
        self.dim = dim
        self.global_shape = global_shape
        self.bounds = tuple(float(b) for b in bounds)
        self.dof = dof
        self.stencil_width = stencil_width
        self.partition = PartitionTable.from_dmda(self.da)
        self.element_type = element_type

        self.spacing = tuple(
            (self.bounds[2 * i + 1] - self.bounds[2 * i]) / (n - 1)
            for i, n in enumerate(global_shape)
        )
        starts, extents = self.da.getCorners()
        self.corners = tuple(int(s) for s in starts)
        self.local_shape = tuple(int(e) for e in extents)

        logger.debug(f"Created grid {self} on rank {comm.rank}: "
                     f"corners={self.corners}, local={self.local_shape}")

    @property
    def global_size(self) -> int:
        """Total number of values in a global vector."""
        return math.prod(self.global_shape) * self.dof

    @property
    def local_size(self) -> int:
        """Number of values owned by this rank."""
        return math.prod(self.local_shape) * self.dof

    @property
    def proc_grid(self) -> Tuple[int, ...]:
        return self.partition.proc_grid

    @property
    def layout(self) -> Tuple:
        """Key identifying the distributed layout of vectors on this grid."""
        return (self.global_shape, self.dof, self.partition)

    def ownership_ranges(self) -> Tuple[Tuple[int, ...], ...]:
        """Per-axis slab extents of every rank (replicated on all ranks)."""
        return self.partition.ranges

    def coordinates(self, axis: int) -> np.ndarray:
        """Global point coordinates along ``axis``."""
        lo, hi = self.bounds[2 * axis], self.bounds[2 * axis + 1]
        return np.linspace(lo, hi, self.global_shape[axis])

    def local_coordinates(self, axis: int) -> np.ndarray:
        """Coordinates of the points this rank owns along ``axis``."""
        start = self.corners[axis]
        return self.coordinates(axis)[start:start + self.local_shape[axis]]

    def local_array_shape(self) -> Tuple[int, ...]:
        """Shape of a local block: reversed axes (z, y, x) then dof."""
        return tuple(reversed(self.local_shape)) + (self.dof,)

    def natural_array_shape(self) -> Tuple[int, ...]:
        """Shape of a global array in natural ordering: (z, y, x, dof)."""
        return tuple(reversed(self.global_shape)) + (self.dof,)

    def local_slices(self, rank: Optional[int] = None) -> Tuple[slice, ...]:
        """Index of a rank's slab inside a natural-ordering array."""
        if rank is None:
            starts, extents = self.corners, self.local_shape
        else:
            starts, extents = self.partition.slab(rank)
        slices = [slice(s, s + e) for s, e in zip(starts, extents)]
        return tuple(reversed(slices)) + (slice(None),)

    def create_global_vector(self, value: float = 0.0) -> 'DistributedVector':
        """Collectively create a vector laid out on this grid."""
        from .vector import DistributedVector
        vec = self.da.createGlobalVec()
        vec.set(value)
        return DistributedVector(self, vec)

    def __str__(self) -> str:
        shape = "x".join(str(n) for n in self.global_shape)
        h = ", ".join(f"{s:.6f}" for s in self.spacing)
        return f"StructuredGrid({shape}, dof={self.dof}, h=({h}), procs={self.proc_grid})"

    def __repr__(self) -> str:
        return (f"StructuredGrid(global_shape={self.global_shape}, bounds={self.bounds}, "
                f"dof={self.dof}, stencil_width={self.stencil_width}, "
                f"partition={self.partition})")
