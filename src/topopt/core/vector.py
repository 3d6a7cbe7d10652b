"""Distributed vectors bound to a StructuredGrid layout."""

import numpy as np
from typing import List, Optional, TYPE_CHECKING
import logging

from petsc4py import PETSc

from ..utils.mpi import is_root, root_only

if TYPE_CHECKING:
    from .grid import StructuredGrid

logger = logging.getLogger(__name__)


class DistributedVector:
    """
    A PETSc global vector paired with the grid that created it.

    Each rank stores only the block it owns, in the grid's local ordering
    (x fastest, dofs interlaced). Operations that touch more than the local
    block are collective.
    """

    def __init__(self, grid: 'StructuredGrid', vec: Optional[PETSc.Vec] = None):
        """
        Args:
            grid: Owning grid; defines the layout
            vec: Global vector of ``grid.da``, a zero vector when omitted
        """
        if vec is None:
            vec = grid.da.createGlobalVec()
            vec.set(0.0)
        if vec.getLocalSize() != grid.local_size:
            raise ValueError(
                f"Local block has {vec.getLocalSize()} values, grid slab needs {grid.local_size}"
            )
        self.grid = grid
        self.vec = vec

    @property
    def local(self) -> np.ndarray:
        """Locally owned values; writes go through to the vector."""
        return self.vec.array

    @property
    def layout(self):
        return self.grid.layout

    def same_layout(self, other: 'DistributedVector') -> bool:
        return self.layout == other.layout

    def get_size(self) -> int:
        """Global length."""
        return self.vec.getSize()

    def get_local_size(self) -> int:
        return self.vec.getLocalSize()

    def set(self, value: float) -> None:
        self.vec.set(value)

    def duplicate(self) -> 'DistributedVector':
        """New zero vector with the same layout."""
        vec = self.vec.duplicate()
        vec.set(0.0)
        return DistributedVector(self.grid, vec)

    def duplicate_vecs(self, count: int) -> List['DistributedVector']:
        return [self.duplicate() for _ in range(count)]

    def copy(self) -> 'DistributedVector':
        return DistributedVector(self.grid, self.vec.copy())

    def copy_from(self, other: 'DistributedVector') -> None:
        """Overwrite values with those of ``other``; layouts must match."""
        if not self.same_layout(other):
            raise ValueError("Cannot copy between vectors with different layouts")
        other.vec.copy(self.vec)

    def local_view(self) -> np.ndarray:
        """Local block shaped (z, y, x, dof); writes go through to the vector."""
        return self.local.reshape(self.grid.local_array_shape())

    def sum(self) -> float:
        return float(self.vec.sum())

    def min(self) -> float:
        return float(self.vec.min()[1])

    def max(self) -> float:
        return float(self.vec.max()[1])

    def gather_natural(self) -> Optional[np.ndarray]:
        """
        Collectively assemble the global vector in natural ordering.

        Returns:
            Flat array of length ``get_size()`` on the root rank, None elsewhere
        """
        da = self.grid.da
        natural = da.createNaturalVec()
        da.globalToNatural(self.vec, natural)
        scatter, on_root = PETSc.Scatter.toZero(natural)
        try:
            scatter.scatter(natural, on_root, PETSc.InsertMode.INSERT_VALUES,
                            PETSc.ScatterMode.FORWARD)
            values = on_root.getArray().copy() if is_root(self.grid.comm) else None
        finally:
            scatter.destroy()
            on_root.destroy()
            natural.destroy()
        return values

    def scatter_natural(self, natural: Optional[np.ndarray]) -> None:
        """
        Collectively overwrite values from a natural-ordering global array.

        Args:
            natural: Flat global array on the root rank; ignored elsewhere

        Raises:
            ValueError: on every rank when the root's array has the wrong size
        """
        size = self.get_size()

        def check():
            values = np.asarray(natural, dtype=np.float64).reshape(-1)
            if values.size != size:
                raise ValueError(f"Global array has {values.size} values, vector needs {size}")
            return values

        values = root_only(self.grid.comm, check)

        da = self.grid.da
        target = da.createNaturalVec()
        scatter, on_root = PETSc.Scatter.toZero(target)
        try:
            if values is not None:
                on_root.array[:] = values
            scatter.scatter(on_root, target, PETSc.InsertMode.INSERT_VALUES,
                            PETSc.ScatterMode.REVERSE)
            da.naturalToGlobal(target, self.vec)
        finally:
            scatter.destroy()
            on_root.destroy()
            target.destroy()

    def __repr__(self) -> str:
        return f"DistributedVector(size={self.get_size()}, local={self.get_local_size()})"
