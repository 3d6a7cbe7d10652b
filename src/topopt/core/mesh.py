"""Node and element grids for the finite element mesh."""

import sys
import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .grid import StructuredGrid
from .variants import PhysicsVariant
from ..exceptions import MeshCompatibilityError

logger = logging.getLogger(__name__)

AXIS_NAMES = ("X", "Y", "Z")

BANNER = "#" * 72


def multigrid_divisor(levels: int) -> int:
    """Number of cells each axis must be divisible by for ``levels`` levels."""
    if levels < 1:
        raise ValueError(f"Number of multigrid levels must be positive, got {levels}")
    return 2 ** (levels - 1)


def check_multigrid_compatibility(nxyz: Sequence[int], levels: int) -> None:
    """
    Verify that every axis can be halved ``levels - 1`` times.

    Raises:
        MeshCompatibilityError: for the first axis that cannot be coarsened
    """
    divisor = multigrid_divisor(levels)
    for axis, n in enumerate(nxyz):
        if (n - 1) % divisor != 0:
            raise MeshCompatibilityError(AXIS_NAMES[axis], n, levels)


@dataclass(frozen=True)
class Mesh:
    """Node grid plus the element grid aligned with its partition."""
    nodes: StructuredGrid
    elements: StructuredGrid
    levels: int

    @property
    def dim(self) -> int:
        return self.nodes.dim

    @property
    def nxyz(self) -> Tuple[int, ...]:
        return self.nodes.global_shape

    @property
    def spacing(self) -> Tuple[float, ...]:
        return self.nodes.spacing

    @property
    def num_elements(self) -> int:
        return self.elements.global_size


class MeshBuilder:
    """
    Builds the nodal grid and a partition-aligned element grid.

    The mesh must be coarsenable by the multigrid preconditioner; an
    incompatible request terminates the process before anything is allocated.
    """

    def __init__(
        self,
        comm,
        nxyz: Sequence[int],
        xc: Sequence[float],
        levels: int = 4,
        dofs_per_node: int = 1,
        proc_grid: Optional[Sequence[Optional[int]]] = None
    ):
        """
        Args:
            comm: Communicator shared by every participating rank
            nxyz: Node count per axis
            xc: Bounding box (x_min, x_max, y_min, y_max[, z_min, z_max])
            levels: Number of multigrid levels
            dofs_per_node: Nodal degrees of freedom of the physics variant
            proc_grid: Optional ranks per axis
        """
        if len(nxyz) not in (2, 3):
            raise ValueError(f"Only 2D and 3D meshes are supported, got {len(nxyz)} axes")
        if len(xc) != 2 * len(nxyz):
            raise ValueError(f"Bounding box needs {2 * len(nxyz)} coordinates")
        self.comm = comm
        self.nxyz = tuple(int(n) for n in nxyz)
        self.xc = tuple(float(c) for c in xc)
        self.levels = int(levels)
        self.dofs_per_node = int(dofs_per_node)
        self.proc_grid = proc_grid

    @classmethod
    def from_variant(
        cls,
        comm,
        variant: PhysicsVariant,
        nxyz: Optional[Sequence[int]] = None,
        xc: Optional[Sequence[float]] = None,
        levels: int = 4,
        proc_grid: Optional[Sequence[Optional[int]]] = None
    ) -> 'MeshBuilder':
        """Builder using the variant's defaults for anything not given."""
        return cls(
            comm,
            nxyz if nxyz is not None else variant.nxyz,
            xc if xc is not None else variant.xc,
            levels=levels,
            dofs_per_node=variant.dofs_per_node,
            proc_grid=proc_grid,
        )

    @property
    def dim(self) -> int:
        return len(self.nxyz)

    def validate(self) -> None:
        """Raise MeshCompatibilityError if the mesh cannot be coarsened."""
        check_multigrid_compatibility(self.nxyz, self.levels)

    def build(self) -> Mesh:
        """
        Collectively create the node and element grids.

        Exits the process with status 1 when the node counts are not
        compatible with the number of multigrid levels.
        """
        self._log_settings()
        try:
            self.validate()
        except MeshCompatibilityError as e:
            logger.critical("MESH DIMENSION NOT COMPATIBLE WITH NUMBER OF MULTIGRID LEVELS!")
            logger.critical(str(e))
            sys.exit(1)

        nodes = StructuredGrid(
            self.comm,
            self.nxyz,
            self.xc,
            dof=self.dofs_per_node,
            stencil_width=1,
            proc_grid=self.proc_grid,
            element_type="Q1",
        )

        # Same process grid, first slab of each axis one cell shorter.
        element_partition = nodes.partition.element_table()
        half = [h / 2.0 for h in nodes.spacing]
        element_bounds = []
        for axis in range(self.dim):
            element_bounds.append(self.xc[2 * axis] + half[axis])
            element_bounds.append(self.xc[2 * axis + 1] - half[axis])

        elements = StructuredGrid(
            self.comm,
            tuple(n - 1 for n in self.nxyz),
            element_bounds,
            dof=1,
            stencil_width=0,
            partition=element_partition,
        )

        logger.info(f"Node grid: {nodes}")
        logger.info(f"Element grid: {elements}")
        return Mesh(nodes=nodes, elements=elements, levels=self.levels)

    def _log_settings(self) -> None:
        axes = "xyz"[:self.dim]
        counts = ",".join(str(n) for n in self.nxyz)
        ndof = self.dofs_per_node
        for n in self.nxyz:
            ndof *= n
        extents = ",".join(
            f"{self.xc[2 * i + 1] - self.xc[2 * i]:f}" for i in range(self.dim)
        )
        logger.info(BANNER)
        logger.info("############################ FEM settings ##############################")
        logger.info(f"# Number of nodes: ({','.join('-n' + a for a in axes)}): ({counts})")
        logger.info(f"# Number of degrees of freedom: {ndof}")
        logger.info(f"# Number of elements: ({','.join(str(n - 1) for n in self.nxyz)})")
        logger.info(f"# Dimensions: ({extents})")
        logger.info(f"# -nlvls: {self.levels}")
        logger.info(BANNER)
