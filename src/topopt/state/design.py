"""Distributed optimization state allocated against the mesh."""

import numpy as np
from dataclasses import dataclass
from typing import List, Optional
import logging

from ..core.mesh import Mesh
from ..core.vector import DistributedVector
from ..exceptions import DependencyOrderError

logger = logging.getLogger(__name__)

NUM_PASSIVE_FIELDS = 4

# Lower design bound used with sensitivity filtering; the filter divides by x.
SENSITIVITY_FILTER_XMIN = 0.001


@dataclass
class DesignState:
    """
    Every per-iteration field of the optimization.

    Element fields share the element grid layout, node fields share the
    node grid layout, and constraint collections have length ``m``.
    """
    x: DistributedVector
    x_tilde: DistributedVector
    x_phys: DistributedVector
    x_old: DistributedVector
    x_min: DistributedVector
    x_max: DistributedVector
    dfdx: DistributedVector
    dgdx: List[DistributedVector]
    gx: np.ndarray
    x_passive: List[DistributedVector]
    node_density: DistributedVector
    node_adding_counts: DistributedVector
    m: int

    @property
    def n(self) -> int:
        """Global number of design variables."""
        return self.x.get_size()

    def element_fields(self) -> List[DistributedVector]:
        return ([self.x, self.x_tilde, self.x_phys, self.x_old, self.x_min,
                 self.x_max, self.dfdx] + list(self.dgdx) + list(self.x_passive))

    def node_fields(self) -> List[DistributedVector]:
        return [self.node_density, self.node_adding_counts]


class DesignStateStore:
    """Allocates and default-initializes the design state for a mesh."""

    def __init__(
        self,
        mesh: Optional[Mesh],
        num_constraints: int = 1,
        volfrac: float = 0.5,
        Xmin: float = 0.0,
        Xmax: float = 1.0,
        sensitivity_filter: bool = False
    ):
        """
        Args:
            mesh: Finished mesh from MeshBuilder.build()
            num_constraints: Number of constraints m
            volfrac: Target volume fraction; initial value of the design fields
            Xmin: Lower design limit
            Xmax: Upper design limit
            sensitivity_filter: Raise Xmin to avoid division by zero in the filter
        """
        if num_constraints < 1:
            raise ValueError(f"Number of constraints must be positive, got {num_constraints}")
        self.mesh = mesh
        self.m = int(num_constraints)
        self.volfrac = float(volfrac)
        self.Xmax = float(Xmax)
        self.Xmin = SENSITIVITY_FILTER_XMIN if sensitivity_filter else float(Xmin)
        self.state: Optional[DesignState] = None

    def allocate(self) -> DesignState:
        """
        Collectively create every state vector.

        Raises:
            DependencyOrderError: if no valid mesh has been built yet
        """
        mesh = self.mesh
        if not isinstance(mesh, Mesh) or mesh.nodes is None or mesh.elements is None:
            raise DependencyOrderError(
                "DesignStateStore.allocate() called before the mesh was built"
            )

        # Order of creation matters: every rank must issue the same collectives.
        x_phys = mesh.elements.create_global_vector()
        node_density = mesh.nodes.create_global_vector()

        x = x_phys.duplicate()
        x_tilde = x_phys.duplicate()
        for vec in (x, x_tilde, x_phys):
            vec.set(self.volfrac)

        dfdx = x.duplicate()
        dgdx = x.duplicate_vecs(self.m)

        x_min = x.duplicate()
        x_max = x.duplicate()
        x_old = x.duplicate()
        for vec in (x_min, x_max, x_old):
            vec.set(self.volfrac)

        x_passive = x_phys.duplicate_vecs(NUM_PASSIVE_FIELDS)
        node_adding_counts = node_density.duplicate()

        self.state = DesignState(
            x=x,
            x_tilde=x_tilde,
            x_phys=x_phys,
            x_old=x_old,
            x_min=x_min,
            x_max=x_max,
            dfdx=dfdx,
            dgdx=dgdx,
            gx=np.zeros(self.m),
            x_passive=x_passive,
            node_density=node_density,
            node_adding_counts=node_adding_counts,
            m=self.m,
        )
        logger.info(f"# Problem size: n= {self.state.n}, m= {self.m}")
        return self.state
