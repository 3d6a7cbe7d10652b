"""Structured grids, partitioning and mesh construction."""

from .grid import StructuredGrid
from .vector import DistributedVector
from .partition import PartitionTable, resolve_proc_sizes
from .mesh import Mesh, MeshBuilder, check_multigrid_compatibility, multigrid_divisor
from .variants import Physics, PhysicsVariant, get_variant, parse_variant

__all__ = [
    "StructuredGrid",
    "DistributedVector",
    "PartitionTable",
    "resolve_proc_sizes",
    "Mesh",
    "MeshBuilder",
    "check_multigrid_compatibility",
    "multigrid_divisor",
    "Physics",
    "PhysicsVariant",
    "get_variant",
    "parse_variant"
]
