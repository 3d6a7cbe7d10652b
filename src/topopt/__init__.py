"""
Topology Optimization Core

Mesh construction compatible with geometric multigrid, allocation of the
distributed optimization state, and double-buffered checkpoint/restart for
long-running parallel topology optimization jobs.
"""

# Version information
from ._version import __version__

from .core import (
    StructuredGrid, DistributedVector, PartitionTable, Mesh, MeshBuilder,
    Physics, PhysicsVariant, get_variant
)
from .state import DesignState, DesignStateStore
from .restart import RestartCheckpointManager, RestartRecord, ResumeDecision, ResumeMode, Slot
from .optimizer import MMAState, OptimizerStateFactory, OptimizerStart
from .config import TopOptConfig, create_default_config
from .problem import TopOptProblem
from .exceptions import (
    TopOptError, MeshCompatibilityError, PartitionError, DependencyOrderError,
    RestartDisabledError, CheckpointFormatError
)

__all__ = [
    "StructuredGrid",
    "DistributedVector",
    "PartitionTable",
    "Mesh",
    "MeshBuilder",
    "Physics",
    "PhysicsVariant",
    "get_variant",
    "DesignState",
    "DesignStateStore",
    "RestartCheckpointManager",
    "RestartRecord",
    "ResumeDecision",
    "ResumeMode",
    "Slot",
    "MMAState",
    "OptimizerStateFactory",
    "OptimizerStart",
    "TopOptConfig",
    "create_default_config",
    "TopOptProblem",
    "TopOptError",
    "MeshCompatibilityError",
    "PartitionError",
    "DependencyOrderError",
    "RestartDisabledError",
    "CheckpointFormatError"
]
