"""Exception hierarchy for the topology-optimization core."""

from typing import Optional


class TopOptError(Exception):
    """Base class for all errors raised by this package."""


class MeshCompatibilityError(TopOptError):
    """Node counts cannot be coarsened the requested number of times."""

    def __init__(self, axis: str, node_count: int, levels: int):
        self.axis = axis
        self.node_count = node_count
        self.levels = levels
        super().__init__(
            f"{axis} - number of nodes {node_count} cannot be halved "
            f"{levels - 1} times"
        )


class PartitionError(TopOptError):
    """Requested grid cannot be split over the available ranks."""


class DependencyOrderError(TopOptError):
    """A stage was invoked before the stage it depends on completed."""


class RestartDisabledError(TopOptError):
    """Checkpoint write requested while restart support is disabled."""


class CheckpointFormatError(TopOptError):
    """Checkpoint container or sidecar does not match the expected layout."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        if path is not None:
            message = f"{message} ({path})"
        super().__init__(message)
