"""Checkpoint/restart of design and optimizer state."""

from .binary_io import BinaryVectorReader, BinaryVectorWriter
from .checkpoint import (
    RestartCheckpointManager, RestartRecord, ResumeDecision, ResumeMode, Slot,
    CONTAINER_FIELDS, format_sidecar, parse_sidecar
)

__all__ = [
    "BinaryVectorReader",
    "BinaryVectorWriter",
    "RestartCheckpointManager",
    "RestartRecord",
    "ResumeDecision",
    "ResumeMode",
    "Slot",
    "CONTAINER_FIELDS",
    "format_sidecar",
    "parse_sidecar"
]
