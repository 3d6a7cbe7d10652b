"""Double-buffered checkpoints of the design and optimizer state."""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union
import logging

from .binary_io import BinaryVectorReader, BinaryVectorWriter
from ..core.vector import DistributedVector
from ..exceptions import CheckpointFormatError, RestartDisabledError
from ..state.design import DesignState, NUM_PASSIVE_FIELDS
from ..utils.mpi import root_decides, root_only

logger = logging.getLogger(__name__)

BANNER = "#" * 62

# Order of the vectors inside a checkpoint container.
CONTAINER_FIELDS = (
    ("x", "xPhys", "xo1", "xo2", "U", "L")
    + tuple(f"xPassive{i}" for i in range(NUM_PASSIVE_FIELDS))
    + ("nodeDensity", "nodeAddingCounts")
)


class Slot(Enum):
    """The two alternating checkpoint slots."""
    A = "00"
    B = "01"


class ResumeMode(Enum):
    COLD = "cold"
    DESIGN_ONLY = "design_only"
    CONTINUE = "continue"


@dataclass(frozen=True)
class ResumeDecision:
    """Outcome of the restart lookup, identical on every rank."""
    mode: ResumeMode
    vector_path: str = ""
    iteration_path: str = ""

    @property
    def resume(self) -> bool:
        return self.mode is not ResumeMode.COLD


@dataclass
class RestartRecord:
    """Iteration, objective scale and the ordered vectors of one checkpoint."""
    iteration: int
    scale: float
    vectors: List[DistributedVector] = field(default_factory=list)

    def as_dict(self) -> Dict[str, DistributedVector]:
        return dict(zip(CONTAINER_FIELDS, self.vectors))


def format_sidecar(iteration: int, scale: float) -> str:
    """``"<iteration> <scale>\\n"`` with the scale in round-trip precision."""
    return f"{int(iteration)} {float(scale)!r}\n"


def parse_sidecar(text: str, path: Optional[str] = None) -> Tuple[int, float]:
    tokens = text.split()
    if len(tokens) < 2:
        raise CheckpointFormatError("Iteration file must hold '<iteration> <scale>'", path)
    try:
        return int(tokens[0]), float(tokens[1])
    except ValueError:
        raise CheckpointFormatError(f"Malformed iteration file contents: {text!r}", path) from None


def read_sidecar(path: Union[str, Path]) -> Tuple[int, float]:
    with open(path, 'r') as f:
        return parse_sidecar(f.read(), str(path))


def write_sidecar(path: Union[str, Path], iteration: int, scale: float) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        f.write(format_sidecar(iteration, scale))


class RestartCheckpointManager:
    """
    Writes and reads restart points for long-running jobs.

    Checkpoints alternate between two slots so that the previous slot stays
    intact while the next one is written. All methods are collective.
    """

    def __init__(
        self,
        comm,
        enabled: bool = True,
        workdir: Union[str, Path] = "./",
        restart_file_vec: str = "",
        restart_file_itr: str = "",
        only_load_design: bool = False
    ):
        """
        Args:
            comm: Communicator shared by every participating rank
            enabled: Restart support; writes are refused when False
            workdir: Directory receiving new checkpoints
            restart_file_vec: Container to resume from ("" for none)
            restart_file_itr: Iteration file to resume from ("" for none)
            only_load_design: Resume only the design, not the optimizer history
        """
        self.comm = comm
        self.enabled = bool(enabled)
        self.workdir = Path(workdir)
        self.restart_file_vec = restart_file_vec or ""
        self.restart_file_itr = restart_file_itr or ""
        self.only_load_design = bool(only_load_design)

        # Slot of the last successful write; the next write takes the other one.
        self.last_slot: Optional[Slot] = None

        self.xo1: Optional[DistributedVector] = None
        self.xo2: Optional[DistributedVector] = None
        self.upper: Optional[DistributedVector] = None
        self.lower: Optional[DistributedVector] = None

    @classmethod
    def from_config(cls, comm, restart_config) -> 'RestartCheckpointManager':
        return cls(
            comm,
            enabled=restart_config.enabled,
            workdir=restart_config.workdir,
            restart_file_vec=restart_config.restart_file_vec,
            restart_file_itr=restart_config.restart_file_itr,
            only_load_design=restart_config.only_load_design,
        )

    def slot_paths(self, slot: Slot) -> Tuple[Path, Path]:
        """Container and iteration file of ``slot``."""
        return (self.workdir / f"Restart{slot.value}.dat",
                self.workdir / f"Restart{slot.value}_itr_f0.dat")

    @property
    def history(self) -> Tuple[DistributedVector, ...]:
        return self.xo1, self.xo2, self.upper, self.lower

    def allocate_history(self, template: DistributedVector) -> None:
        """Create optimizer history buffers on the design layout."""
        if self.xo1 is not None:
            return
        self.xo1, self.xo2, self.upper, self.lower = template.duplicate_vecs(4)

    def log_settings(self) -> None:
        logger.info(BANNER)
        logger.info(f"# Continue from previous iteration (-restart): {int(self.enabled)}")
        logger.info(f"# Restart file (-restartFileVec): {self.restart_file_vec}")
        logger.info(f"# Restart file (-restartFileItr): {self.restart_file_itr}")
        logger.info(f"# New restart files are written to (-workdir): {self.workdir} "
                    f"(Restart0x.dat and Restart0x_itr_f0.dat)")

    def decide_resume(self) -> ResumeDecision:
        """
        Decide between cold start and resume.

        File existence is checked on the root rank only and broadcast, so
        every rank takes the same branch.
        """
        def check() -> Tuple[bool, bool]:
            return (bool(self.restart_file_vec) and os.path.isfile(self.restart_file_vec),
                    bool(self.restart_file_itr) and os.path.isfile(self.restart_file_itr))

        vec_exists, itr_exists = root_decides(self.comm, check)

        if self.enabled:
            for path, exists in ((self.restart_file_vec, vec_exists),
                                 (self.restart_file_itr, itr_exists)):
                if path and not exists:
                    logger.warning(f"File: {path} NOT FOUND")

        if not (self.enabled and vec_exists and itr_exists):
            return ResumeDecision(ResumeMode.COLD)

        mode = ResumeMode.DESIGN_ONLY if self.only_load_design else ResumeMode.CONTINUE
        return ResumeDecision(mode, self.restart_file_vec, self.restart_file_itr)

    def load_resume(self, decision: ResumeDecision, state: DesignState) -> Tuple[int, float]:
        """
        Load the restart point chosen by ``decide_resume``.

        The design and physical density are read into ``state``; the
        optimizer history goes into this manager's history buffers.

        Returns:
            (iteration, scale) from the iteration file
        """
        if not decision.resume:
            raise ValueError("No restart point to load for a cold start")
        self.allocate_history(state.x)

        targets = (state.x, state.x_phys) + self.history
        with BinaryVectorReader(self.comm, decision.vector_path) as reader:
            for vec in targets:
                reader.load(vec)

        iteration, scale = root_decides(self.comm, lambda: read_sidecar(decision.iteration_path))
        return iteration, scale

    def write(self, iteration: int, scale: float, state: DesignState, optimizer) -> Slot:
        """
        Write a checkpoint into the slot not used by the last successful write.

        A failed write leaves ``last_slot`` unchanged, so the next attempt
        goes to the same slot and the other slot keeps the last good point.

        Args:
            iteration: Current outer iteration
            scale: Objective scaling factor
            state: Design state to persist
            optimizer: Optimizer exposing ``restart_vectors()``

        Returns:
            The slot that was written

        Raises:
            RestartDisabledError: if restart support is disabled; no file is touched
        """
        if not self.enabled:
            raise RestartDisabledError("Restart files are only written when restart is enabled")

        self.allocate_history(state.x)
        for dst, src in zip(self.history, optimizer.restart_vectors()):
            dst.copy_from(src)

        slot = Slot.B if self.last_slot is Slot.A else Slot.A
        vec_path, itr_path = self.slot_paths(slot)

        root_only(self.comm, lambda: write_sidecar(itr_path, iteration, scale))

        vectors = [state.x, state.x_phys, *self.history, *state.x_passive,
                   state.node_density, state.node_adding_counts]
        with BinaryVectorWriter(self.comm, vec_path) as writer:
            for vec in vectors:
                writer.write(vec)

        self.last_slot = slot
        logger.info(f"Wrote restart point for iteration {iteration} to {vec_path}")
        return slot

    def read_slot(self, slot: Slot, state: DesignState) -> RestartRecord:
        """
        Read back a complete checkpoint without touching ``state``.

        ``state`` only provides the element and node layouts.
        """
        vec_path, itr_path = self.slot_paths(slot)
        iteration, scale = root_decides(self.comm, lambda: read_sidecar(itr_path))

        element_count = len(CONTAINER_FIELDS) - 2
        vectors = state.x.duplicate_vecs(element_count) + state.node_density.duplicate_vecs(2)
        with BinaryVectorReader(self.comm, vec_path) as reader:
            for vec in vectors:
                reader.load(vec)
        return RestartRecord(iteration=iteration, scale=scale, vectors=vectors)
