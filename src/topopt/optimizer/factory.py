"""Construction of the optimizer for a cold start or a resumed run."""

import numpy as np
from dataclasses import dataclass
from typing import Any, Tuple
import logging

from .handle import MMAState
from ..restart.checkpoint import ResumeDecision, ResumeMode, RestartCheckpointManager
from ..state.design import DesignState

logger = logging.getLogger(__name__)

# Per-constraint MMA coefficients.
DEFAULT_A = 0.0
DEFAULT_C = 1000.0
DEFAULT_D = 0.0


def default_coefficients(m: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Coefficients (a, c, d) for ``m`` constraints."""
    return np.full(m, DEFAULT_A), np.full(m, DEFAULT_C), np.full(m, DEFAULT_D)


@dataclass
class OptimizerStart:
    """Optimizer plus the loop counters it starts from."""
    optimizer: Any
    iteration: int
    scale: float
    decision: ResumeDecision


class OptimizerStateFactory:
    """
    Builds the optimizer, resuming from a checkpoint when one is available.

    ``optimizer_cls`` must provide ``from_design(n, m, x, a, c, d)`` and
    ``from_history(n, m, iteration, xo1, xo2, upper, lower, a, c, d)``.
    """

    def __init__(self, manager: RestartCheckpointManager, optimizer_cls=MMAState,
                 default_scale: float = 1.0):
        self.manager = manager
        self.optimizer_cls = optimizer_cls
        self.default_scale = default_scale

    def create(self, state: DesignState) -> OptimizerStart:
        """Collectively decide how to start and construct the optimizer."""
        manager = self.manager
        a, c, d = default_coefficients(state.m)
        n = state.n

        if manager.enabled:
            manager.allocate_history(state.x)
        manager.log_settings()

        decision = manager.decide_resume()
        if not decision.resume:
            optimizer = self.optimizer_cls.from_design(n, state.m, state.x, a, c, d)
            return OptimizerStart(optimizer, 0, self.default_scale, decision)

        iteration, scale = manager.load_resume(decision, state)

        if decision.mode is ResumeMode.DESIGN_ONLY:
            logger.info(f"# Loading design from file: {decision.vector_path}")
            # Seeded from x even though x_phys was loaded as well.
            optimizer = self.optimizer_cls.from_design(n, state.m, state.x, a, c, d)
            start = OptimizerStart(optimizer, 0, self.default_scale, decision)
        else:
            logger.info(f"# Continue optimization from file: {decision.vector_path}")
            xo1, xo2, upper, lower = manager.history
            optimizer = self.optimizer_cls.from_history(
                n, state.m, iteration, xo1, xo2, upper, lower, a, c, d
            )
            start = OptimizerStart(optimizer, iteration, scale, decision)

        logger.info(f"# Successful restart from file: {decision.vector_path} "
                    f"and {decision.iteration_path}")
        return start
