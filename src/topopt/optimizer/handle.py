"""State held by the method-of-moving-asymptotes optimizer."""

import numpy as np
from typing import Optional, Sequence, Tuple
import logging

from ..core.vector import DistributedVector

logger = logging.getLogger(__name__)


class MMAState:
    """
    Asymptotes, iteration history and constraint coefficients of MMA.

    Only the state needed to resume an MMA run is kept here; the update
    itself belongs to the optimizer implementation. Any optimizer class used
    with OptimizerStateFactory must offer the same two constructors and
    ``restart_vectors()``.
    """

    def __init__(
        self,
        n: int,
        m: int,
        x: DistributedVector,
        a: Sequence[float],
        c: Sequence[float],
        d: Sequence[float],
        iteration: int = 0,
        xo1: Optional[DistributedVector] = None,
        xo2: Optional[DistributedVector] = None,
        upper: Optional[DistributedVector] = None,
        lower: Optional[DistributedVector] = None
    ):
        if len(a) != m or len(c) != m or len(d) != m:
            raise ValueError(f"Constraint coefficients must have length m={m}")
        self.n = n
        self.m = m
        self.iteration = iteration
        self.a = np.asarray(a, dtype=np.float64).copy()
        self.c = np.asarray(c, dtype=np.float64).copy()
        self.d = np.asarray(d, dtype=np.float64).copy()
        self.xo1 = xo1 if xo1 is not None else x.copy()
        self.xo2 = xo2 if xo2 is not None else x.copy()
        self.upper = upper if upper is not None else x.duplicate()
        self.lower = lower if lower is not None else x.duplicate()
        self.restarted = iteration > 0 or xo1 is not None

    @classmethod
    def from_design(cls, n: int, m: int, x: DistributedVector,
                    a: Sequence[float], c: Sequence[float], d: Sequence[float]) -> 'MMAState':
        """Fresh optimizer whose history starts at ``x``."""
        return cls(n, m, x, a, c, d)

    @classmethod
    def from_history(
        cls,
        n: int,
        m: int,
        iteration: int,
        xo1: DistributedVector,
        xo2: DistributedVector,
        upper: DistributedVector,
        lower: DistributedVector,
        a: Sequence[float],
        c: Sequence[float],
        d: Sequence[float]
    ) -> 'MMAState':
        """Optimizer continuing from saved history and asymptotes."""
        return cls(n, m, xo1, a, c, d, iteration=iteration,
                   xo1=xo1.copy(), xo2=xo2.copy(),
                   upper=upper.copy(), lower=lower.copy())

    def restart_vectors(self) -> Tuple[DistributedVector, ...]:
        """The four vectors a checkpoint must hold: xo1, xo2, upper, lower."""
        return self.xo1, self.xo2, self.upper, self.lower

    def __repr__(self) -> str:
        return f"MMAState(n={self.n}, m={self.m}, iteration={self.iteration})"
