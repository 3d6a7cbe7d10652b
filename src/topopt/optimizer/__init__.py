"""Optimizer state and its construction from checkpoints."""

from .handle import MMAState
from .factory import OptimizerStateFactory, OptimizerStart, default_coefficients

__all__ = ["MMAState", "OptimizerStateFactory", "OptimizerStart", "default_coefficients"]
