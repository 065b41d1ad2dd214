"""Core data structures shared by the residual and linear-algebra layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

import numpy as np


class ResidualConstructionError(ValueError):
    """Raised when a constraint residual receives malformed operands."""

    def __init__(self, kind: object, message: str):
        super().__init__(message)
        self.kind = kind


class UnsupportedStrategyError(NotImplementedError):
    """Raised when a QR decomposition strategy name cannot be resolved."""


class DecompositionStateError(RuntimeError):
    """Raised when factors are requested before a decomposition has run."""


@dataclass
class NumericConfig:
    """Tolerances and defaults used by the QR engine."""

    rank_tolerance: float = 1e-10
    regularization: float = 1e-8
    default_method: str = "mgs"
    block_size: int = 4


@dataclass
class Factorization:
    """Thin QR factors produced by a single strategy run."""

    Q: np.ndarray
    R: np.ndarray
    permutation: np.ndarray


@dataclass
class LinearizedSystem:
    """Residual vector and Jacobian of a constraint system at one point."""

    residuals: np.ndarray
    jacobian: np.ndarray
    max_residual: float
    labels: List[str] = field(default_factory=list)


__all__ = [
    "DecompositionStateError",
    "Factorization",
    "LinearizedSystem",
    "NumericConfig",
    "ResidualConstructionError",
    "UnsupportedStrategyError",
]
