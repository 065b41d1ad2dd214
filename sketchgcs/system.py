"""Assembly of residual vectors and Jacobians for an external solver loop.

A :class:`ConstraintSystem` gathers residuals over one
:class:`~sketchgcs.variables.ParameterVector` and linearizes them at the
current values.  :meth:`ConstraintSystem.correction` computes a single
Gauss-Newton step through :class:`~sketchgcs.linalg.QRDecomposition`;
iterating, applying the step and judging convergence are left to the caller.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .expressions import Expression
from .linalg import QRDecomposition, QRMethod
from .logging_utils import debug_log_call, log_factorization
from .model import LinearizedSystem, NumericConfig
from .residuals import ErrorFunction
from .variables import ParameterVector

logger = logging.getLogger(__name__)


class ConstraintSystem:
    def __init__(
        self,
        parameters: ParameterVector,
        residuals: Iterable[ErrorFunction] = (),
        *,
        config: Optional[NumericConfig] = None,
    ):
        self.parameters = parameters
        self.config = config
        self._residuals: List[ErrorFunction] = []
        self._derivatives: List[List[Tuple[int, Expression]]] = []
        for residual in residuals:
            self.add(residual)

    def add(self, residual: ErrorFunction) -> ErrorFunction:
        entries: List[Tuple[int, Expression]] = []
        for variable in residual.get_variables():
            if variable.store is not self.parameters:
                raise ValueError(
                    f"{residual.describe()} references {variable.name!r} from a different parameter vector"
                )
            entries.append((variable.index, residual.derivative(variable)))
        self._residuals.append(residual)
        self._derivatives.append(entries)
        logger.debug("Registered residual #%d: %s", len(self._residuals) - 1, residual.describe())
        return residual

    def __len__(self) -> int:
        return len(self._residuals)

    @property
    def residuals(self) -> Sequence[ErrorFunction]:
        return tuple(self._residuals)

    def evaluate(self) -> np.ndarray:
        return np.array([residual.evaluate() for residual in self._residuals], dtype=float)

    def jacobian(self) -> np.ndarray:
        J = np.zeros((len(self._residuals), len(self.parameters)))
        for row, entries in enumerate(self._derivatives):
            for column, derivative in entries:
                J[row, column] = derivative.evaluate()
        return J

    def linearize(self) -> LinearizedSystem:
        residuals = self.evaluate()
        max_residual = float(np.max(np.abs(residuals))) if residuals.size else 0.0
        return LinearizedSystem(
            residuals=residuals,
            jacobian=self.jacobian(),
            max_residual=max_residual,
            labels=[residual.describe() for residual in self._residuals],
        )

    @debug_log_call(logger, name="ConstraintSystem.correction")
    def correction(
        self,
        method: Union[QRMethod, str, None] = None,
        *,
        use_pseudo_inverse: bool = False,
    ) -> np.ndarray:
        """Return ``dx`` minimizing ``|J dx + r|`` at the current values."""

        if not self._residuals:
            raise ValueError("cannot compute a correction for an empty constraint system")
        if len(self.parameters) == 0:
            raise ValueError("cannot compute a correction without unknowns")

        system = self.linearize()
        logger.debug(
            "Linearized %d residuals over %d unknowns (max |r|=%.3e)",
            len(self._residuals),
            len(self.parameters),
            system.max_residual,
        )
        qr = QRDecomposition(system.jacobian, config=self.config).decompose(method)
        log_factorization(logger, qr)
        if use_pseudo_inverse:
            step = -(qr.pseudo_inverse() @ system.residuals)
        else:
            step = -qr.solve(system.residuals)
        logger.debug("Correction via %s has norm %.3e", qr.method.value, float(np.linalg.norm(step)))
        return step


__all__ = ["ConstraintSystem"]
