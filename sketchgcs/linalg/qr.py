"""QR decomposition engine used to turn a linearized residual system into a step."""

from __future__ import annotations

import copy
from typing import Optional, Union

import numpy as np

from ..config import get_numeric_config
from ..model import DecompositionStateError, Factorization, NumericConfig
from .strategies import QRMethod, get_strategy, resolve_method
from .triangular import back_substitution


class QRDecomposition:
    """Thin QR factorization ``A = Q R`` of a dense matrix.

    ``Q`` and ``R`` stay ``None`` until one of the decomposition methods
    runs; running another method overwrites them.  With the pivoted strategy
    the factors satisfy ``Q @ R ~= A[:, permutation]``, and :meth:`solve`
    and :meth:`pseudo_inverse` undo the permutation.
    """

    def __init__(self, A, *, config: Optional[NumericConfig] = None):
        matrix = np.array(A, dtype=float)
        if matrix.ndim != 2:
            raise ValueError(f"QR decomposition needs a 2-D matrix, got {matrix.ndim}-D input")
        rows, cols = matrix.shape
        if rows < 1 or cols < 1:
            raise ValueError(f"Matrix should be: rows > 0 && cols > 0 (got {rows}x{cols})")
        self._A = matrix
        self._Q: Optional[np.ndarray] = None
        self._R: Optional[np.ndarray] = None
        self._permutation = np.arange(cols)
        self._method: Optional[QRMethod] = None
        self._config = copy.deepcopy(config) if config is not None else get_numeric_config()

    # -- factor access -----------------------------------------------------

    @property
    def A(self) -> np.ndarray:
        return self._A.copy()

    @property
    def Q(self) -> Optional[np.ndarray]:
        return None if self._Q is None else self._Q.copy()

    @property
    def R(self) -> Optional[np.ndarray]:
        return None if self._R is None else self._R.copy()

    @property
    def permutation(self) -> np.ndarray:
        return self._permutation.copy()

    @property
    def method(self) -> Optional[QRMethod]:
        return self._method

    @property
    def config(self) -> NumericConfig:
        return copy.deepcopy(self._config)

    @property
    def shape(self):
        return self._A.shape

    @property
    def is_decomposed(self) -> bool:
        return self._R is not None

    # -- decomposition -----------------------------------------------------

    def decompose(self, method: Union[QRMethod, str, None] = None) -> "QRDecomposition":
        resolved = resolve_method(method if method is not None else self._config.default_method)
        strategy = get_strategy(resolved)
        result: Factorization = strategy(
            self._A,
            tol=self._config.rank_tolerance,
            block_size=self._config.block_size,
        )
        self._Q = result.Q
        self._R = result.R
        self._permutation = result.permutation
        self._method = resolved
        return self

    def qr(self) -> "QRDecomposition":
        return self.decompose()

    def classical_gram_schmidt(self) -> "QRDecomposition":
        return self.decompose(QRMethod.CLASSICAL)

    def modified_gram_schmidt(self) -> "QRDecomposition":
        return self.decompose(QRMethod.MODIFIED)

    def iterative_gram_schmidt(self) -> "QRDecomposition":
        return self.decompose(QRMethod.ITERATIVE)

    def block_gram_schmidt(self) -> "QRDecomposition":
        return self.decompose(QRMethod.BLOCK)

    def reordered_gram_schmidt(self) -> "QRDecomposition":
        return self.decompose(QRMethod.REORDERED)

    def pivoted_gram_schmidt(self) -> "QRDecomposition":
        return self.decompose(QRMethod.PIVOTED)

    def householder(self) -> "QRDecomposition":
        return self.decompose(QRMethod.HOUSEHOLDER)

    def givens(self) -> "QRDecomposition":
        return self.decompose(QRMethod.GIVENS)

    # -- derived quantities ------------------------------------------------

    def _require_factors(self) -> None:
        if self._Q is None or self._R is None:
            raise DecompositionStateError("QR factors requested before a decomposition method was run")

    def _unpermute_rows(self, values: np.ndarray) -> np.ndarray:
        restored = np.empty_like(values)
        restored[self._permutation] = values
        return restored

    def rank(self, tol: Optional[float] = None) -> int:
        """Number of diagonal entries of ``R`` above ``tol``."""

        self._require_factors()
        threshold = self._config.rank_tolerance if tol is None else float(tol)
        return int(np.count_nonzero(np.abs(np.diag(self._R)) > threshold))

    def solve(self, b) -> np.ndarray:
        """Least-squares solution of ``A x ~= b`` by back-substitution."""

        self._require_factors()
        rhs = np.asarray(b, dtype=float)
        if rhs.ndim not in (1, 2) or rhs.shape[0] != self._A.shape[0]:
            raise ValueError(
                f"right-hand side of shape {rhs.shape} does not match {self._A.shape[0]} rows"
            )
        qt_b = self._Q.T @ rhs
        x = back_substitution(self._R, qt_b, tol=self._config.rank_tolerance)
        return self._unpermute_rows(x)

    def pseudo_inverse(self) -> np.ndarray:
        """Approximate ``A^+ = (R + eps I)^-1 Q^T``.

        Raises :class:`numpy.linalg.LinAlgError` when ``R`` is not square
        (more columns than rows) or stays singular after regularization.
        """

        self._require_factors()
        regularized = self._R.copy()
        diag = np.arange(regularized.shape[0])
        regularized[diag, diag] += self._config.regularization
        inverse = np.linalg.inv(regularized)
        return self._unpermute_rows(inverse @ self._Q.T)

    # -- value semantics ---------------------------------------------------

    def copy(self) -> "QRDecomposition":
        clone = QRDecomposition.__new__(QRDecomposition)
        clone._A = self._A.copy()
        clone._Q = None if self._Q is None else self._Q.copy()
        clone._R = None if self._R is None else self._R.copy()
        clone._permutation = self._permutation.copy()
        clone._method = self._method
        clone._config = copy.deepcopy(self._config)
        return clone

    def __copy__(self) -> "QRDecomposition":
        return self.copy()

    def __deepcopy__(self, memo) -> "QRDecomposition":
        return self.copy()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QRDecomposition):
            return NotImplemented
        return (
            np.array_equal(self._A, other._A)
            and _optional_equal(self._Q, other._Q)
            and _optional_equal(self._R, other._R)
        )

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    __hash__ = None  # mutable value type

    def __repr__(self) -> str:
        state = self._method.value if self._method is not None else "uninitialized"
        return f"QRDecomposition(shape={self._A.shape}, method={state})"


def _optional_equal(a: Optional[np.ndarray], b: Optional[np.ndarray]) -> bool:
    if a is None or b is None:
        return a is None and b is None
    return np.array_equal(a, b)


__all__ = ["QRDecomposition"]
