"""Back-substitution against upper-triangular (or trapezoidal) factors."""

from __future__ import annotations

import numpy as np


def back_substitution(R: np.ndarray, y: np.ndarray, *, tol: float) -> np.ndarray:
    """Solve ``R x = y`` for upper-trapezoidal ``R`` (``k x n``, ``k <= n``).

    ``y`` is ``(k,)`` or ``(k, p)``.  Rows whose pivot satisfies
    ``|R[i, i]| <= tol`` are skipped and the matching unknown is set to zero,
    as are the free unknowns ``k..n-1``; the result is the basic solution.
    """

    k, n = R.shape
    rhs = np.asarray(y, dtype=float)
    vector = rhs.ndim == 1
    if vector:
        rhs = rhs[:, None]
    if rhs.shape[0] != k:
        raise ValueError(f"right-hand side has {rhs.shape[0]} rows, expected {k}")

    x = np.zeros((n, rhs.shape[1]))
    for i in range(k - 1, -1, -1):
        pivot = R[i, i]
        if abs(pivot) <= tol:
            continue
        x[i] = (rhs[i] - R[i, i + 1 :] @ x[i + 1 :]) / pivot
    return x[:, 0] if vector else x


__all__ = ["back_substitution"]
