"""QR factorization strategies.

Every strategy takes an ``m x n`` float matrix and returns a
:class:`~sketchgcs.model.Factorization` holding the thin factors
``Q`` (``m x k``) and ``R`` (``k x n``) with ``k = min(m, n)``.

Every strategy treats a column whose orthogonal remainder has norm
``<= tol`` as linearly dependent: its row of ``R`` is zero and the
matching ``Q`` column stays the zero vector.  Householder and Givens keep
a separate pivot row for that, so a dependent column does not consume a
reflection or rotation and the next column takes over its row.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Union

import numpy as np

from ..model import Factorization, UnsupportedStrategyError


class QRMethod(str, Enum):
    CLASSICAL = "cgs"
    MODIFIED = "mgs"
    ITERATIVE = "igs"
    BLOCK = "bgs"
    REORDERED = "rgs"
    PIVOTED = "cgsp"
    HOUSEHOLDER = "householder"
    GIVENS = "givens"


def _allocate(A: np.ndarray) -> Tuple[int, int, int, np.ndarray, np.ndarray]:
    m, n = A.shape
    k = min(m, n)
    return m, n, k, np.zeros((m, k)), np.zeros((k, n))


def _identity_permutation(n: int) -> np.ndarray:
    return np.arange(n)


def classical_gram_schmidt(A: np.ndarray, *, tol: float, **_: object) -> Factorization:
    m, n, k, Q, R = _allocate(A)
    for i in range(n):
        v = A[:, i]
        u = v.copy()
        for j in range(min(i, k)):
            # projections use the original column, not the running remainder
            coeff = float(Q[:, j] @ v)
            R[j, i] = coeff
            u -= coeff * Q[:, j]
        if i < k:
            norm = float(np.linalg.norm(u))
            if norm > tol:
                R[i, i] = norm
                Q[:, i] = u / norm
            else:
                R[i, i] = 0.0
    return Factorization(Q, R, _identity_permutation(n))


def modified_gram_schmidt(A: np.ndarray, *, tol: float, **_: object) -> Factorization:
    m, n, k, Q, R = _allocate(A)
    V = A.copy()
    for j in range(k):
        norm = float(np.linalg.norm(V[:, j]))
        if norm > tol:
            R[j, j] = norm
            q = V[:, j] / norm
            Q[:, j] = q
            coeffs = q @ V[:, j + 1 :]
            R[j, j + 1 :] = coeffs
            V[:, j + 1 :] -= np.outer(q, coeffs)
        else:
            R[j, j:] = 0.0
    return Factorization(Q, R, _identity_permutation(n))


def iterative_gram_schmidt(A: np.ndarray, *, tol: float, passes: int = 2, **_: object) -> Factorization:
    """Classical Gram-Schmidt with re-orthogonalization (CGS2 for ``passes=2``)."""

    m, n, k, Q, R = _allocate(A)
    for i in range(n):
        u = A[:, i].copy()
        basis = Q[:, : min(i, k)]
        for _pass in range(passes):
            coeffs = basis.T @ u
            R[: basis.shape[1], i] += coeffs
            u -= basis @ coeffs
        if i < k:
            norm = float(np.linalg.norm(u))
            if norm > tol:
                R[i, i] = norm
                Q[:, i] = u / norm
            else:
                R[i, i] = 0.0
    return Factorization(Q, R, _identity_permutation(n))


def block_gram_schmidt(A: np.ndarray, *, tol: float, block_size: int = 4, **_: object) -> Factorization:
    """Block CGS between column panels, MGS inside each panel."""

    m, n, k, Q, R = _allocate(A)
    size = max(1, int(block_size))
    for start in range(0, n, size):
        stop = min(start + size, n)
        panel = A[:, start:stop].copy()
        done = min(start, k)
        if done:
            basis = Q[:, :done]
            coeffs = basis.T @ panel
            R[:done, start:stop] = coeffs
            panel -= basis @ coeffs
        for local, j in enumerate(range(start, min(stop, k))):
            norm = float(np.linalg.norm(panel[:, local]))
            if norm <= tol:
                R[j, j:stop] = 0.0
                continue
            R[j, j] = norm
            q = panel[:, local] / norm
            Q[:, j] = q
            rest = panel[:, local + 1 :]
            coeffs = q @ rest
            R[j, j + 1 : stop] = coeffs
            rest -= np.outer(q, coeffs)
    return Factorization(Q, R, _identity_permutation(n))


def reordered_gram_schmidt(A: np.ndarray, *, tol: float, **_: object) -> Factorization:
    """Left-looking ordering of the modified Gram-Schmidt loops.

    Each column is finished before the next one is touched, subtracting its
    projections one basis vector at a time from the running remainder.
    """

    m, n, k, Q, R = _allocate(A)
    for i in range(n):
        u = A[:, i].copy()
        for j in range(min(i, k)):
            coeff = float(Q[:, j] @ u)
            R[j, i] = coeff
            u -= coeff * Q[:, j]
        if i < k:
            norm = float(np.linalg.norm(u))
            if norm > tol:
                R[i, i] = norm
                Q[:, i] = u / norm
            else:
                R[i, i] = 0.0
    return Factorization(Q, R, _identity_permutation(n))


def pivoted_gram_schmidt(A: np.ndarray, *, tol: float, **_: object) -> Factorization:
    """Gram-Schmidt with column pivoting: ``Q @ R ~= A[:, permutation]``."""

    m, n, k, Q, R = _allocate(A)
    V = A.copy()
    perm = _identity_permutation(n)
    for j in range(k):
        norms = np.linalg.norm(V[:, j:], axis=0)
        pivot = j + int(np.argmax(norms))
        if pivot != j:
            V[:, [j, pivot]] = V[:, [pivot, j]]
            R[:j, [j, pivot]] = R[:j, [pivot, j]]
            perm[[j, pivot]] = perm[[pivot, j]]
        norm = float(norms[pivot - j])
        if norm <= tol:
            # the largest remainder is negligible, so is every other one
            R[j:, j:] = 0.0
            break
        R[j, j] = norm
        q = V[:, j] / norm
        Q[:, j] = q
        coeffs = q @ V[:, j + 1 :]
        R[j, j + 1 :] = coeffs
        V[:, j + 1 :] -= np.outer(q, coeffs)
    return Factorization(Q, R, perm)


def _compact(Q_full: np.ndarray, R_full: np.ndarray, pivot_rows: List[Optional[int]], n: int) -> Factorization:
    # Column j owns row pivot_rows[j] of the staircase; dependent columns get a zero row.
    m = Q_full.shape[0]
    k = min(m, n)
    Q = np.zeros((m, k))
    R = np.zeros((k, n))
    for j, row in enumerate(pivot_rows):
        if row is None:
            continue
        sign = -1.0 if R_full[row, j] < 0.0 else 1.0
        Q[:, j] = sign * Q_full[:, row]
        R[j, j:] = sign * R_full[row, j:]
    return Factorization(Q, R, _identity_permutation(n))


def householder(A: np.ndarray, *, tol: float, **_: object) -> Factorization:
    m, n = A.shape
    k = min(m, n)
    Q = np.eye(m)
    R = A.copy()
    pivot_rows: List[Optional[int]] = []
    row = 0
    for j in range(k):
        x = R[row:, j]
        alpha = float(np.linalg.norm(x))
        if alpha <= tol:
            # dependent column: the next reflector reuses the same row
            pivot_rows.append(None)
            continue
        if row < m - 1:
            v = x.copy()
            v[0] += np.copysign(alpha, x[0])
            v /= float(np.linalg.norm(v))
            R[row:, :] -= 2.0 * np.outer(v, v @ R[row:, :])
            Q[:, row:] -= 2.0 * np.outer(Q[:, row:] @ v, v)
        pivot_rows.append(row)
        row += 1
    return _compact(Q, R, pivot_rows, n)


def givens(A: np.ndarray, *, tol: float, **_: object) -> Factorization:
    m, n = A.shape
    k = min(m, n)
    Q = np.eye(m)
    R = A.copy()
    pivot_rows: List[Optional[int]] = []
    row = 0
    for j in range(k):
        for i in range(m - 1, row, -1):
            b = R[i, j]
            if b == 0.0:
                continue
            a = R[i - 1, j]
            r = float(np.hypot(a, b))
            c, s = a / r, b / r
            G = np.array([[c, s], [-s, c]])
            R[[i - 1, i], :] = G @ R[[i - 1, i], :]
            Q[:, [i - 1, i]] = Q[:, [i - 1, i]] @ G.T
            R[i, j] = 0.0
        if abs(R[row, j]) <= tol:
            pivot_rows.append(None)
            continue
        pivot_rows.append(row)
        row += 1
    return _compact(Q, R, pivot_rows, n)


Strategy = Callable[..., Factorization]

STRATEGIES: Dict[QRMethod, Strategy] = {
    QRMethod.CLASSICAL: classical_gram_schmidt,
    QRMethod.MODIFIED: modified_gram_schmidt,
    QRMethod.ITERATIVE: iterative_gram_schmidt,
    QRMethod.BLOCK: block_gram_schmidt,
    QRMethod.REORDERED: reordered_gram_schmidt,
    QRMethod.PIVOTED: pivoted_gram_schmidt,
    QRMethod.HOUSEHOLDER: householder,
    QRMethod.GIVENS: givens,
}


def resolve_method(method: Union[QRMethod, str]) -> QRMethod:
    try:
        return QRMethod(method)
    except ValueError as exc:
        known = ", ".join(item.value for item in QRMethod)
        raise UnsupportedStrategyError(f"unsupported QR strategy {method!r} (known: {known})") from exc


def get_strategy(method: Union[QRMethod, str]) -> Strategy:
    return STRATEGIES[resolve_method(method)]


__all__ = [
    "QRMethod",
    "STRATEGIES",
    "Strategy",
    "block_gram_schmidt",
    "classical_gram_schmidt",
    "get_strategy",
    "givens",
    "householder",
    "iterative_gram_schmidt",
    "modified_gram_schmidt",
    "pivoted_gram_schmidt",
    "reordered_gram_schmidt",
    "resolve_method",
]
