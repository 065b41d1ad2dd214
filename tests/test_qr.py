import copy

import numpy as np
import pytest

from sketchgcs import (
    DecompositionStateError,
    NumericConfig,
    QRDecomposition,
    QRMethod,
    UnsupportedStrategyError,
)

ALL_METHODS = list(QRMethod)
GRAM_SCHMIDT = [
    QRMethod.CLASSICAL,
    QRMethod.MODIFIED,
    QRMethod.ITERATIVE,
    QRMethod.BLOCK,
    QRMethod.REORDERED,
]
UNPIVOTED = GRAM_SCHMIDT + [QRMethod.HOUSEHOLDER, QRMethod.GIVENS]
DUPLICATE_COLUMN = np.array([[1.0, 1.0, 0.0], [2.0, 2.0, 1.0], [0.0, 0.0, 3.0], [1.0, 1.0, 1.0]])


def _full_rank(m, n, seed=0):
    rng = np.random.default_rng(seed)
    return rng.normal(size=(m, n)) + np.eye(m, n) * 3.0


def _reconstruct(qr):
    product = qr.Q @ qr.R
    restored = np.empty_like(product)
    restored[:, qr.permutation] = product
    return restored


@pytest.mark.parametrize("method", ALL_METHODS)
@pytest.mark.parametrize("shape", [(3, 3), (6, 4), (5, 1), (7, 7)])
def test_full_rank_factors_are_orthonormal_and_reconstruct(method, shape):
    A = _full_rank(*shape)
    qr = QRDecomposition(A).decompose(method)
    n = shape[1]

    assert qr.Q.shape == (shape[0], n)
    assert qr.R.shape == (n, n)
    np.testing.assert_allclose(qr.Q.T @ qr.Q, np.eye(n), atol=1e-8)
    np.testing.assert_allclose(_reconstruct(qr), A, atol=1e-8)
    np.testing.assert_allclose(np.tril(qr.R, -1), 0.0, atol=1e-12)


@pytest.mark.parametrize("method", ALL_METHODS)
def test_wide_matrix_reconstructs(method):
    A = _full_rank(3, 5, seed=4)
    qr = QRDecomposition(A).decompose(method)

    assert qr.Q.shape == (3, 3)
    assert qr.R.shape == (3, 5)
    np.testing.assert_allclose(_reconstruct(qr), A, atol=1e-8)


@pytest.mark.parametrize("method", UNPIVOTED)
def test_duplicate_column_degrades_gracefully(method):
    A = DUPLICATE_COLUMN
    qr = QRDecomposition(A).decompose(method)

    assert qr.R[1, 1] == pytest.approx(0.0, abs=1e-10)
    np.testing.assert_array_equal(qr.Q[:, 1], np.zeros(4))
    np.testing.assert_allclose(qr.Q @ qr.R, A, atol=1e-8)
    assert qr.rank() == 2


@pytest.mark.parametrize("method", ALL_METHODS)
def test_dependent_column_leaves_zero_row_and_zero_q_column(method):
    qr = QRDecomposition(DUPLICATE_COLUMN).decompose(method)
    R, Q = qr.R, qr.Q

    dependent = [i for i in range(3) if abs(R[i, i]) <= 1e-10]
    assert len(dependent) == 1
    for i in dependent:
        np.testing.assert_allclose(R[i, :], 0.0, atol=1e-12)
        np.testing.assert_array_equal(Q[:, i], np.zeros(4))
    np.testing.assert_allclose(_reconstruct(qr), DUPLICATE_COLUMN, atol=1e-8)


@pytest.mark.parametrize("method", ALL_METHODS)
def test_solve_rank_deficient_least_squares_matches_lstsq(method):
    b = np.array([1.0, -2.0, 0.5, 3.0])
    qr = QRDecomposition(DUPLICATE_COLUMN).decompose(method)

    x = qr.solve(b)
    expected, *_ = np.linalg.lstsq(DUPLICATE_COLUMN, b, rcond=None)
    # lstsq returns the minimum-norm solution, solve the basic one; the fit is the same
    assert np.linalg.norm(DUPLICATE_COLUMN @ x - b) == pytest.approx(
        np.linalg.norm(DUPLICATE_COLUMN @ expected - b), rel=1e-9
    )
    np.testing.assert_allclose(DUPLICATE_COLUMN @ x, DUPLICATE_COLUMN @ expected, atol=1e-8)


@pytest.mark.parametrize("method", ALL_METHODS)
def test_pseudo_inverse_of_rank_deficient_matrix_stays_bounded(method):
    pinv = QRDecomposition(DUPLICATE_COLUMN).decompose(method).pseudo_inverse()

    assert pinv.shape == (3, 4)
    assert np.all(np.isfinite(pinv))
    assert np.abs(pinv).max() < 1e3


def test_pivoted_moves_dependent_column_last():
    A = np.array([[1.0, 1.0, 0.0], [2.0, 2.0, 1.0], [0.0, 0.0, 3.0]])
    qr = QRDecomposition(A).pivoted_gram_schmidt()

    assert qr.rank() == 2
    assert qr.R[2, 2] == 0.0
    np.testing.assert_allclose(_reconstruct(qr), A, atol=1e-8)


def test_one_by_one():
    qr = QRDecomposition([[5.0]]).qr()

    np.testing.assert_array_equal(qr.Q, [[1.0]])
    np.testing.assert_array_equal(qr.R, [[5.0]])


@pytest.mark.parametrize("method", ALL_METHODS)
def test_one_by_one_zero_matrix(method):
    qr = QRDecomposition([[0.0]]).decompose(method)

    assert qr.R[0, 0] == 0.0
    assert qr.rank() == 0


@pytest.mark.parametrize("matrix", [np.zeros((0, 3)), np.zeros((3, 0)), np.zeros((0, 0))])
def test_empty_matrix_is_rejected(matrix):
    with pytest.raises(ValueError):
        QRDecomposition(matrix)


def test_non_matrix_input_is_rejected():
    with pytest.raises(ValueError):
        QRDecomposition([1.0, 2.0, 3.0])


def test_unknown_strategy_is_reported():
    qr = QRDecomposition(np.eye(2))
    with pytest.raises(UnsupportedStrategyError):
        qr.decompose("lanczos")
    with pytest.raises(NotImplementedError):
        qr.decompose("lanczos")
    assert not qr.is_decomposed


def test_factors_are_empty_until_decomposed():
    qr = QRDecomposition(np.eye(3))

    assert qr.Q is None
    assert qr.R is None
    with pytest.raises(DecompositionStateError):
        qr.solve(np.ones(3))
    with pytest.raises(DecompositionStateError):
        qr.pseudo_inverse()


@pytest.mark.parametrize("method", ALL_METHODS)
def test_solve_identity_returns_rhs(method):
    b = np.array([1.5, -2.0, 7.25])
    qr = QRDecomposition(np.eye(3)).decompose(method)

    np.testing.assert_allclose(qr.solve(b), b, atol=1e-12)


@pytest.mark.parametrize("method", ALL_METHODS)
def test_solve_square_system(method):
    A = _full_rank(5, 5, seed=2)
    x_true = np.arange(1.0, 6.0)
    qr = QRDecomposition(A).decompose(method)

    np.testing.assert_allclose(qr.solve(A @ x_true), x_true, atol=1e-8)


@pytest.mark.parametrize("method", ALL_METHODS)
def test_solve_least_squares_matches_lstsq(method):
    A = _full_rank(8, 3, seed=3)
    b = np.linspace(-1.0, 2.0, 8)
    qr = QRDecomposition(A).decompose(method)

    expected, *_ = np.linalg.lstsq(A, b, rcond=None)
    np.testing.assert_allclose(qr.solve(b), expected, atol=1e-8)


def test_solve_accepts_multiple_right_hand_sides():
    A = _full_rank(4, 4, seed=5)
    B = np.arange(8.0).reshape(4, 2)
    qr = QRDecomposition(A).qr()

    X = qr.solve(B)
    assert X.shape == (4, 2)
    np.testing.assert_allclose(A @ X, B, atol=1e-8)


def test_solve_rank_deficient_returns_basic_solution():
    A = np.array([[1.0, 1.0], [1.0, 1.0], [0.0, 0.0]])
    b = np.array([2.0, 2.0, 0.0])
    qr = QRDecomposition(A).modified_gram_schmidt()

    x = qr.solve(b)
    np.testing.assert_allclose(x, [2.0, 0.0], atol=1e-12)
    np.testing.assert_allclose(A @ x, b, atol=1e-12)


def test_solve_underdetermined_system_satisfies_equations():
    A = np.array([[1.0, 2.0, 0.0], [0.0, 1.0, 1.0]])
    b = np.array([3.0, 2.0])
    qr = QRDecomposition(A).qr()

    x = qr.solve(b)
    np.testing.assert_allclose(A @ x, b, atol=1e-10)
    assert x[2] == 0.0


def test_solve_rejects_mismatched_rows():
    qr = QRDecomposition(np.eye(3)).qr()
    with pytest.raises(ValueError):
        qr.solve(np.ones(4))


@pytest.mark.parametrize("method", ALL_METHODS)
def test_pseudo_inverse_of_full_rank_matrix(method):
    A = _full_rank(6, 3, seed=6)
    qr = QRDecomposition(A).decompose(method)

    np.testing.assert_allclose(qr.pseudo_inverse(), np.linalg.pinv(A), atol=1e-6)


def test_pseudo_inverse_survives_singular_triangular_factor():
    A = np.array([[1.0, 1.0], [1.0, 1.0]])
    qr = QRDecomposition(A).classical_gram_schmidt()

    pinv = qr.pseudo_inverse()
    assert pinv.shape == (2, 2)
    assert np.all(np.isfinite(pinv))


def test_pseudo_inverse_of_wide_matrix_raises_linalg_error():
    qr = QRDecomposition(_full_rank(2, 4)).qr()
    with pytest.raises(np.linalg.LinAlgError):
        qr.pseudo_inverse()


def test_pseudo_inverse_propagates_exact_singularity():
    config = NumericConfig(regularization=0.0)
    qr = QRDecomposition(np.zeros((2, 2)), config=config).qr()
    with pytest.raises(np.linalg.LinAlgError):
        qr.pseudo_inverse()


def test_default_method_follows_config():
    qr = QRDecomposition(np.eye(2), config=NumericConfig(default_method="householder")).qr()
    assert qr.method is QRMethod.HOUSEHOLDER


def test_redecomposition_overwrites_factors():
    A = _full_rank(4, 3)
    qr = QRDecomposition(A).pivoted_gram_schmidt()
    qr.classical_gram_schmidt()

    assert qr.method is QRMethod.CLASSICAL
    np.testing.assert_array_equal(qr.permutation, np.arange(3))
    np.testing.assert_allclose(qr.Q @ qr.R, A, atol=1e-8)


def test_modified_is_more_orthogonal_than_classical_on_ill_conditioned_input():
    eps = 1e-8
    A = np.array([[1.0, 1.0, 1.0], [eps, 0.0, 0.0], [0.0, eps, 0.0], [0.0, 0.0, eps]])
    classical = QRDecomposition(A).classical_gram_schmidt().Q
    modified = QRDecomposition(A).modified_gram_schmidt().Q

    loss_classical = np.linalg.norm(classical.T @ classical - np.eye(3))
    loss_modified = np.linalg.norm(modified.T @ modified - np.eye(3))
    assert loss_modified < loss_classical


def test_accessors_return_copies_and_equality_is_elementwise():
    A = _full_rank(3, 3)
    first = QRDecomposition(A).qr()
    second = QRDecomposition(A).qr()

    assert first == second
    leaked = first.R
    leaked[0, 0] = 123.0
    assert first == second

    assert first != QRDecomposition(A)
    assert first != QRDecomposition(A * 2.0).qr()


def test_copies_are_independent():
    qr = QRDecomposition(_full_rank(3, 2)).qr()
    shallow = copy.copy(qr)
    deep = copy.deepcopy(qr)

    assert shallow == qr and deep == qr
    shallow.givens()
    assert qr.method is QRMethod.MODIFIED
    assert shallow.method is QRMethod.GIVENS
