# -*- coding: utf-8 -*-

import pytest
import numpy as np
from scipy.linalg import LinAlgError

from hodlr import (KernelMatrix, MatrixEntries, NonPositiveDefinite, Tree,
                   kd_sort, kernels)
from hodlr.tree import ASSEMBLED, FACTORIZED

modes = [
    (False, False),
    (True, False),
    (True, True),
]


def _gaussian_problem(N, ndim=2, diagonal=10.0, seed=1234):
    np.random.seed(seed)
    x = np.random.uniform(-1, 1, (N, ndim))
    x = x[kd_sort(x)]
    source = KernelMatrix(x, kernels.ExpSquaredKernel(0.5),
                          diag=diagonal - 1.0)
    return source, source.get_matrix()


def _factorized(source, depth, symmetric, positive_definite, tol=1e-10,
                **kwargs):
    tree = Tree(source, depth, tol, **kwargs)
    tree.assemble_tree(symmetric=symmetric,
                       positive_definite=positive_definite)
    tree.factorize()
    return tree


def _relative_error(approx, exact):
    return np.linalg.norm(approx - exact) / np.linalg.norm(exact)


@pytest.mark.parametrize("symmetric,positive_definite", modes)
def test_solve_and_log_determinant(symmetric, positive_definite, N=400,
                                   depth=4):
    source, K = _gaussian_problem(N)
    tree = _factorized(source, depth, symmetric, positive_definite)
    assert tree.state == FACTORIZED

    np.random.seed(42)
    x = np.random.randn(N)
    b = np.dot(K, x)
    b0 = np.array(b)
    x_hat = tree.solve(b)
    assert x_hat.shape == (N,)
    assert _relative_error(x_hat, x) < 1e-9
    assert np.array_equal(b, b0)

    # The solve inverts the compressed matrix, not just the dense one.
    assert _relative_error(tree.matmat_product(x_hat), b) < 1e-11

    sgn, lndet = np.linalg.slogdet(K)
    assert np.allclose(tree.log_determinant(), lndet)


@pytest.mark.parametrize("symmetric,positive_definite", modes)
def test_multiple_right_hand_sides(symmetric, positive_definite, N=256,
                                   depth=3, nrhs=4):
    source, K = _gaussian_problem(N)
    tree = _factorized(source, depth, symmetric, positive_definite)

    np.random.seed(42)
    B = np.random.randn(N, nrhs)
    X = tree.solve(B)
    assert X.shape == (N, nrhs)
    assert np.allclose(X, np.linalg.solve(K, B))
    for k in range(nrhs):
        assert np.allclose(X[:, k], tree.solve(B[:, k]))


def test_non_symmetric(N=300, depth=3, shift=0.1, seed=42):
    np.random.seed(seed)
    x = np.sort(np.random.uniform(-2, 2, N))
    A = np.exp(-(x[:, None] - x[None, :] - shift) ** 2)
    A[np.diag_indices_from(A)] += 10.0
    assert not np.allclose(A, A.T)

    tree = _factorized(MatrixEntries(A), depth, False, False)
    b = np.random.randn(N)
    assert np.allclose(tree.solve(b), np.linalg.solve(A, b))
    assert np.allclose(tree.log_determinant(), np.linalg.slogdet(A)[1])
    assert _relative_error(tree.to_dense(), A) < 1e-10


def test_negative_determinant(N=128, depth=3):
    _, K = _gaussian_problem(N)
    K[0] *= -1
    sgn, lndet = np.linalg.slogdet(K)
    assert sgn < 0

    tree = _factorized(MatrixEntries(K), depth, False, False)
    assert np.allclose(tree.log_determinant(), lndet)
    b = np.ones(N)
    assert np.allclose(tree.solve(b), np.linalg.solve(K, b))


def test_symmetric_factor(N=256, depth=3):
    source, K = _gaussian_problem(N)
    tree = _factorized(source, depth, True, True)

    W = tree.get_symmetric_factor()
    assert W.shape == (N, N)
    assert _relative_error(np.dot(W, W.T), K) < 1e-10

    np.random.seed(42)
    y = np.random.randn(N, 2)
    assert np.allclose(tree.symmetric_factor_product(y), np.dot(W, y))
    assert np.allclose(tree.symmetric_factor_transpose_product(y),
                       np.dot(W.T, y))
    assert np.allclose(tree.symmetric_factor_solve(y),
                       np.linalg.solve(W, y))
    assert np.allclose(tree.symmetric_factor_transpose_solve(y),
                       np.linalg.solve(W.T, y))

    # The solve is the product of the two triangular-like solves.
    x = tree.symmetric_factor_transpose_solve(tree.symmetric_factor_solve(y))
    assert np.allclose(tree.solve(y), x)

    # The log-determinant comes from the factor.
    assert np.allclose(tree.log_determinant(),
                       2 * np.linalg.slogdet(W)[1])


def test_symmetric_factor_vector(N=128, depth=2):
    source, _ = _gaussian_problem(N)
    tree = _factorized(source, depth, True, True)
    np.random.seed(42)
    y = np.random.randn(N)
    y0 = np.array(y)
    z = tree.symmetric_factor_product(y)
    assert z.shape == (N,)
    assert np.array_equal(y, y0)
    assert np.allclose(tree.symmetric_factor_solve(z), y)
    assert np.allclose(
        tree.symmetric_factor_transpose_product(
            tree.symmetric_factor_transpose_solve(y)), y)


def test_non_positive_definite(N=128, depth=2):
    _, K = _gaussian_problem(N)
    K = -K
    source = MatrixEntries(K)
    tree = Tree(source, depth, 1e-10)
    tree.assemble_tree(symmetric=True, positive_definite=True)
    with pytest.raises(NonPositiveDefinite):
        tree.factorize()
    assert tree.state == ASSEMBLED
    assert all(node.factor is None for level in tree.levels
               for node in level)

    # It's still a linear algebra error.
    tree = Tree(source, depth, 1e-10)
    tree.assemble_tree(symmetric=True, positive_definite=True)
    with pytest.raises(LinAlgError):
        tree.factorize()

    # The negative definite matrix is fine with LU.
    tree = _factorized(source, depth, True, False)
    b = np.ones(N)
    assert np.allclose(tree.solve(b), np.linalg.solve(K, b))
    assert np.allclose(tree.log_determinant(), np.linalg.slogdet(K)[1])


@pytest.mark.parametrize("symmetric,positive_definite", modes)
def test_threads(symmetric, positive_definite, N=256, depth=3):
    source, K = _gaussian_problem(N)
    tree = _factorized(source, depth, symmetric, positive_definite,
                       max_workers=3)
    b = np.ones(N)
    assert np.allclose(tree.solve(b), np.linalg.solve(K, b))
    assert np.allclose(tree.log_determinant(), np.linalg.slogdet(K)[1])


def test_dimension_mismatch(N=64):
    source, _ = _gaussian_problem(N)
    tree = _factorized(source, 2, True, True)
    for method in (tree.solve, tree.matmat_product,
                   tree.symmetric_factor_product):
        with pytest.raises(ValueError):
            method(np.ones(N + 1))
        with pytest.raises(ValueError):
            method(np.ones((N, 2, 2)))


class GaussianEntries(object):

    def __init__(self, x, diagonal=10.0):
        self.x = x
        self.diagonal = diagonal
        self.shape = (len(x), len(x))

    def entry(self, i, j):
        if i == j:
            return self.diagonal
        return np.exp(-np.sum((self.x[i] - self.x[j]) ** 2))


def test_entry_only_source(N=64, depth=2, seed=1234):
    np.random.seed(seed)
    x = np.random.uniform(-1, 1, (N, 2))
    x = x[kd_sort(x)]
    source = GaussianEntries(x)
    K = np.array([[source.entry(i, j) for j in range(N)] for i in range(N)])

    tree = _factorized(source, depth, True, True, tol=1e-8)
    b = np.random.randn(N)
    assert _relative_error(tree.matmat_product(b), np.dot(K, b)) < 1e-8
    assert np.allclose(tree.solve(b), np.linalg.solve(K, b))
    assert np.allclose(tree.log_determinant(), np.linalg.slogdet(K)[1])


def test_singular(N=16):
    tree = Tree(MatrixEntries(np.zeros((N, N))), 1, 1e-10)
    tree.assemble_tree()
    with pytest.raises(LinAlgError):
        tree.factorize()
    assert tree.state == ASSEMBLED


def test_indefinite_reduced_system(n=4):
    # The leaves are the identity but the coupling makes the matrix
    # indefinite, so only the reduced system at the root can fail.
    I = np.eye(n)
    A = np.vstack((np.hstack((I, 2 * I)), np.hstack((2 * I, I))))
    tree = Tree(MatrixEntries(A), 1, 1e-10)
    tree.assemble_tree(symmetric=True, positive_definite=True)
    with pytest.raises(NonPositiveDefinite) as e:
        tree.factorize()
    assert "reduced system" in str(e.value)
    assert tree.state == ASSEMBLED
    assert all(node.factor is None for level in tree.levels
               for node in level)
