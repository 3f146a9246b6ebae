# -*- coding: utf-8 -*-

import pytest
import numpy as np

from hodlr import ConstructionError, KernelMatrix, MatrixEntries, kernels
from hodlr.entries import entries_block, get_block, source_size


class GaussianEntries(object):
    """Entries of a Gaussian kernel with a constant diagonal, one at a time."""

    def __init__(self, x, diagonal=10.0):
        self.x = x
        self.diagonal = diagonal
        self.shape = (len(x), len(x))

    def entry(self, i, j):
        if i == j:
            return self.diagonal
        return np.exp(-np.sum((self.x[i] - self.x[j]) ** 2))


def test_get_block_from_entries(N=20, seed=1234):
    np.random.seed(seed)
    x = np.random.uniform(-1, 1, (N, 2))
    source = GaussianEntries(x)
    block = get_block(source, 3, 5, 4, 7)
    assert block.shape == (4, 7)
    for i in range(4):
        for j in range(7):
            assert block[i, j] == source.entry(3 + i, 5 + j)


@pytest.mark.parametrize("rows,cols", [
    ((0, 10), (10, 10)),
    ((5, 10), (0, 10)),
    ((2, 10), (7, 6)),
    ((0, 30), (0, 30)),
])
def test_kernel_matrix_block(rows, cols, N=30, seed=42):
    np.random.seed(seed)
    x = np.random.randn(N, 3)
    diag = np.random.uniform(0.5, 1.5, N)
    source = KernelMatrix(x, kernels.ExpSquaredKernel(1.0), diag=diag)
    expect = entries_block(source, rows[0], cols[0], rows[1], cols[1])
    block = get_block(source, rows[0], cols[0], rows[1], cols[1])
    assert np.allclose(block, expect)


def test_kernel_matrix_dense(N=25, seed=42):
    np.random.seed(seed)
    x = np.sort(np.random.randn(N))
    kernel = kernels.Matern32Kernel(0.5)
    source = KernelMatrix(x, kernel, diag=0.1)
    K = kernel.get_value(x)
    K[np.diag_indices_from(K)] += 0.1
    assert source.shape == (N, N)
    assert np.allclose(source.get_matrix(), K)


def test_matrix_entries(N=12, seed=42):
    np.random.seed(seed)
    A = np.random.randn(N, N)
    source = MatrixEntries(A)
    assert source.entry(3, 4) == A[3, 4]
    block = get_block(source, 2, 1, 5, 3)
    assert np.allclose(block, A[2:7, 1:4])

    # The caller owns the blocks.
    block[:] = 0.0
    assert np.allclose(source.matrix, A)

    with pytest.raises(ValueError):
        MatrixEntries(np.ones((3, 4)))


def test_bad_block_shape():
    class BrokenSource(object):
        shape = (10, 10)

        def block(self, row_start, col_start, n_rows, n_cols):
            return np.zeros((n_rows + 1, n_cols))

    with pytest.raises(ValueError):
        get_block(BrokenSource(), 0, 0, 2, 2)


def test_source_size():
    assert source_size(MatrixEntries(np.eye(5))) == 5
    with pytest.raises(ConstructionError):
        source_size(object())

    class Rectangular(object):
        shape = (3, 4)

    with pytest.raises(ConstructionError):
        source_size(Rectangular())
