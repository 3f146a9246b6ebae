# -*- coding: utf-8 -*-
"""
Access to the entries of the matrix being compressed.

Any object with a ``shape`` attribute ``(N, N)`` and an ``entry(i, j)``
method can be used as an entry source. Sources can also implement
``block(row_start, col_start, n_rows, n_cols)`` when a whole block can be
computed faster than entry by entry; :func:`get_block` falls back on
:func:`entries_block` otherwise. The tree only ever reads from its source,
possibly from several threads at once.

"""

__all__ = [
    "EntrySource",
    "KernelMatrix",
    "MatrixEntries",
    "get_block",
    "entries_block",
    "source_size",
]

import numpy as np

from .errors import ConstructionError


def source_size(source):
    """Return ``N`` for a square entry source or raise ``ConstructionError``."""
    try:
        shape = tuple(source.shape)
    except AttributeError:
        raise ConstructionError("the entry source must have a 'shape'")
    if len(shape) != 2 or shape[0] != shape[1]:
        raise ConstructionError("the entry source must be square, got shape "
                                "{0}".format(shape))
    return int(shape[0])


def entries_block(source, row_start, col_start, n_rows, n_cols):
    """Assemble a dense block using only ``source.entry``."""
    block = np.empty((n_rows, n_cols))
    for i in range(n_rows):
        for j in range(n_cols):
            block[i, j] = source.entry(row_start + i, col_start + j)
    return block


def get_block(source, row_start, col_start, n_rows, n_cols):
    """
    Get the dense block ``A[row_start:row_start+n_rows,
    col_start:col_start+n_cols]`` from an entry source.

    :returns block: ``(n_rows, n_cols)``
        A new array owned by the caller.

    """
    method = getattr(source, "block", None)
    if method is None:
        return entries_block(source, row_start, col_start, n_rows, n_cols)
    block = np.array(method(row_start, col_start, n_rows, n_cols),
                     dtype=float)
    if block.shape != (n_rows, n_cols):
        raise ValueError("the entry source returned a block with shape {0} "
                         "instead of {1}".format(block.shape,
                                                 (n_rows, n_cols)))
    return block


class EntrySource(object):
    """
    An optional base class for entry sources. Subclasses must set ``shape``
    and implement :func:`entry`; :func:`block` is built from :func:`entry`
    and can be overloaded.

    """

    shape = (0, 0)

    def entry(self, i, j):
        raise NotImplementedError("overloaded by subclasses")

    def block(self, row_start, col_start, n_rows, n_cols):
        return entries_block(self, row_start, col_start, n_rows, n_cols)

    def get_matrix(self):
        """The full dense matrix. This is expensive and meant for testing."""
        n = source_size(self)
        return get_block(self, 0, 0, n, n)


class KernelMatrix(EntrySource):
    """
    The matrix of a kernel evaluated between all pairs of a set of points.
    The points should already be in the order produced by
    :func:`hodlr.utils.kd_sort` for the off-diagonal blocks to compress well.

    :param points: ``(N,)`` or ``(N, ndim)``
        The coordinates of the points.
    :param kernel:
        A callable (such as a :class:`kernels.Kernel`) returning the matrix
        of kernel values between two sets of points.
    :param diag: (optional)
        A scalar or ``(N,)`` array added to the diagonal, such as the
        measurement variances. (default: ``None``)

    """

    def __init__(self, points, kernel, diag=None):
        points = np.asarray(points, dtype=float)
        if len(points.shape) == 1:
            points = points[:, None]
        if len(points.shape) != 2:
            raise ValueError("the points must be one or two dimensional")
        self.points = points
        self.kernel = kernel
        n = len(points)
        if diag is None:
            self.diag = np.zeros(n)
        else:
            self.diag = np.array(np.broadcast_to(diag, (n,)), dtype=float)
        self.shape = (n, n)

    def entry(self, i, j):
        value = self.kernel(self.points[i:i+1], self.points[j:j+1])[0, 0]
        if i == j:
            value += self.diag[i]
        return float(value)

    def block(self, row_start, col_start, n_rows, n_cols):
        K = np.array(self.kernel(self.points[row_start:row_start+n_rows],
                                 self.points[col_start:col_start+n_cols]),
                     dtype=float)

        # Add the diagonal where the row and column ranges overlap.
        lo = max(row_start, col_start)
        hi = min(row_start + n_rows, col_start + n_cols)
        if lo < hi:
            inds = np.arange(lo, hi)
            K[inds - row_start, inds - col_start] += self.diag[inds]
        return K


class MatrixEntries(EntrySource):
    """
    An entry source backed by an explicit square array.

    :param matrix: ``(N, N)``
        The matrix. It is copied.

    """

    def __init__(self, matrix):
        matrix = np.array(matrix, dtype=float)
        if len(matrix.shape) != 2 or matrix.shape[0] != matrix.shape[1]:
            raise ValueError("the matrix must be square")
        self.matrix = matrix
        self.shape = matrix.shape

    def entry(self, i, j):
        return float(self.matrix[i, j])

    def block(self, row_start, col_start, n_rows, n_cols):
        return self.matrix[row_start:row_start+n_rows,
                           col_start:col_start+n_cols].copy()
