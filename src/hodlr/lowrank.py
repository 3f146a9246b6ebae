# -*- coding: utf-8 -*-

__all__ = [
    "LowRankBlock",
    "adaptive_cross_approximation",
    "recompress",
    "compress",
]

import logging

import numpy as np
from scipy.linalg import qr, svd

from .entries import get_block
from .errors import ToleranceUnattainable

logger = logging.getLogger(__name__)

# The stopping rule of the cross approximation only estimates the error of
# the latest cross, so blocks are compressed to this fraction of the
# requested tolerance.
TOLERANCE_SAFETY = 1e-2

# The number of unused rows whose residual is checked before a block is
# accepted, and the number of rows with a vanishing residual read in a row
# before the block is considered exhausted.
CHECK_ROWS = 4
MAX_ZERO_ROWS = 4


class LowRankBlock(object):
    """
    A block approximated by the product of two thin factors
    ``U.dot(V.T)``.

    :param U: ``(m, rank)``
    :param V: ``(n, rank)``

    """

    def __init__(self, U, V):
        U = np.asarray(U, dtype=float)
        V = np.asarray(V, dtype=float)
        if len(U.shape) != 2 or len(V.shape) != 2 or U.shape[1] != V.shape[1]:
            raise ValueError("dimension mismatch")
        self.U = U
        self.V = V

    @property
    def rank(self):
        return self.U.shape[1]

    @property
    def shape(self):
        return (self.U.shape[0], self.V.shape[0])

    def dot(self, x):
        return np.dot(self.U, np.dot(self.V.T, x))

    def dot_transpose(self, x):
        return np.dot(self.V, np.dot(self.U.T, x))

    def transpose(self):
        """The transposed block. The factors are shared, not copied."""
        return LowRankBlock(self.V, self.U)

    def to_dense(self):
        return np.dot(self.U, self.V.T)

    def __repr__(self):
        return "LowRankBlock(shape={0}, rank={1})".format(self.shape,
                                                          self.rank)


def adaptive_cross_approximation(source, start_row, n_rows, start_col,
                                 n_cols, tol, max_rank=None):
    """
    Compute a partially pivoted adaptive cross approximation of a block of
    an entry source. Only the rows and columns used as crosses, and a few
    sampled rows, are read.

    The iteration stops when the norm of two consecutive crosses is below
    ``tol`` times the running estimate of the Frobenius norm of the
    approximation, and the residual of a random sample of the unused rows
    agrees. Otherwise the sampled row with the largest residual becomes the
    next pivot row.

    :param source:
        The entry source.
    :param start_row, n_rows:
        The rows of the block.
    :param start_col, n_cols:
        The columns of the block.
    :param tol:
        The relative tolerance.
    :param max_rank: (optional)
        The largest rank allowed. If this is smaller than
        ``min(n_rows, n_cols)`` and the tolerance isn't met,
        :class:`ToleranceUnattainable` is raised. (default: ``None``)

    :returns U, V: ``(n_rows, rank)`` and ``(n_cols, rank)``

    """
    full_rank = min(n_rows, n_cols)
    if max_rank is None:
        max_rank = full_rank
    max_rank = min(max_rank, full_rank)

    U = np.empty((n_rows, max_rank))
    V = np.empty((n_cols, max_rank))
    used_rows = np.zeros(n_rows, dtype=bool)
    used_cols = np.zeros(n_cols, dtype=bool)

    # Seeded by the block so that the samples don't depend on the thread.
    random = np.random.RandomState([start_row, start_col])

    def residual_row(i, rank):
        row = get_block(source, start_row + i, start_col, 1, n_cols)[0]
        row -= np.dot(V[:, :rank], U[i, :rank])
        return row

    def check_rows(rank, threshold):
        remaining = np.flatnonzero(~used_rows)
        if not len(remaining):
            return None
        sample = random.choice(remaining, min(CHECK_ROWS, len(remaining)),
                               replace=False)
        errors = np.array([np.sum(residual_row(i, rank)[~used_cols] ** 2)
                           for i in sample])
        if len(remaining) * np.mean(errors) <= threshold:
            return None
        return sample[np.argmax(errors)]

    rank = 0
    norm2 = 0.0
    tol2 = tol * tol
    converged = full_rank == 0
    small = False
    zero_rows = 0
    i = 0
    while rank < max_rank and not converged:
        used_rows[i] = True
        row = residual_row(i, rank)
        j = np.argmax(np.where(used_cols, -1.0, np.abs(row)))

        # This row is already reproduced exactly so try a random unused one.
        if row[j] == 0.0 or used_cols[j]:
            zero_rows += 1
            remaining = np.flatnonzero(~used_rows)
            if zero_rows >= MAX_ZERO_ROWS or not len(remaining):
                converged = True
            else:
                i = random.choice(remaining)
            continue
        zero_rows = 0

        used_cols[j] = True
        v = row / row[j]
        u = get_block(source, start_row, start_col + j, n_rows, 1)[:, 0]
        u -= np.dot(U[:, :rank], V[j, :rank])

        # Update the estimate of the squared Frobenius norm.
        uu = np.dot(u, u)
        vv = np.dot(v, v)
        norm2 += uu * vv
        norm2 += 2 * np.dot(np.dot(U[:, :rank].T, u),
                            np.dot(V[:, :rank].T, v))

        U[:, rank] = u
        V[:, rank] = v
        rank += 1

        previous, small = small, uu * vv <= tol2 * norm2
        if previous and small:
            i = check_rows(rank, tol2 * norm2)
            if i is None:
                converged = True
            small = False
            continue

        # The next row is the one with the largest entry in the new column.
        i = np.argmax(np.where(used_rows, -1.0, np.abs(u)))
        if used_rows[i]:
            converged = True

    if not converged and rank < full_rank:
        raise ToleranceUnattainable(
            "couldn't reach a tolerance of {0} with rank {1} for the "
            "{2}x{3} block at ({4}, {5})".format(tol, rank, n_rows, n_cols,
                                                  start_row, start_col),
            rows=(start_row, start_row + n_rows),
            cols=(start_col, start_col + n_cols),
            rank=rank)

    # At full rank the crosses interpolate every row (or column) exactly but
    # the block isn't compressed at all.
    if not converged and full_rank > 1:
        logger.warning("the %dx%d block at (%d, %d) has full rank; the "
                       "points might not be ordered (see kd_sort)",
                       n_rows, n_cols, start_row, start_col)

    return U[:, :rank], V[:, :rank]


def recompress(U, V, tol):
    """
    Recompress the product ``U.dot(V.T)`` with a truncated SVD, dropping the
    singular values smaller than ``tol`` times the largest one.

    :returns U, V: The recompressed factors with at most the same rank.

    """
    if not U.shape[1]:
        return U, V
    qu, ru = qr(U, mode="economic")
    qv, rv = qr(V, mode="economic")
    uhat, shat, vhat = svd(np.dot(ru, rv.T))
    if shat[0] == 0.0:
        return U[:, :0], V[:, :0]
    rank = int(np.sum(shat > tol * shat[0]))
    return (np.dot(qu, uhat[:, :rank] * shat[:rank]),
            np.dot(qv, vhat[:rank].T))


def compress(source, rows, cols, tol, max_rank=None, recompress_svd=True):
    """
    Compress the block of an entry source between two index ranges.

    :param rows, cols:
        The :class:`IndexRange` of the rows and columns.
    :param tol:
        The relative tolerance requested for the block.

    :returns block: A :class:`LowRankBlock`.

    """
    tol = TOLERANCE_SAFETY * tol
    U, V = adaptive_cross_approximation(source, rows.start, rows.size,
                                        cols.start, cols.size, tol,
                                        max_rank=max_rank)
    cross_rank = U.shape[1]
    if recompress_svd:
        U, V = recompress(U, V, tol)
    logger.debug("compressed block %s x %s to rank %d (cross rank %d)",
                 rows, cols, U.shape[1], cross_rank)
    return LowRankBlock(U, V)
