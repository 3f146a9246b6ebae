# -*- coding: utf-8 -*-
r"""
The factorization of an assembled tree.

Every node ``k`` with children ``L`` and ``R`` represents

.. math::

    A_k = \left(\begin{array}{cc}
        A_L & U_{12}\,V_{12}^T \\
        U_{21}\,V_{21}^T & A_R
    \end{array}\right)
    = \mathrm{diag}(A_L,\,A_R)\,\left(I + \tilde{U}\,V^T\right)

so it only needs the factors of its children and a small "reduced system"
coupling them. The factors are computed bottom-up: after a node is factored,
its local inverse is applied to the rows of its ancestors' couplings that it
covers, so that by the time a node is reached its couplings have been
multiplied by the full inverses of its children.

In the symmetric positive-definite case the same recursion builds a
symmetric factor :math:`A = W\,W^T` with

.. math::

    W_k = \mathrm{diag}(W_L,\,W_R)\,\left(I + Q\,(L_K - I)\,Q^T\right)

where :math:`Q` has orthonormal columns and :math:`L_K` is the Cholesky
factor of the reduced system.

"""

__all__ = [
    "LeafLU",
    "LeafCholesky",
    "NodeLU",
    "NodeCholesky",
    "factorize",
]

import logging
import warnings

import numpy as np
from scipy.linalg import (LinAlgError, LinAlgWarning, cholesky, lu_factor,
                          lu_solve, qr, solve_triangular)

from .errors import NonPositiveDefinite

logger = logging.getLogger(__name__)


def _cholesky(matrix, what):
    try:
        return cholesky(matrix, lower=True)
    except LinAlgError as e:
        raise NonPositiveDefinite("the {0} isn't positive definite: {1}"
                                  .format(what, e))


def _lu_factor(matrix, what):
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", LinAlgWarning)
        lu = lu_factor(matrix, overwrite_a=True)
    if not np.all(np.diag(lu[0])):
        raise LinAlgError("the {0} is singular".format(what))
    return lu


def _lu_log_det(lu):
    return np.sum(np.log(np.abs(np.diag(lu[0]))))


class LeafLU(object):
    """The pivoted LU factorization of a dense leaf block."""

    def __init__(self, block):
        self.lu = _lu_factor(np.array(block), "leaf block")
        self.log_det = _lu_log_det(self.lu)

    def apply_inverse(self, x):
        x[:] = lu_solve(self.lu, x)
        return x


class LeafCholesky(object):
    """The lower Cholesky factor ``L`` of a dense leaf block."""

    def __init__(self, block):
        self.L = _cholesky(block, "leaf block")
        self.log_det = 2 * np.sum(np.log(np.diag(self.L)))

    def dot(self, x):
        x[:] = np.dot(self.L, x)
        return x

    def dot_transpose(self, x):
        x[:] = np.dot(self.L.T, x)
        return x

    def apply_inverse(self, x):
        x[:] = solve_triangular(self.L, x, lower=True)
        return x

    def apply_inverse_transpose(self, x):
        x[:] = solve_triangular(self.L, x, lower=True, trans=1)
        return x


class NodeLU(object):
    r"""
    The reduced system of an internal node for the general (LU) path.

    :param coupling:
        The ``[upper, lower]`` :class:`LowRankBlock` pair of the node.
    :param solved:
        ``[A_L^{-1} U_{12}, A_R^{-1} U_{21}]``.
    :param split:
        The number of rows in the left child.

    """

    def __init__(self, coupling, solved, split):
        self.split = split
        self.V = [coupling[0].V, coupling[1].V]
        self.solved = solved

        r1 = solved[0].shape[1]
        r2 = solved[1].shape[1]
        self.rank = r1
        K = np.eye(r1 + r2)
        K[:r1, r1:] = np.dot(self.V[0].T, solved[1])
        K[r1:, :r1] = np.dot(self.V[1].T, solved[0])
        if r1 + r2:
            self.lu = _lu_factor(K, "reduced system")
            self.log_det = _lu_log_det(self.lu)
        else:
            self.lu = None
            self.log_det = 0.0

    def apply_inverse(self, x):
        if self.lu is None:
            return x
        s = self.split
        tmp = np.concatenate((np.dot(self.V[0].T, x[s:]),
                              np.dot(self.V[1].T, x[:s])))
        alpha = lu_solve(self.lu, tmp, overwrite_b=True)
        x[:s] -= np.dot(self.solved[0], alpha[:self.rank])
        x[s:] -= np.dot(self.solved[1], alpha[self.rank:])
        return x


class NodeCholesky(object):
    r"""
    The local factor ``I + Q (L_K - I) Q^T`` of an internal node for the
    symmetric positive-definite path.

    :param solved:
        ``[W_L^{-1} U_{12}, W_R^{-1} V_{12}]``.
    :param split:
        The number of rows in the left child.

    """

    def __init__(self, solved, split):
        self.split = split
        self.rank = solved[0].shape[1]
        if not self.rank:
            self.Q = [solved[0], solved[1]]
            self.L = None
            self.log_det = 0.0
            return

        Q1, R1 = qr(solved[0], mode="economic")
        Q2, R2 = qr(solved[1], mode="economic")
        self.Q = [Q1, Q2]

        r = self.rank
        K = np.eye(2 * r)
        K[:r, r:] = np.dot(R1, R2.T)
        K[r:, :r] = K[:r, r:].T
        self.L = _cholesky(K, "reduced system")
        self.log_det = 2 * np.sum(np.log(np.diag(self.L)))

    def _project(self, x):
        s = self.split
        return np.concatenate((np.dot(self.Q[0].T, x[:s]),
                               np.dot(self.Q[1].T, x[s:])))

    def _update(self, x, delta):
        s = self.split
        x[:s] += np.dot(self.Q[0], delta[:self.rank])
        x[s:] += np.dot(self.Q[1], delta[self.rank:])
        return x

    def dot(self, x):
        if self.L is None:
            return x
        t = self._project(x)
        return self._update(x, np.dot(self.L, t) - t)

    def dot_transpose(self, x):
        if self.L is None:
            return x
        t = self._project(x)
        return self._update(x, np.dot(self.L.T, t) - t)

    def apply_inverse(self, x):
        if self.L is None:
            return x
        t = self._project(x)
        return self._update(x, solve_triangular(self.L, t, lower=True) - t)

    def apply_inverse_transpose(self, x):
        if self.L is None:
            return x
        t = self._project(x)
        return self._update(
            x, solve_triangular(self.L, t, lower=True, trans=1) - t)


def _factorize_node(node, use_cholesky):
    if node.is_leaf:
        factor = (LeafCholesky if use_cholesky else LeafLU)(node.dense)
    elif use_cholesky:
        factor = NodeCholesky(node.solved, node.children[0].size)
    else:
        factor = NodeLU(node.coupling, node.solved, node.children[0].size)
    node.factor = factor

    # Fold this node's local inverse into the couplings of its ancestors.
    child = node
    parent = node.parent
    while parent is not None:
        array = parent.solved[child.direction]
        offset = node.start - parent.children[child.direction].start
        factor.apply_inverse(array[offset:offset+node.size])
        child = parent
        parent = parent.parent


def factorize(levels, config, map_function=map):
    """
    Factorize the nodes of an assembled tree in place, from the leaves up.

    :param levels:
        The nodes of the tree grouped by level, root first.
    :param config:
        The :class:`TreeConfig` of the tree.
    :param map_function: (optional)
        Used to process the nodes of one level, which are independent.

    """
    use_cholesky = config.use_cholesky
    for level in levels:
        for node in level:
            if node.is_leaf:
                continue
            upper, lower = node.coupling
            if use_cholesky:
                node.solved = [upper.U.copy(), upper.V.copy()]
            else:
                node.solved = [upper.U.copy(), lower.U.copy()]

    try:
        for n, level in reversed(list(enumerate(levels))):
            list(map_function(
                lambda node: _factorize_node(node, use_cholesky), level))
            logger.debug("factorized level %d (%d nodes)", n, len(level))
    except Exception:
        for level in levels:
            for node in level:
                node.factor = None
        raise
    finally:
        for level in levels:
            for node in level:
                node.solved = None

    return sum(node.factor.log_det for level in levels for node in level)
