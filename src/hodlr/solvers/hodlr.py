# -*- coding: utf-8 -*-

__all__ = ["HODLRSolver"]

import numpy as np

from .basic import BasicSolver
from ..entries import KernelMatrix
from ..tree import Tree
from ..utils import depth_for_leaf_size, kd_sort


class HODLRSolver(BasicSolver):
    r"""
    A solver using `Sivaram Ambikasaran's HODLR algorithm
    <http://arxiv.org/abs/1403.6015>`_ to approximately solve the linear
    algebra for a kernel matrix in :math:`\mathcal{O}(N\,\log^2 N)`.

    The points are reordered with :func:`hodlr.utils.kd_sort` before the
    tree is built and every vector is mapped through the same permutation,
    so callers always work in the original order.

    :param kernel:
        An instance of a subclass of :class:`kernels.Kernel`.
    :param min_size: (optional[int])
        The block size where the solver switches to a general direct
        factorization algorithm. This can be tuned for platform and
        problem specific performance and accuracy. As a general rule,
        larger values will be more accurate and slower, but there is some
        overhead for very small values, so we recommend choosing values in the
        hundreds. (default: ``100``)
    :param tol: (optional[float])
        The precision tolerance for the low-rank approximation.
        This value is used as an approximate limit on the relative Frobenius
        norm of the error in the off-diagonal blocks. Smaller values of
        ``tol`` will generally give more accurate results with higher
        computational cost. (default: ``1e-10``)
    :param max_workers: (optional[int])
        The number of threads used to build and factorize the tree.
        (default: ``None``)

    """

    def __init__(self, kernel, min_size=100, tol=1e-10, max_workers=None):
        self.min_size = min_size
        self.tol = tol
        self.max_workers = max_workers
        self.tree = None
        super(HODLRSolver, self).__init__(kernel)

    def compute(self, x, yerr):
        x = np.asarray(x, dtype=float)
        if len(x.shape) == 1:
            x = x[:, None]
        n = len(x)
        diag = np.broadcast_to(np.asarray(yerr, dtype=float) ** 2, (n,))

        perm = kd_sort(x, min_size=self.min_size)
        source = KernelMatrix(x[perm], self.kernel, diag=diag[perm])
        self.tree = Tree(source, depth_for_leaf_size(n, self.min_size),
                         self.tol, permutation=perm,
                         max_workers=self.max_workers)
        self.tree.assemble_tree(symmetric=True, positive_definite=True)
        self.tree.factorize()
        self.log_determinant = self.tree.log_determinant()
        self.computed = True

    def _to_tree(self, y):
        return np.asarray(y, dtype=float)[self.tree.permutation]

    def _from_tree(self, y):
        result = np.empty_like(y)
        result[self.tree.permutation] = y
        return result

    def apply_inverse(self, y, in_place=False):
        result = self._from_tree(self.tree.solve(self._to_tree(y)))
        if in_place:
            y[:] = result
            return y
        return result

    def dot_solve(self, y):
        return np.dot(y.T, self.apply_inverse(y))

    def apply_sqrt(self, r):
        r = np.asarray(r, dtype=float)
        z = self.tree.symmetric_factor_product(np.atleast_2d(r).T)
        result = self._from_tree(z).T
        return result[0] if len(r.shape) == 1 else result

    def get_inverse(self):
        return self.apply_inverse(np.eye(self.tree.size))

    def __getstate__(self):
        state = self.__dict__.copy()
        state["_computed"] = False
        state["tree"] = None
        return state

    def __setstate__(self, state):
        self.__dict__.update(state)
