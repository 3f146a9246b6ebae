# -*- coding: utf-8 -*-

__all__ = ["IndexRange", "Node", "Tree", "EMPTY", "ASSEMBLED", "FACTORIZED"]

import logging
import warnings
from collections import namedtuple
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from .config import TreeConfig
from .entries import get_block, source_size
from .errors import ConstructionError, SequencingError
from .factor import factorize
from .lowrank import compress

logger = logging.getLogger(__name__)

EMPTY = "empty"
ASSEMBLED = "assembled"
FACTORIZED = "factorized"


class IndexRange(namedtuple("IndexRange", ["start", "stop"])):
    """A half-open range ``[start, stop)`` of (reordered) row indices."""

    __slots__ = ()

    @property
    def size(self):
        return self.stop - self.start

    @property
    def slice(self):
        return slice(self.start, self.stop)

    def split(self):
        """Split into two ranges, the first one with ``size // 2`` indices."""
        mid = self.start + self.size // 2
        return IndexRange(self.start, mid), IndexRange(mid, self.stop)

    def __str__(self):
        return "[{0}, {1})".format(self.start, self.stop)


class Node(object):
    """
    A node of the tree covering the rows and columns ``index_range``.

    Nodes at the maximum depth are leaves and hold the ``dense`` diagonal
    block. The others have two ``children`` and the ``coupling`` pair of
    :class:`LowRankBlock` for the upper-right and lower-left blocks. Either
    kind gets a ``factor`` after factorization.

    """

    def __init__(self, index_range, level, depth, parent=None, direction=0):
        self.index_range = index_range
        self.level = level
        self.parent = parent
        self.direction = direction
        self.dense = None
        self.coupling = None
        self.factor = None
        self.solved = None

        if level < depth:
            left, right = index_range.split()
            self.children = [
                Node(left, level + 1, depth, self, 0),
                Node(right, level + 1, depth, self, 1),
            ]
        else:
            self.children = []

    @property
    def is_leaf(self):
        return not self.children

    @property
    def start(self):
        return self.index_range.start

    @property
    def size(self):
        return self.index_range.size

    def assemble(self, source, config):
        """Read the dense leaf block or compress the off-diagonal blocks."""
        if self.is_leaf:
            self.dense = get_block(source, self.start, self.start,
                                   self.size, self.size)
            return

        left, right = [c.index_range for c in self.children]
        upper = compress(source, left, right, config.tolerance,
                         max_rank=config.max_rank,
                         recompress_svd=config.recompress)
        if config.symmetric:
            lower = upper.transpose()
        else:
            lower = compress(source, right, left, config.tolerance,
                             max_rank=config.max_rank,
                             recompress_svd=config.recompress)
        self.coupling = [upper, lower]

    def matmat(self, x):
        if self.is_leaf:
            return np.dot(self.dense, x)
        s = self.children[0].size
        upper, lower = self.coupling
        y = np.empty((self.size, x.shape[1]))
        y[:s] = self.children[0].matmat(x[:s]) + upper.dot(x[s:])
        y[s:] = self.children[1].matmat(x[s:]) + lower.dot(x[:s])
        return y

    def to_dense(self):
        if self.is_leaf:
            return np.array(self.dense)
        s = self.children[0].size
        upper, lower = self.coupling
        K = np.empty((self.size, self.size))
        K[:s, :s] = self.children[0].to_dense()
        K[s:, s:] = self.children[1].to_dense()
        K[:s, s:] = upper.to_dense()
        K[s:, :s] = lower.to_dense()
        return K

    def apply_up(self, x, method):
        """Apply the children first and then the local factor ``method``."""
        s = self.children[0].size if self.children else 0
        for c, part in zip(self.children, (x[:s], x[s:])):
            c.apply_up(part, method)
        getattr(self.factor, method)(x)
        return x

    def apply_down(self, x, method):
        """Apply the local factor ``method`` and then the children."""
        getattr(self.factor, method)(x)
        s = self.children[0].size if self.children else 0
        for c, part in zip(self.children, (x[:s], x[s:])):
            c.apply_down(part, method)
        return x


class Tree(object):
    r"""
    A hierarchical off-diagonal low-rank (HODLR) representation of a dense
    matrix supporting fast products, solves and log-determinants, following
    `Ambikasaran & Darve <http://arxiv.org/abs/1403.6015>`_.

    The tree goes through three states: it is ``"empty"`` when constructed,
    ``"assembled"`` after :func:`assemble_tree` and ``"factorized"`` after
    :func:`factorize`. Products only need an assembled tree; everything else
    needs a factorized one.

    :param source:
        The entry source for the matrix (see :mod:`hodlr.entries`). It should
        already be in the order given by :func:`hodlr.utils.kd_sort`.
    :param depth:
        The number of levels below the root; the leaves have about
        ``N / 2**depth`` rows.
    :param tolerance:
        The relative tolerance for the low-rank approximation of each
        off-diagonal block.
    :param permutation: (optional)
        The permutation used to order the source, kept for the caller.
    :param max_rank: (optional)
        An upper limit on the rank of any off-diagonal block.
        (default: ``None``)
    :param recompress: (optional)
        Recompress each cross approximation with a truncated SVD.
        (default: ``True``)
    :param max_workers: (optional)
        The number of threads used for independent subtrees.
        (default: ``None``)

    """

    def __init__(self, source, depth, tolerance, permutation=None,
                 max_rank=None, recompress=True, max_workers=None):
        self.source = source
        self.size = source_size(source)
        self.config = TreeConfig(depth, tolerance, max_rank=max_rank,
                                 recompress=recompress,
                                 max_workers=max_workers)
        if self.size < 2 ** self.config.depth:
            raise ConstructionError(
                "a tree of depth {0} needs at least {1} rows but the matrix "
                "only has {2}".format(self.config.depth,
                                      2 ** self.config.depth, self.size))

        if permutation is not None:
            permutation = np.asarray(permutation, dtype=int)
            if not np.array_equal(np.sort(permutation),
                                  np.arange(self.size)):
                raise ValueError("invalid permutation")
        self.permutation = permutation

        self.root = None
        self.levels = []
        self.state = EMPTY
        self._log_det = None

    @property
    def depth(self):
        return self.config.depth

    @property
    def tolerance(self):
        return self.config.tolerance

    @property
    def symmetric(self):
        return self.config.symmetric

    @property
    def positive_definite(self):
        return self.config.positive_definite

    def _map(self, function, items):
        if not self.config.parallel:
            return [function(item) for item in items]
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
            return list(pool.map(function, items))

    def _require(self, *states):
        if self.state not in states:
            raise SequencingError(
                "this operation needs a tree that is {0} but it is {1}"
                .format(" or ".join(states), self.state))

    def _require_symmetric_factor(self):
        self._require(FACTORIZED)
        if not self.config.use_cholesky:
            raise SequencingError(
                "the symmetric factor is only available for trees assembled "
                "as symmetric and positive definite")

    def _parse_rhs(self, x):
        x = np.array(x, dtype=float)
        vector = len(x.shape) == 1
        if vector:
            x = x[:, None]
        if len(x.shape) != 2 or x.shape[0] != self.size:
            raise ValueError("dimension mismatch")
        return x, vector

    def assemble_tree(self, symmetric=False, positive_definite=False):
        """
        Compress the off-diagonal blocks and read the dense leaves.

        :param symmetric: (optional)
            Is the matrix symmetric? If so, only the upper coupling of each
            node is compressed. (default: ``False``)
        :param positive_definite: (optional)
            Is the matrix also positive definite? If so, it will be
            factorized with Cholesky and the symmetric factor becomes
            available. (default: ``False``)

        """
        self._require(EMPTY)
        if positive_definite and not symmetric:
            warnings.warn("positive_definite is ignored for a matrix that "
                          "isn't symmetric")
            positive_definite = False
        config = self.config.with_modes(symmetric, positive_definite)

        root = Node(IndexRange(0, self.size), 0, config.depth)
        levels = [[root]]
        while levels[-1][0].children:
            levels.append([c for node in levels[-1] for c in node.children])

        nodes = [node for level in levels for node in level]
        self._map(lambda node: node.assemble(self.source, config), nodes)

        self.config = config
        self.root = root
        self.levels = levels
        self.state = ASSEMBLED
        logger.debug("assembled a tree with N=%d, depth=%d and max rank %d",
                     self.size, config.depth, self.max_rank())

    def max_rank(self):
        """The largest rank of any off-diagonal block."""
        ranks = [b.rank for level in self.levels for node in level
                 if not node.is_leaf for b in node.coupling]
        return max(ranks) if ranks else 0

    def rank_summary(self):
        """
        Summarize the off-diagonal ranks at each level of an assembled tree.

        :returns summary:
            A list with one ``dict`` per internal level with the keys
            ``level``, ``nodes``, ``min_rank``, ``mean_rank`` and
            ``max_rank``.

        """
        self._require(ASSEMBLED, FACTORIZED)
        summary = []
        for n, level in enumerate(self.levels[:-1]):
            ranks = [b.rank for node in level for b in node.coupling]
            summary.append(dict(level=n, nodes=len(level),
                                min_rank=min(ranks),
                                mean_rank=float(np.mean(ranks)),
                                max_rank=max(ranks)))
        return summary

    def matmat_product(self, x):
        """
        Compute the product of the compressed matrix with ``x``.

        :param x: ``(N,)`` or ``(N, k)``

        :returns y: An array with the same shape as ``x``.

        """
        self._require(ASSEMBLED, FACTORIZED)
        x, vector = self._parse_rhs(x)
        y = self.root.matmat(x)
        return y[:, 0] if vector else y

    def to_dense(self):
        """
        The dense matrix represented by the compressed tree. This costs
        :math:`\\mathcal{O}(N^2)` and is only meant for debugging.

        """
        self._require(ASSEMBLED, FACTORIZED)
        return self.root.to_dense()

    def factorize(self):
        """
        Factorize the assembled tree so that :func:`solve` and
        :func:`log_determinant` can be used. The assembled blocks are kept so
        :func:`matmat_product` still works afterwards.

        """
        self._require(ASSEMBLED)
        self._log_det = factorize(self.levels, self.config,
                                  map_function=self._map)
        self.state = FACTORIZED

    def solve(self, b):
        """
        Solve the linear system ``A.x = b``.

        :param b: ``(N,)`` or ``(N, k)``

        :returns x: An array with the same shape as ``b``.

        """
        self._require(FACTORIZED)
        x, vector = self._parse_rhs(b)
        if self.config.use_cholesky:
            self.root.apply_up(x, "apply_inverse")
            self.root.apply_down(x, "apply_inverse_transpose")
        else:
            self.root.apply_up(x, "apply_inverse")
        return x[:, 0] if vector else x

    def log_determinant(self):
        """The natural logarithm of the absolute value of the determinant."""
        self._require(FACTORIZED)
        return self._log_det

    def symmetric_factor_product(self, y):
        """
        Compute ``W.y`` where ``A = W.W^T``.

        :param y: ``(N,)`` or ``(N, k)``

        """
        self._require_symmetric_factor()
        x, vector = self._parse_rhs(y)
        self.root.apply_down(x, "dot")
        return x[:, 0] if vector else x

    def symmetric_factor_transpose_product(self, x):
        """
        Compute ``W^T.x`` where ``A = W.W^T``.

        :param x: ``(N,)`` or ``(N, k)``

        """
        self._require_symmetric_factor()
        y, vector = self._parse_rhs(x)
        self.root.apply_up(y, "dot_transpose")
        return y[:, 0] if vector else y

    def symmetric_factor_solve(self, b):
        """Solve ``W.x = b`` where ``A = W.W^T``."""
        self._require_symmetric_factor()
        x, vector = self._parse_rhs(b)
        self.root.apply_up(x, "apply_inverse")
        return x[:, 0] if vector else x

    def symmetric_factor_transpose_solve(self, b):
        """Solve ``W^T.x = b`` where ``A = W.W^T``."""
        self._require_symmetric_factor()
        x, vector = self._parse_rhs(b)
        self.root.apply_down(x, "apply_inverse_transpose")
        return x[:, 0] if vector else x

    def get_symmetric_factor(self):
        """
        The dense symmetric factor ``W``. This costs
        :math:`\\mathcal{O}(N^2)` and is meant for validation.

        """
        return self.symmetric_factor_product(np.eye(self.size))

    def __repr__(self):
        return "Tree(size={0}, depth={1}, tolerance={2}, state={3!r})".format(
            self.size, self.depth, self.tolerance, self.state)
