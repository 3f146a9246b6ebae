# -*- coding: utf-8 -*-

__all__ = ["TreeConfig"]

from collections import namedtuple

import numpy as np

from .errors import ConstructionError


class TreeConfig(namedtuple("TreeConfig", [
        "depth", "tolerance", "symmetric", "positive_definite",
        "max_rank", "recompress", "max_workers"])):
    """
    The immutable settings threaded through every recursive call.

    :param depth:
        The number of levels below the root. A tree of depth ``0`` is a
        single dense leaf.
    :param tolerance:
        The relative tolerance for the low-rank approximation of each
        off-diagonal block.
    :param symmetric: (optional)
        Reuse the transpose of the upper coupling for the lower one.
        (default: ``False``)
    :param positive_definite: (optional)
        Factorize with Cholesky instead of LU. Only meaningful together with
        ``symmetric``. (default: ``False``)
    :param max_rank: (optional)
        An upper limit on the rank of any off-diagonal block. If ``None``,
        the rank is only limited by the block dimensions. (default: ``None``)
    :param recompress: (optional)
        Recompress the cross approximation with a truncated SVD.
        (default: ``True``)
    :param max_workers: (optional)
        The number of threads used for assembly and factorization. Values of
        ``None`` or ``1`` run serially. (default: ``None``)

    """

    __slots__ = ()

    def __new__(cls, depth, tolerance, symmetric=False,
                positive_definite=False, max_rank=None, recompress=True,
                max_workers=None):
        depth = int(depth)
        if depth < 0:
            raise ConstructionError("the tree depth must be non-negative")
        tolerance = float(tolerance)
        if not np.isfinite(tolerance) or tolerance <= 0.0:
            raise ValueError("the tolerance must be positive and finite")
        if max_rank is not None:
            max_rank = int(max_rank)
            if max_rank < 1:
                raise ValueError("max_rank must be at least 1")
        if max_workers is not None:
            max_workers = int(max_workers)
            if max_workers < 1:
                raise ValueError("max_workers must be at least 1")
        return super(TreeConfig, cls).__new__(
            cls, depth, tolerance, bool(symmetric), bool(positive_definite),
            max_rank, bool(recompress), max_workers)

    @property
    def use_cholesky(self):
        return self.symmetric and self.positive_definite

    @property
    def parallel(self):
        return self.max_workers is not None and self.max_workers > 1

    def with_modes(self, symmetric, positive_definite):
        return self._replace(symmetric=bool(symmetric),
                             positive_definite=bool(positive_definite))
