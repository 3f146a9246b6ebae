# -*- coding: utf-8 -*-

__all__ = [
    "HODLRError",
    "ConstructionError",
    "ToleranceUnattainable",
    "NonPositiveDefinite",
    "SequencingError",
]

from scipy.linalg import LinAlgError


class HODLRError(Exception):
    """The base class for every error raised by this package."""


class ConstructionError(HODLRError, ValueError):
    """
    The requested tree can't be built for this matrix: the depth is negative,
    a leaf would be empty, or the entry source isn't square.

    """


class ToleranceUnattainable(HODLRError):
    """
    An off-diagonal block couldn't be compressed to the requested tolerance
    within the allowed rank. This usually means that the points weren't
    reordered, or that the tolerance is too tight for the rank cap.

    """

    def __init__(self, message, rows=None, cols=None, rank=None):
        super(ToleranceUnattainable, self).__init__(message)
        self.rows = rows
        self.cols = cols
        self.rank = rank


class NonPositiveDefinite(HODLRError, LinAlgError):
    """A Cholesky factorization hit a non-positive pivot."""


class SequencingError(HODLRError, RuntimeError):
    """An operation was called before the tree reached the required state."""
