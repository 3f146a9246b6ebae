# -*- coding: utf-8 -*-

__all__ = ["kd_sort", "depth_for_leaf_size"]

import numpy as np

from .errors import ConstructionError


def kd_sort(samples, min_size=1):
    """
    Order an N-dimensional list of samples by recursive bisection so that
    every range of indices produced by the tree splits is a compact cluster.

    Each range is sorted along one axis (cycling through the axes with the
    depth of the recursion) and then split with the same rule as the tree:
    the first half gets ``size // 2`` samples.

    :param samples: ``(nsamples,)`` or ``(nsamples, ndim)``
        The list of samples.
    :param min_size: (optional)
        Ranges smaller than this aren't split any further. (default: ``1``)

    :returns i: ``(nsamples,)``
        The list of indices into the original array that return the correctly
        sorted version.

    """
    samples = np.asarray(samples, dtype=float)
    if len(samples.shape) == 1:
        samples = samples[:, None]
    if len(samples.shape) != 2:
        raise ValueError("the samples must be one or two dimensional")

    nsamples, ndim = samples.shape
    inds = np.arange(nsamples)
    stack = [(0, nsamples, 0)]
    while stack:
        start, stop, level = stack.pop()
        size = stop - start
        if size < 2 or size <= min_size:
            continue
        axis = level % ndim
        order = np.argsort(samples[inds[start:stop], axis], kind="mergesort")
        inds[start:stop] = inds[start:stop][order]

        mid = start + size // 2
        stack.append((start, mid, level + 1))
        stack.append((mid, stop, level + 1))
    return inds


def depth_for_leaf_size(n, leaf_size):
    """
    The depth of the tree whose leaves have about ``leaf_size`` rows.

    :param n:
        The size of the matrix.
    :param leaf_size:
        The target number of rows in each leaf.

    """
    n = int(n)
    leaf_size = int(leaf_size)
    if n < 1 or leaf_size < 1:
        raise ConstructionError("the matrix and leaf sizes must be positive")
    depth = 0
    while n >> (depth + 1) >= leaf_size:
        depth += 1
    return depth
