#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Build, factorize and check a HODLR tree for a Gaussian kernel matrix on
random points:

    python gaussian_kernel.py N M DIM TOL

where ``M`` is the leaf size and the tolerance is ``10**-TOL``.

"""

import os
import sys
import time

import numpy as np

d = os.path.dirname
sys.path.insert(0, os.path.join(d(d(os.path.abspath(__file__))), "src"))
from hodlr import EntrySource, Tree, depth_for_leaf_size, kd_sort


class GaussianEntries(EntrySource):

    def __init__(self, x):
        self.x = x
        self.shape = (len(x), len(x))

    def entry(self, i, j):
        if i == j:
            return 10.0
        return np.exp(-np.sum((self.x[i] - self.x[j]) ** 2))

    def block(self, row_start, col_start, n_rows, n_cols):
        x1 = self.x[row_start:row_start+n_rows]
        x2 = self.x[col_start:col_start+n_cols]
        K = np.exp(-np.sum((x1[:, None, :] - x2[None, :, :]) ** 2, axis=-1))
        lo = max(row_start, col_start)
        hi = min(row_start + n_rows, col_start + n_cols)
        inds = np.arange(lo, hi)
        K[inds - row_start, inds - col_start] = 10.0
        return K


def relative_error(approx, exact):
    return np.linalg.norm(approx - exact) / np.linalg.norm(exact)


N, M, dim = map(int, sys.argv[1:4])
tolerance = 10.0 ** -int(sys.argv[4])
symmetric, positive_definite = True, True

np.random.seed(42)
x = np.random.uniform(-1, 1, (N, dim))
x = x[kd_sort(x)]
K = GaussianEntries(x)

strt = time.time()
T = Tree(K, depth_for_leaf_size(N, M), tolerance)
T.assemble_tree(symmetric=symmetric, positive_definite=positive_definite)
print("assembly: {0:.3f}s".format(time.time() - strt))
for row in T.rank_summary():
    print("  level {level}: {nodes} nodes, ranks {min_rank}-{max_rank}"
          .format(**row))

y = np.random.uniform(-1, 1, (N, 1))
b_fast = T.matmat_product(y)
B = K.get_matrix()
b_exact = np.dot(B, y)
print("product error: {0:.2e}".format(relative_error(b_fast, b_exact)))

strt = time.time()
T.factorize()
print("factorization: {0:.3f}s".format(time.time() - strt))

y_fast = T.solve(b_exact)
print("solve error: {0:.2e}".format(relative_error(y_fast, y)))

sgn, log_det = np.linalg.slogdet(B)
print("log-determinant error: {0:.2e}".format(
    abs(1 - abs(T.log_determinant() / log_det))))

if symmetric and positive_definite:
    z = T.symmetric_factor_transpose_product(y)
    b_fast = T.symmetric_factor_product(z)
    print("symmetric factor error: {0:.2e}".format(
        relative_error(b_fast, b_exact)))
