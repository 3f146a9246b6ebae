#!/usr/bin/env python
# -*- coding: utf-8 -*-

import time
import hodlr
import numpy as np

np.random.seed(123)

kernel = hodlr.kernels.ExpSquaredKernel(1.0)
for N in [500, 1000, 2000, 4000]:
    x = 100 * np.sort(np.random.rand(N)) - 50
    yerr = 0.05 * np.ones(len(x))
    y = np.sin(0.5 * x) + yerr * np.random.randn(len(x))

    for Solver in [hodlr.BasicSolver, hodlr.HODLRSolver]:
        solver = Solver(kernel)
        strt = time.time()
        solver.compute(x, yerr)
        alpha = solver.apply_inverse(y)
        print("{0} N={1}: {2:.4f}s, log det = {3:.6f}, y.K^-1.y = {4:.6f}"
              .format(Solver.__name__, N, time.time() - strt,
                      solver.log_determinant, np.dot(y, alpha)))
