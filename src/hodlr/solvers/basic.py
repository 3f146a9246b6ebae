# -*- coding: utf-8 -*-

__all__ = ["BasicSolver"]

import numpy as np
from scipy.linalg import LinAlgError, cholesky, cho_solve

from ..entries import KernelMatrix
from ..errors import NonPositiveDefinite


class BasicSolver(object):
    """
    This is the most basic solver built using :func:`scipy.linalg.cholesky`
    on the full dense matrix. It costs :math:`\\mathcal{O}(N^3)` and is
    mostly useful as a reference for :class:`HODLRSolver`.

    kernel (hodlr.kernels.Kernel): The kernel function evaluated between
        pairs of points.

    """

    def __init__(self, kernel):
        self.kernel = kernel
        self._computed = False
        self._log_det = None

    @property
    def computed(self):
        """
        A flag indicating whether or not the matrix was computed and
        factorized (using the :func:`compute` method).

        """
        return self._computed

    @computed.setter
    def computed(self, v):
        self._computed = v

    @property
    def log_determinant(self):
        """
        The log-determinant of the matrix. This will only be non-``None``
        after calling the :func:`compute` method.

        """
        return self._log_det

    @log_determinant.setter
    def log_determinant(self, v):
        self._log_det = v

    def compute(self, x, yerr):
        """
        Compute and factorize the matrix.

        Args:
            x (ndarray[nsamples, ndim]): The coordinates of the points.
            yerr (ndarray[nsamples] or float): Uncertainties added in
                quadrature to the diagonal of the matrix.

        """
        source = KernelMatrix(x, self.kernel, diag=np.asarray(yerr) ** 2)
        K = source.get_matrix()

        # Factor the matrix and compute the log-determinant.
        try:
            factor = cholesky(K, overwrite_a=True, lower=False)
        except LinAlgError as e:
            raise NonPositiveDefinite(str(e))
        self._factor = (factor, False)
        self.log_determinant = 2 * np.sum(np.log(np.diag(self._factor[0])))
        self.computed = True

    def apply_inverse(self, y, in_place=False):
        r"""
        Apply the inverse of the matrix to the input by solving

        .. math::

            K\,x = y

        Args:
            y (ndarray[nsamples] or ndadrray[nsamples, nrhs]): The vector or
                matrix :math:`y`.
            in_place (Optional[bool]): Should the data in ``y`` be overwritten
                with the result :math:`x`? (default: ``False``)

        """
        return cho_solve(self._factor, y, overwrite_b=in_place)

    def dot_solve(self, y):
        r"""
        Compute the inner product of a vector with the inverse of the
        matrix applied to itself:

        .. math::

            y\,K^{-1}\,y

        Args:
            y (ndarray[nsamples]): The vector :math:`y`.

        """
        return np.dot(y.T, cho_solve(self._factor, y))

    def apply_sqrt(self, r):
        """
        Apply the Cholesky square root of the matrix to the input vector or
        matrix.

        Args:
            r (ndarray[nsamples] or ndarray[nrhs, nsamples]: The input vector
                or matrix.

        """
        return np.dot(r, self._factor[0])

    def get_inverse(self):
        """
        Get the dense inverse matrix. This is not recommended in general.
        """
        return self.apply_inverse(np.eye(len(self._factor[0])), in_place=True)
