# -*- coding: utf-8 -*-

__all__ = [
    "Kernel",
    "ExpSquaredKernel",
    "ExpKernel",
    "Matern32Kernel",
]

import numpy as np
from scipy.spatial.distance import cdist


def _parse_points(x):
    x = np.asarray(x, dtype=float)
    if len(x.shape) == 1:
        return x[:, None]
    if len(x.shape) != 2:
        raise ValueError("the points must be one or two dimensional")
    return x


class Kernel(object):
    """
    The abstract stationary kernel type. Subclasses implement
    :func:`evaluate` as a function of the squared distance scaled by the
    ``metric``.

    :param metric:
        The squared length scale of the kernel.
    :param amplitude: (optional)
        An overall multiplicative constant. (default: ``1.0``)

    """

    # Make numpy scalars defer to __rmul__ instead of broadcasting.
    __array_ufunc__ = None

    def __init__(self, metric, amplitude=1.0):
        metric = float(metric)
        if metric <= 0.0:
            raise ValueError("invalid (negative) metric")
        self.metric = metric
        self.amplitude = float(amplitude)

    def evaluate(self, r2):
        raise NotImplementedError("overloaded by subclasses")

    def get_value(self, x1, x2=None):
        """
        Compute the kernel matrix between two sets of points.

        :param x1: ``(n1,)`` or ``(n1, ndim)``
            The first set of points.
        :param x2: ``(n2,)`` or ``(n2, ndim)`` (optional)
            The second set of points. If ``None``, ``x1`` is used.

        :returns K: ``(n1, n2)``

        """
        x1 = _parse_points(x1)
        x2 = x1 if x2 is None else _parse_points(x2)
        if x1.shape[1] != x2.shape[1]:
            raise ValueError("dimension mismatch")
        r2 = cdist(x1, x2, "sqeuclidean") / self.metric
        return self.amplitude * self.evaluate(r2)

    def __call__(self, x1, x2=None):
        return self.get_value(x1, x2)

    def __mul__(self, b):
        try:
            factor = float(b)
        except TypeError:
            return NotImplemented
        return type(self)(self.metric, amplitude=factor * self.amplitude)
    __rmul__ = __mul__

    def __repr__(self):
        return "{0}({1}, amplitude={2})".format(
            type(self).__name__, self.metric, self.amplitude)


class ExpSquaredKernel(Kernel):
    r"""
    The exponential-squared kernel

    .. math::

        k(r^2) = \exp \left ( -\frac{r^2}{2} \right )

    """

    def evaluate(self, r2):
        return np.exp(-0.5 * r2)


class ExpKernel(Kernel):
    r"""
    The exponential kernel

    .. math::

        k(r^2) = \exp \left ( -\sqrt{r^2} \right )

    """

    def evaluate(self, r2):
        return np.exp(-np.sqrt(r2))


class Matern32Kernel(Kernel):
    r"""
    The Matern-3/2 kernel

    .. math::

        k(r^2) = \left( 1+\sqrt{3\,r^2} \right)\,
                 \exp \left (-\sqrt{3\,r^2} \right )

    """

    def evaluate(self, r2):
        r = np.sqrt(3.0 * r2)
        return (1.0 + r) * np.exp(-r)
