# -*- coding: utf-8 -*-

__all__ = ["BasicSolver", "HODLRSolver"]

from .basic import BasicSolver
from .hodlr import HODLRSolver
