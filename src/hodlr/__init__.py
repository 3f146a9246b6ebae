# -*- coding: utf-8 -*-

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "kernels",
    "Tree",
    "TreeConfig",
    "IndexRange",
    "LowRankBlock",
    "EntrySource",
    "KernelMatrix",
    "MatrixEntries",
    "kd_sort",
    "depth_for_leaf_size",
    "BasicSolver",
    "HODLRSolver",
    "HODLRError",
    "ConstructionError",
    "ToleranceUnattainable",
    "NonPositiveDefinite",
    "SequencingError",
]

from . import kernels
from .config import TreeConfig
from .entries import EntrySource, KernelMatrix, MatrixEntries
from .errors import (HODLRError, ConstructionError, ToleranceUnattainable,
                     NonPositiveDefinite, SequencingError)
from .lowrank import LowRankBlock
from .solvers import BasicSolver, HODLRSolver
from .tree import IndexRange, Tree
from .utils import kd_sort, depth_for_leaf_size
