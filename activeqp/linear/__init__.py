"""
Linear-system layer: keyed vectors, sparse linear factors and factor graphs.

The QP solver consumes this layer as a black box: it appends factors to a
:class:`GaussianFactorGraph` and calls ``optimize()`` for an exact solve.
"""

from . import factors, graph, utils, values, variable_index
from .factors import Factor, HessianFactor, JacobianFactor, LinearEquality, LinearInequality
from .graph import GaussianFactorGraph, is_hard
from .utils import stable_solve, symmetrize
from .values import Key, VectorValues
from .variable_index import VariableIndex

__all__ = [
    "factors",
    "graph",
    "utils",
    "values",
    "variable_index",
    "Key",
    "VectorValues",
    "Factor",
    "JacobianFactor",
    "HessianFactor",
    "LinearEquality",
    "LinearInequality",
    "GaussianFactorGraph",
    "is_hard",
    "VariableIndex",
    "stable_solve",
    "symmetrize",
]
