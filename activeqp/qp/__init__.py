"""
Active-set quadratic programming on factor graphs.

This subpackage provides the keyed problem container (:class:`QP`), the
working-set bookkeeping, the active-set solver (:class:`QPSolver`), KKT
diagnostics and a dense matrix front end (:func:`active_set_qp`).
"""

from . import core, dense, kkt, solver, working_set
from .core import (
    QP,
    InfeasibleInitialValues,
    MaxIterationsExceeded,
    OptimizeResult,
    QPError,
    QPSolverParams,
    QPState,
    Status,
)
from .dense import active_set_qp
from .kkt import cost_gradient, is_kkt_optimal, kkt_residuals
from .solver import QPSolver
from .working_set import InequalityFactorGraph, identify_active_constraints

__all__ = [
    "core",
    "dense",
    "kkt",
    "solver",
    "working_set",
    # Core types
    "QP",
    "QPState",
    "QPSolverParams",
    "Status",
    "OptimizeResult",
    "QPError",
    "InfeasibleInitialValues",
    "MaxIterationsExceeded",
    # Working set
    "InequalityFactorGraph",
    "identify_active_constraints",
    # Algorithms
    "QPSolver",
    "active_set_qp",
    "cost_gradient",
    "kkt_residuals",
    "is_kkt_optimal",
]
