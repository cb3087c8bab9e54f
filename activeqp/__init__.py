"""activeqp - active-set quadratic programming on Gaussian factor graphs."""

__version__ = "0.1.0"

# Linear-system layer
from .linear import (
    GaussianFactorGraph,
    HessianFactor,
    JacobianFactor,
    LinearEquality,
    LinearInequality,
    VariableIndex,
    VectorValues,
)

# Logging
from .logging import configure_logging, get_logger, set_log_level

# Quadratic programming
from .qp import (
    QP,
    InequalityFactorGraph,
    InfeasibleInitialValues,
    MaxIterationsExceeded,
    OptimizeResult,
    QPError,
    QPSolver,
    QPSolverParams,
    QPState,
    Status,
    active_set_qp,
    identify_active_constraints,
    is_kkt_optimal,
    kkt_residuals,
)

__all__ = [
    "__version__",
    # Linear-system layer
    "VectorValues",
    "JacobianFactor",
    "HessianFactor",
    "LinearEquality",
    "LinearInequality",
    "GaussianFactorGraph",
    "VariableIndex",
    # Quadratic programming
    "QP",
    "QPState",
    "QPSolverParams",
    "QPSolver",
    "InequalityFactorGraph",
    "identify_active_constraints",
    "Status",
    "OptimizeResult",
    "QPError",
    "InfeasibleInitialValues",
    "MaxIterationsExceeded",
    "active_set_qp",
    "kkt_residuals",
    "is_kkt_optimal",
    # Logging
    "get_logger",
    "set_log_level",
    "configure_logging",
]
