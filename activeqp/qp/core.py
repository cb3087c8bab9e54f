"""
Core problem, state, configuration and result types for the QP solver.

A :class:`QP` bundles three factor graphs: the quadratic cost, the equality
constraints and the inequality constraints. Equalities are
:class:`~activeqp.linear.LinearEquality` factors and are always imposed;
inequalities are single-row :class:`~activeqp.linear.LinearInequality`
factors ``a' x <= b``. Every constraint carries the key of its Lagrange
multiplier, so the solver can report multipliers in the same keyed
:class:`~activeqp.linear.VectorValues` container it uses for primal points.

References:
    - Nocedal & Wright, *Numerical Optimization* (2006), Section 16.5
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, Hashable, List, Optional

import numpy as np

from ..linear import (
    GaussianFactorGraph,
    HessianFactor,
    JacobianFactor,
    LinearEquality,
    LinearInequality,
    VectorValues,
    is_hard,
)
from ..linear.values import Key

if TYPE_CHECKING:
    from .working_set import InequalityFactorGraph


class Status(Enum):
    """Solution status reported by :func:`activeqp.qp.dense.active_set_qp`."""

    OPTIMAL = "optimal"
    INFEASIBLE = "infeasible"
    MAX_ITER = "max_iter"
    NUMERICAL_ERROR = "numerical_error"


class QPError(Exception):
    """Base class for errors raised by the QP solver."""


class InfeasibleInitialValues(QPError, ValueError):
    """
    The starting point violates an inequality constraint.

    The solver does not search for a feasible point; callers must supply one.

    Attributes:
        index: Position of the violated inequality.
        violation: Value of ``a' x0 - b`` (strictly positive).
    """

    def __init__(self, index: int, violation: float):
        self.index = index
        self.violation = violation
        super().__init__(
            f"Initial values violate inequality {index} by {violation:.3e}; "
            "a feasible starting point is required"
        )


class MaxIterationsExceeded(QPError, RuntimeError):
    """The iteration cap was reached before a KKT point was found."""

    def __init__(self, state: "QPState", max_iterations: int):
        self.state = state
        self.max_iterations = max_iterations
        super().__init__(f"QP solver did not converge within {max_iterations} iterations")


@dataclass(frozen=True)
class QPSolverParams:
    """
    Configuration for :class:`~activeqp.qp.solver.QPSolver`.

    Args:
        activation_tol: A cold-start inequality with ``|a' x0 - b|`` below
            this value starts in the active set.
        feasibility_tol: Largest cold-start violation ``a' x0 - b`` accepted
            without raising :class:`InfeasibleInitialValues`. The default 0.0
            rejects every strictly positive violation.
        progress_tol: Absolute tolerance under which a new solve is considered
            equal to the previous point, which triggers the KKT check.
        max_iterations: Iteration cap; ``None`` loops until convergence.
        log_iterations: Emit one DEBUG record per iteration.
    """

    activation_tol: float = 1e-7
    feasibility_tol: float = 0.0
    progress_tol: float = 1e-7
    max_iterations: Optional[int] = 1000
    log_iterations: bool = False

    def __post_init__(self) -> None:
        """Validate QPSolverParams invariants."""
        if self.activation_tol <= 0:
            raise ValueError(f"activation_tol must be positive, got {self.activation_tol}.")
        if self.feasibility_tol < 0:
            raise ValueError(f"feasibility_tol must be non-negative, got {self.feasibility_tol}.")
        if self.progress_tol <= 0:
            raise ValueError(f"progress_tol must be positive, got {self.progress_tol}.")
        if self.max_iterations is not None and self.max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {self.max_iterations}.")


def _graph(graph: Optional[GaussianFactorGraph]) -> GaussianFactorGraph:
    if graph is None:
        return GaussianFactorGraph()
    if isinstance(graph, GaussianFactorGraph):
        return graph.copy()
    return GaussianFactorGraph(graph)


@dataclass(frozen=True)
class QP:
    """
    Convex quadratic program over keyed vector variables.

    Args:
        cost: Soft factors (Jacobian or Hessian) whose sum is the objective.
        equalities: :class:`LinearEquality` factors.
        inequalities: :class:`LinearInequality` factors.

    The graphs are copied on construction. Dual keys must be unique and must
    not collide with primal keys.
    """

    cost: GaussianFactorGraph = field(default_factory=GaussianFactorGraph)
    equalities: GaussianFactorGraph = field(default_factory=GaussianFactorGraph)
    inequalities: GaussianFactorGraph = field(default_factory=GaussianFactorGraph)

    def __post_init__(self) -> None:
        object.__setattr__(self, "cost", _graph(self.cost))
        object.__setattr__(self, "equalities", _graph(self.equalities))
        object.__setattr__(self, "inequalities", _graph(self.inequalities))

        for factor in self.cost:
            if is_hard(factor) or not isinstance(factor, (JacobianFactor, HessianFactor)):
                raise ValueError(f"Cost graph accepts soft factors only, got {factor!r}")
        for factor in self.equalities:
            if not isinstance(factor, LinearEquality):
                raise ValueError(f"Equality graph accepts LinearEquality only, got {factor!r}")
        for factor in self.inequalities:
            if not isinstance(factor, LinearInequality):
                raise ValueError(
                    f"Inequality graph accepts LinearInequality only, got {factor!r}"
                )

        # Raises on inconsistent block sizes across the three graphs.
        (self.cost + self.equalities + self.inequalities).dims()

        primal = set(self.keys())
        seen: set = set()
        for dual_key in self.dual_keys():
            if dual_key in seen:
                raise ValueError(f"Duplicate dual key {dual_key!r}")
            if dual_key in primal:
                raise ValueError(f"Dual key {dual_key!r} collides with a primal key")
            seen.add(dual_key)

    def keys(self) -> List[Key]:
        """Primal keys in order of first appearance (cost, equalities, inequalities)."""
        return (self.cost + self.equalities + self.inequalities).keys()

    def dims(self) -> Dict[Key, int]:
        return (self.cost + self.equalities + self.inequalities).dims()

    def dual_keys(self) -> List[Hashable]:
        keys = [factor.dual_key for factor in self.equalities]
        keys.extend(factor.dual_key for factor in self.inequalities)
        return keys

    def cost_value(self, x: VectorValues) -> float:
        """Objective value at ``x``."""
        return self.cost.error(x)


@dataclass(frozen=True)
class QPState:
    """
    Snapshot of the active-set iteration.

    Attributes:
        values: Current primal point; satisfies every active constraint
            exactly and every inactive one non-strictly.
        duals: Current multiplier estimate (empty before the first KKT check
            unless warm-started).
        working_set: Inequalities with their activation flags.
        converged: True once a KKT point has been confirmed.
        iterations: Number of ``iterate`` calls that produced this state.
    """

    values: VectorValues
    duals: VectorValues
    working_set: "InequalityFactorGraph"
    converged: bool = False
    iterations: int = 0


@dataclass
class OptimizeResult:
    """
    Solution container returned by :func:`activeqp.qp.dense.active_set_qp`.

    Attributes:
        x: Primal solution vector (or ``None`` if unavailable).
        fun: Objective value at ``x`` (or ``None`` when not computed).
        status: Enumeration describing solver exit.
        message: Human-readable string explaining the status.
        nit: Number of active-set iterations performed.
        primal_residual: Norm of primal feasibility residual, if computed.
        dual_residual: Norm of the stationarity residual, if computed.
        slack: ``h - G x`` for the inequality rows when available.
        eq_multipliers: Multipliers of the equality rows.
        ineq_multipliers: Non-negative multipliers of the inequality rows.
    """

    x: Optional[np.ndarray]
    fun: Optional[float]
    status: Status
    message: str
    nit: int
    primal_residual: Optional[float] = None
    dual_residual: Optional[float] = None
    slack: Optional[np.ndarray] = None
    eq_multipliers: Optional[np.ndarray] = None
    ineq_multipliers: Optional[np.ndarray] = None


__all__ = [
    "Status",
    "QPError",
    "InfeasibleInitialValues",
    "MaxIterationsExceeded",
    "QPSolverParams",
    "QP",
    "QPState",
    "OptimizeResult",
]
