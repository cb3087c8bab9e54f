"""
Dense front end for the active-set QP solver.

:func:`active_set_qp` accepts the textbook matrix form

    minimize    0.5 x' H x + g' x
    subject to  A x = b,  G x <= h,  lb <= x <= ub

maps it onto a single variable block ``"x"`` and runs
:class:`~activeqp.qp.solver.QPSolver` from a caller-supplied feasible point.
Finite bounds become extra inequality rows appended after ``G`` (lower
bounds first, then upper bounds), and ``slack`` / ``ineq_multipliers`` in the
result follow that row order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from ..linear import (
    GaussianFactorGraph,
    HessianFactor,
    LinearEquality,
    LinearInequality,
    VectorValues,
)
from ..linear.utils import symmetrize
from ..logging import get_logger
from .core import (
    QP,
    InfeasibleInitialValues,
    MaxIterationsExceeded,
    OptimizeResult,
    QPSolverParams,
    Status,
)
from .kkt import kkt_residuals
from .solver import QPSolver

logger = get_logger(__name__)

PRIMAL_KEY = "x"
EQUALITY_DUAL_KEY = "lambda_eq"


def _inequality_dual_key(row: int) -> tuple:
    return ("lambda_ineq", row)


@dataclass
class _ConstraintSystem:
    a_eq: np.ndarray
    b_eq: np.ndarray
    g_mat: np.ndarray
    h_vec: np.ndarray


def _assemble_constraints(
    n: int,
    a_mat: Optional[np.ndarray],
    b_vec: Optional[np.ndarray],
    g_mat: Optional[np.ndarray],
    h_vec: Optional[np.ndarray],
    lb: Optional[np.ndarray],
    ub: Optional[np.ndarray],
) -> _ConstraintSystem:
    def _matrix(mat: Optional[np.ndarray]) -> np.ndarray:
        if mat is None:
            return np.zeros((0, n))
        arr = np.asarray(mat, dtype=float)
        if arr.ndim == 1:
            arr = arr.reshape(1, -1)
        if arr.ndim != 2 or arr.shape[1] != n:
            raise ValueError("Constraint matrix dimension mismatch")
        return arr

    def _vector(vec: Optional[np.ndarray], rows: int) -> np.ndarray:
        if vec is None:
            return np.zeros(rows)
        arr = np.asarray(vec, dtype=float).reshape(-1)
        if arr.shape[0] != rows:
            raise ValueError("Constraint vector dimension mismatch")
        return arr

    a_eq = _matrix(a_mat)
    b_eq = _vector(b_vec, a_eq.shape[0])
    g_in = _matrix(g_mat)
    h_in = _vector(h_vec, g_in.shape[0])

    rows = [g_in]
    rhs = [h_in]
    if lb is not None:
        lb_vec = _vector(lb, n)
        mask = np.isfinite(lb_vec)
        rows.append(-np.eye(n)[mask])
        rhs.append(-lb_vec[mask])
    if ub is not None:
        ub_vec = _vector(ub, n)
        mask = np.isfinite(ub_vec)
        rows.append(np.eye(n)[mask])
        rhs.append(ub_vec[mask])

    return _ConstraintSystem(
        a_eq=a_eq, b_eq=b_eq, g_mat=np.vstack(rows), h_vec=np.concatenate(rhs)
    )


def build_dense_qp(hessian: np.ndarray, g_vec: np.ndarray, system: _ConstraintSystem) -> QP:
    """Express the dense problem as a keyed :class:`QP` over the block ``"x"``."""
    cost = GaussianFactorGraph([HessianFactor(PRIMAL_KEY, hessian, -g_vec)])
    equalities = GaussianFactorGraph()
    if system.a_eq.shape[0]:
        equalities.push_back(
            LinearEquality({PRIMAL_KEY: system.a_eq}, system.b_eq, EQUALITY_DUAL_KEY)
        )
    inequalities = GaussianFactorGraph(
        LinearInequality({PRIMAL_KEY: row}, bound, _inequality_dual_key(i))
        for i, (row, bound) in enumerate(zip(system.g_mat, system.h_vec))
    )
    return QP(cost=cost, equalities=equalities, inequalities=inequalities)


def _multipliers(system: _ConstraintSystem, duals: VectorValues) -> tuple:
    # Report the conventional signs: L = f + nu'(Ax - b) + mu'(Gx - h), mu >= 0.
    eq = (
        -duals.at(EQUALITY_DUAL_KEY)
        if duals.exists(EQUALITY_DUAL_KEY)
        else np.zeros(system.a_eq.shape[0])
    )
    ineq: List[float] = []
    for i in range(system.g_mat.shape[0]):
        key = _inequality_dual_key(i)
        ineq.append(-float(duals.at(key)[0]) if duals.exists(key) else 0.0)
    return np.asarray(eq, dtype=float), np.asarray(ineq, dtype=float)


def active_set_qp(
    hessian: np.ndarray,
    g_vec: np.ndarray,
    a_mat: Optional[np.ndarray] = None,
    b_vec: Optional[np.ndarray] = None,
    g_mat: Optional[np.ndarray] = None,
    h_vec: Optional[np.ndarray] = None,
    lb: Optional[np.ndarray] = None,
    ub: Optional[np.ndarray] = None,
    x0: Optional[np.ndarray] = None,
    params: Optional[QPSolverParams] = None,
) -> OptimizeResult:
    """
    Solve a convex quadratic program via the active-set method.

    ``x0`` must be feasible for the inequalities (including bounds); it
    defaults to the origin. An infeasible start is reported as
    :attr:`Status.INFEASIBLE` rather than repaired.
    """

    hessian = symmetrize(np.asarray(hessian, dtype=float))
    g_vec = np.asarray(g_vec, dtype=float).reshape(-1)
    n = g_vec.shape[0]
    if hessian.shape != (n, n):
        raise ValueError("H must be square and match the dimension of g")

    system = _assemble_constraints(n, a_mat, b_vec, g_mat, h_vec, lb, ub)
    start = np.zeros(n) if x0 is None else np.asarray(x0, dtype=float).reshape(-1)
    if start.shape[0] != n:
        raise ValueError("x0 must match the dimension of g")

    qp = build_dense_qp(hessian, g_vec, system)
    solver = QPSolver(qp, params)

    def objective(vector: np.ndarray) -> float:
        return float(0.5 * vector @ (hessian @ vector) + g_vec @ vector)

    try:
        state = solver.solve(VectorValues({PRIMAL_KEY: start}))
    except InfeasibleInitialValues as exc:
        return OptimizeResult(
            x=start,
            fun=objective(start),
            status=Status.INFEASIBLE,
            message=str(exc),
            nit=0,
            slack=system.h_vec - system.g_mat @ start,
        )
    except MaxIterationsExceeded as exc:
        x = exc.state.values.at(PRIMAL_KEY).copy()
        return OptimizeResult(
            x=x,
            fun=objective(x),
            status=Status.MAX_ITER,
            message="Maximum iterations reached",
            nit=exc.state.iterations,
            slack=system.h_vec - system.g_mat @ x,
        )
    except np.linalg.LinAlgError:
        logger.warning("KKT solve failed")
        return OptimizeResult(
            x=start,
            fun=objective(start),
            status=Status.NUMERICAL_ERROR,
            message="KKT solve failed",
            nit=0,
        )

    x = state.values.at(PRIMAL_KEY).copy()
    residuals = kkt_residuals(qp, state.values, state.duals)
    eq_mult, ineq_mult = _multipliers(system, state.duals)
    return OptimizeResult(
        x=x,
        fun=objective(x),
        status=Status.OPTIMAL,
        message="KKT conditions satisfied",
        nit=state.iterations,
        primal_residual=max(residuals["primal_eq"], residuals["primal_ineq"]),
        dual_residual=residuals["dual"],
        slack=system.h_vec - system.g_mat @ x,
        eq_multipliers=eq_mult,
        ineq_multipliers=ineq_mult,
    )


__all__ = ["active_set_qp", "build_dense_qp"]
