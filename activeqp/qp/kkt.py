"""
Karush-Kuhn-Tucker diagnostics for keyed quadratic programs.

Multipliers follow the solver convention: stationarity reads
``grad f(x) = sum_i A_i' lambda_i`` and an inequality ``a' x <= b`` is
dual-feasible when its multiplier is ``<= 0``.
"""

from __future__ import annotations

from typing import Dict, Optional

import numpy as np

from ..linear import VectorValues
from .core import QP


def cost_gradient(qp: QP, values: VectorValues) -> VectorValues:
    """Gradient of the QP objective at ``values``, one block per primal key."""

    grad = VectorValues.zero(qp.dims())
    for factor in qp.cost:
        for key in factor.keys():
            grad[key] = grad.at(key) + factor.gradient(key, values)
    return grad


def kkt_residuals(
    qp: QP,
    values: VectorValues,
    duals: Optional[VectorValues] = None,
) -> Dict[str, float]:
    """
    Compute infinity norms of the KKT residuals of ``qp`` at ``(values, duals)``.

    Missing multipliers are treated as zero. Returned keys are ``primal_eq``,
    ``primal_ineq``, ``dual``, ``dual_sign`` and ``complementary``.
    """

    duals = VectorValues() if duals is None else duals
    stationarity = cost_gradient(qp, values)

    primal_eq = 0.0
    for factor in qp.equalities:
        primal_eq = max(primal_eq, float(np.linalg.norm(factor.residual(values), ord=np.inf)))
        if duals.exists(factor.dual_key):
            lam = duals.at(factor.dual_key)
            for key in factor.keys():
                stationarity[key] = stationarity.at(key) - factor.get_a(key).T @ lam

    primal_ineq = 0.0
    dual_sign = 0.0
    complementary = 0.0
    for factor in qp.inequalities:
        violation = factor.error(values)
        primal_ineq = max(primal_ineq, violation)
        if not duals.exists(factor.dual_key):
            continue
        lam = duals.at(factor.dual_key)
        for key in factor.keys():
            stationarity[key] = stationarity.at(key) - factor.get_a(key).T @ lam
        dual_sign = max(dual_sign, float(lam[0]))
        complementary = max(complementary, abs(float(lam[0]) * violation))

    stationarity_vec = stationarity.vector()
    dual_residual = (
        float(np.linalg.norm(stationarity_vec, ord=np.inf)) if stationarity_vec.size else 0.0
    )
    return {
        "primal_eq": primal_eq,
        "primal_ineq": primal_ineq,
        "dual": dual_residual,
        "dual_sign": dual_sign,
        "complementary": complementary,
    }


def is_kkt_optimal(
    qp: QP,
    values: VectorValues,
    duals: Optional[VectorValues] = None,
    tol: float = 1e-6,
) -> bool:
    """
    Return True if all KKT residuals are below ``tol``.
    """

    residuals = kkt_residuals(qp, values, duals)
    return all(value <= tol for value in residuals.values())


__all__ = ["cost_gradient", "kkt_residuals", "is_kkt_optimal"]
