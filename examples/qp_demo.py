"""
Example: active-set quadratic programming with activeqp

This example shows the two front ends of the package: the dense matrix
interface for small textbook problems, and the keyed factor-graph interface
where each variable is its own block and constraints carry named multipliers.
It finishes with a warm-started re-solve.
"""

import logging

import numpy as np

from activeqp import (
    QP,
    GaussianFactorGraph,
    HessianFactor,
    LinearInequality,
    QPSolver,
    QPSolverParams,
    Status,
    VectorValues,
    active_set_qp,
    configure_logging,
    kkt_residuals,
)


def example_dense_portfolio():
    """Example: minimum-variance portfolio (dense front end)."""
    print("=" * 60)
    print("Example 1: Dense QP - Minimum-Variance Portfolio")
    print("=" * 60)

    # Minimize 0.5 * x^T H x  subject to  sum(x) = 1, 0 <= x <= 0.5
    H = np.array([[0.10, 0.02, 0.01], [0.02, 0.08, 0.03], [0.01, 0.03, 0.30]])
    g = np.zeros(3)
    A = np.ones((1, 3))
    b = np.array([1.0])
    x0 = np.full(3, 1.0 / 3.0)

    result = active_set_qp(H, g, a_mat=A, b_vec=b, lb=np.zeros(3), ub=np.full(3, 0.5), x0=x0)
    print(f"Status: {result.status}")
    if result.status == Status.OPTIMAL:
        print(f"Weights: {result.x}")
        print(f"Variance: {2.0 * result.fun:.6f}")
        print(f"Iterations: {result.nit}")
        print(f"Budget multiplier: {result.eq_multipliers}")
    print()


def example_keyed_problem():
    """Example: Nocedal & Wright 16.4 on two keyed scalar variables."""
    print("=" * 60)
    print("Example 2: Keyed QP - Working-Set Trace")
    print("=" * 60)

    cost = GaussianFactorGraph(
        [
            HessianFactor("x1", 2.0 * np.eye(1), [2.0], f=2.0),
            HessianFactor("x2", 2.0 * np.eye(1), [5.0], f=12.5),
        ]
    )
    rows = [(-1.0, 2.0, 2.0), (1.0, 2.0, 6.0), (1.0, -2.0, 2.0), (-1.0, 0.0, 0.0), (0.0, -1.0, 0.0)]
    inequalities = GaussianFactorGraph()
    for i, (a1, a2, bound) in enumerate(rows):
        terms = [(key, [[coef]]) for key, coef in (("x1", a1), ("x2", a2)) if coef]
        inequalities.push_back(LinearInequality(terms, bound, f"c{i + 1}"))
    qp = QP(cost=cost, inequalities=inequalities)

    solver = QPSolver(qp, QPSolverParams(log_iterations=True))

    def report(state):
        point = state.values.vector(["x1", "x2"])
        active = [f"c{i + 1}" for i in state.working_set.active_indices()]
        print(f"  iter {state.iterations}: x = {point}, working set = {active}")

    values, duals = solver.optimize(VectorValues({"x1": [2.0], "x2": [0.0]}), callback=report)
    print(f"Solution: x1 = {values['x1'][0]:.4f}, x2 = {values['x2'][0]:.4f}")
    print(f"Multipliers: { {key: float(vec[0]) for key, vec in duals.items()} }")
    print(f"KKT residuals: {kkt_residuals(qp, values, duals)}")

    state = solver.solve(values, duals, use_warm_start=True)
    print(f"Warm-started re-solve converged in {state.iterations} iteration(s)")
    print()


def main():
    configure_logging(level=logging.WARNING)
    example_dense_portfolio()
    example_keyed_problem()


if __name__ == "__main__":
    main()
