"""
Primal active-set solver for convex quadratic programs.

Implements Algorithm 16.3 of Nocedal & Wright (2006) on factor graphs. Each
iteration solves the equality-constrained subproblem for the new point
directly (instead of the step), then either

* confirms a KKT point when the point did not move,
* drops the active inequality with the largest positive multiplier, or
* moves towards the new point as far as the inactive inequalities allow and
  adds the blocking inequality to the working set.

Multipliers are recovered variable by variable: for every constrained key the
stationarity condition ``sum_i A_i' lambda_i = grad f`` restricted to that key
becomes one least-squares factor over the dual keys. With this convention an
active ``a' x <= b`` constraint is optimal when its multiplier is ``<= 0``.
"""

from __future__ import annotations

from typing import Callable, Dict, Hashable, List, Optional, Tuple

import numpy as np

from ..linear import (
    GaussianFactorGraph,
    JacobianFactor,
    VariableIndex,
    VectorValues,
)
from ..linear.values import Key
from ..logging import get_logger
from .core import QP, MaxIterationsExceeded, QPSolverParams, QPState
from .working_set import InequalityFactorGraph, identify_active_constraints

logger = get_logger(__name__)

Callback = Callable[[QPState], None]


class QPSolver:
    """
    Active-set solver bound to one :class:`~activeqp.qp.core.QP`.

    The base graph (cost plus equalities), the variable indices of the three
    graphs and the set of constrained keys are built once here and are
    read-only afterwards, so one solver can serve repeated (warm-started)
    solves.

    Example:
        >>> from activeqp import GaussianFactorGraph, JacobianFactor, LinearInequality
        >>> from activeqp import QP, QPSolver, VectorValues
        >>> import numpy as np
        >>> cost = GaussianFactorGraph([JacobianFactor({"x": np.eye(1)}, [10.0])])
        >>> ineq = GaussianFactorGraph([LinearInequality({"x": np.eye(1)}, 5.0, "lambda")])
        >>> values, duals = QPSolver(QP(cost=cost, inequalities=ineq)).optimize(
        ...     VectorValues({"x": [0.0]})
        ... )
        >>> round(float(values["x"][0]), 6)
        5.0
    """

    def __init__(self, qp: QP, params: Optional[QPSolverParams] = None):
        self.qp = qp
        self.params = QPSolverParams() if params is None else params

        self.base_graph = qp.cost + qp.equalities
        self.cost_variable_index = VariableIndex(qp.cost)
        self.equality_variable_index = VariableIndex(qp.equalities)
        self.inequality_variable_index = VariableIndex(qp.inequalities)

        constrained: Dict[Key, None] = {}
        for key in qp.equalities.keys() + qp.inequalities.keys():
            constrained.setdefault(key, None)
        self.constrained_keys: List[Key] = list(constrained)
        self._primal_keys = qp.keys()

    # ------------------------------------------------------------------
    # Primal solve
    # ------------------------------------------------------------------
    def solve_with_current_working_set(self, working_set: InequalityFactorGraph) -> VectorValues:
        """Minimize the cost with the equalities and every active inequality held exactly."""
        working_graph = self.base_graph.copy()
        working_graph.extend(working_set.active_factors())
        return working_graph.optimize()

    # ------------------------------------------------------------------
    # Dual recovery
    # ------------------------------------------------------------------
    def _collect_dual_jacobians(
        self,
        key: Key,
        factors,
        variable_index: VariableIndex,
        active: Optional[np.ndarray] = None,
    ) -> List[Tuple[Hashable, np.ndarray]]:
        terms: List[Tuple[Hashable, np.ndarray]] = []
        for factor_ix in variable_index.get(key, ()):
            if active is not None and not active[factor_ix]:
                continue
            factor = factors[factor_ix]
            terms.append((factor.dual_key, factor.transpose_terms(key)))
        return terms

    def create_dual_factor(
        self, key: Key, working_set: InequalityFactorGraph, values: VectorValues
    ) -> JacobianFactor:
        """
        Stationarity condition of one primal key as a factor over dual keys.

        Returns an empty factor when no equality or active inequality
        touches ``key``.
        """
        terms = self._collect_dual_jacobians(
            key, self.qp.equalities, self.equality_variable_index
        )
        terms.extend(
            self._collect_dual_jacobians(
                key, working_set, self.inequality_variable_index, active=working_set.flags
            )
        )
        if not terms:
            return JacobianFactor()

        b = np.zeros(values.at(key).shape[0])
        for factor_ix in self.cost_variable_index.get(key, ()):
            b += self.qp.cost[factor_ix].gradient(key, values)
        return JacobianFactor(terms, b)

    def build_dual_graph(
        self, working_set: InequalityFactorGraph, values: VectorValues
    ) -> GaussianFactorGraph:
        """One dual factor per constrained key; empty factors are skipped."""
        dual_graph = GaussianFactorGraph()
        for key in self.constrained_keys:
            dual_factor = self.create_dual_factor(key, working_set, values)
            if not dual_factor.empty:
                dual_graph.push_back(dual_factor)
        return dual_graph

    # ------------------------------------------------------------------
    # Working-set updates
    # ------------------------------------------------------------------
    @staticmethod
    def identify_leaving_constraint(
        working_set: InequalityFactorGraph, duals: VectorValues
    ) -> int:
        """
        Index of the active inequality with the largest positive multiplier, or -1.

        Multipliers ``<= 0`` are optimal and never selected. The first index
        attaining the maximum wins.
        """
        worst_factor_ix = -1
        max_lambda = 0.0
        for factor_ix in working_set.active_indices():
            lam = float(duals.at(working_set.at(factor_ix).dual_key)[0])
            if lam > max_lambda:
                worst_factor_ix = factor_ix
                max_lambda = lam
        return worst_factor_ix

    @staticmethod
    def compute_step_size(
        working_set: InequalityFactorGraph, xk: VectorValues, p: VectorValues
    ) -> Tuple[float, int]:
        """
        Ratio test along ``p`` from the feasible point ``xk``.

        For each inactive inequality with ``a'p > 0`` the step
        ``(b - a'xk) / (a'p)`` puts ``xk + alpha p`` on its bound. The
        smallest such step below 1.0 is returned with the index of the
        inequality attaining it (first one on ties), or ``(1.0, -1)`` when
        the full step is feasible.
        """
        min_alpha = 1.0
        closest_factor_ix = -1
        for factor_ix in working_set.inactive_indices():
            factor = working_set.at(factor_ix)
            a_t_p = factor.dot_product_row(p)
            if a_t_p <= 0:
                continue
            a_t_x = factor.dot_product_row(xk)
            alpha = (factor.bound - a_t_x) / a_t_p
            if alpha < min_alpha:
                closest_factor_ix = factor_ix
                min_alpha = alpha
        return min_alpha, closest_factor_ix

    # ------------------------------------------------------------------
    # Iteration
    # ------------------------------------------------------------------
    def iterate(self, state: QPState) -> QPState:
        """Advance the active-set iteration by one step."""
        new_values = self.solve_with_current_working_set(state.working_set)
        # Keys touched only by inactive inequalities are not in the solve; they stay put.
        for key in state.values:
            if not new_values.exists(key):
                new_values.insert(key, state.values.at(key))
        iterations = state.iterations + 1

        if new_values.equals(state.values, self.params.progress_tol):
            # No progress possible under the current working set: KKT check.
            dual_graph = self.build_dual_graph(state.working_set, new_values)
            duals = dual_graph.optimize()
            leaving = self.identify_leaving_constraint(state.working_set, duals)
            if leaving < 0:
                if self.params.log_iterations:
                    logger.debug("iter %d: KKT point confirmed", iterations)
                return QPState(new_values, duals, state.working_set, True, iterations)
            if self.params.log_iterations:
                logger.debug(
                    "iter %d: dropping inequality %d (multiplier %.3e)",
                    iterations,
                    leaving,
                    float(duals.at(state.working_set.at(leaving).dual_key)[0]),
                )
            return QPState(
                new_values, duals, state.working_set.inactivate(leaving), False, iterations
            )

        p = new_values - state.values
        alpha, factor_ix = self.compute_step_size(state.working_set, state.values, p)
        working_set = state.working_set
        if factor_ix >= 0:
            working_set = working_set.activate(factor_ix)
        if self.params.log_iterations:
            logger.debug(
                "iter %d: step %.6g, blocking inequality %d", iterations, alpha, factor_ix
            )
        return QPState(state.values + alpha * p, state.duals, working_set, False, iterations)

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------
    def initial_state(
        self,
        initial_values: VectorValues,
        duals: Optional[VectorValues] = None,
        use_warm_start: bool = False,
    ) -> QPState:
        """Validate the starting point and build the first :class:`QPState`."""
        missing = [key for key in self._primal_keys if not initial_values.exists(key)]
        if missing:
            raise KeyError(f"Initial values are missing keys {missing!r}")
        values = initial_values.subset(self._primal_keys)
        dims = self.qp.dims()
        for key in self._primal_keys:
            if values.at(key).shape[0] != dims[key]:
                raise ValueError(
                    f"Initial value for {key!r} has dimension {values.at(key).shape[0]}, "
                    f"expected {dims[key]}"
                )
        duals = VectorValues() if duals is None else duals.copy()
        working_set = identify_active_constraints(
            self.qp.inequalities,
            values,
            duals,
            use_warm_start,
            self.params.activation_tol,
            self.params.feasibility_tol,
        )
        return QPState(values, duals, working_set, False, 0)

    def solve(
        self,
        initial_values: VectorValues,
        duals: Optional[VectorValues] = None,
        use_warm_start: bool = False,
        callback: Optional[Callback] = None,
    ) -> QPState:
        """
        Run the iteration to convergence and return the final state.

        Raises:
            InfeasibleInitialValues: ``initial_values`` violates an inequality
                on a cold start.
            MaxIterationsExceeded: ``params.max_iterations`` was reached.
        """
        state = self.initial_state(initial_values, duals, use_warm_start)
        max_iterations = self.params.max_iterations
        while not state.converged:
            if max_iterations is not None and state.iterations >= max_iterations:
                logger.warning("Active-set iteration stopped after %d iterations", max_iterations)
                raise MaxIterationsExceeded(state, max_iterations)
            state = self.iterate(state)
            if callback is not None:
                callback(state)

        logger.info(
            "Converged after %d iterations with %d active inequalities",
            state.iterations,
            len(state.working_set.active_indices()),
        )
        return state

    def optimize(
        self,
        initial_values: VectorValues,
        duals: Optional[VectorValues] = None,
        use_warm_start: bool = False,
        callback: Optional[Callback] = None,
    ) -> Tuple[VectorValues, VectorValues]:
        """
        Solve the QP from a feasible starting point.

        Args:
            initial_values: Feasible point holding every primal key.
            duals: Prior multipliers, used only with ``use_warm_start``.
            use_warm_start: Start from the working set implied by ``duals``.
            callback: Called with every new :class:`QPState`.

        Returns:
            ``(values, duals)`` at the KKT point.
        """
        state = self.solve(initial_values, duals, use_warm_start, callback)
        return state.values, state.duals


__all__ = ["QPSolver"]
