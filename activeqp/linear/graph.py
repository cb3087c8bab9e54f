"""
Gaussian factor graphs and their exact solution.

A :class:`GaussianFactorGraph` is an ordered collection of linear terms. Soft
terms (Jacobian and Hessian factors) add up to a convex quadratic; hard terms
(equalities, and inequalities pushed in as equalities at their bound) are
imposed exactly. :meth:`GaussianFactorGraph.optimize` returns the minimizer
by assembling the dense KKT system

    [ H  C' ] [ x  ]   [ q ]
    [ C  0  ] [ nu ] = [ d ]

with ``H = sum A'A + sum G``, ``q = sum A'b + sum g`` and ``C x = d`` the
stacked hard rows. Pure least-squares graphs skip the normal equations and go
through ``np.linalg.lstsq`` so that rank-deficient systems still return the
minimum-norm solution.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional, Tuple

import numpy as np

from ..logging import get_logger
from .factors import Factor, HessianFactor, JacobianFactor, LinearEquality, LinearInequality
from .utils import stable_solve
from .values import Key, VectorValues

logger = get_logger(__name__)

_HARD = (LinearEquality, LinearInequality)


def is_hard(factor: Factor) -> bool:
    """True for factors imposed exactly by :meth:`GaussianFactorGraph.optimize`."""
    return isinstance(factor, _HARD)


class GaussianFactorGraph:
    """Ordered, appendable list of linear factors."""

    def __init__(self, factors: Optional[Iterable[Factor]] = None):
        self._factors: List[Factor] = []
        if factors is not None:
            self.extend(factors)

    # ------------------------------------------------------------------
    # Container protocol
    # ------------------------------------------------------------------
    def push_back(self, factor: Factor) -> None:
        if not isinstance(factor, (JacobianFactor, HessianFactor)):
            raise TypeError(f"Cannot add {type(factor).__name__} to a GaussianFactorGraph")
        self._factors.append(factor)

    def extend(self, factors: Iterable[Factor]) -> None:
        for factor in factors:
            self.push_back(factor)

    def add(self, terms, b=None) -> JacobianFactor:
        """Append a :class:`JacobianFactor` built from ``terms`` and ``b`` and return it."""
        factor = JacobianFactor(terms, b)
        self.push_back(factor)
        return factor

    def at(self, index: int) -> Factor:
        return self._factors[index]

    def copy(self) -> "GaussianFactorGraph":
        # Factors are immutable, sharing them is safe.
        return GaussianFactorGraph(self._factors)

    def __add__(self, other: "GaussianFactorGraph") -> "GaussianFactorGraph":
        merged = self.copy()
        merged.extend(other)
        return merged

    def __getitem__(self, index: int) -> Factor:
        return self._factors[index]

    def __iter__(self) -> Iterator[Factor]:
        return iter(self._factors)

    def __len__(self) -> int:
        return len(self._factors)

    def __repr__(self) -> str:
        return f"GaussianFactorGraph(size={len(self._factors)})"

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------
    def keys(self) -> List[Key]:
        """Keys in order of first appearance."""
        seen: Dict[Key, None] = {}
        for factor in self._factors:
            for key in factor.keys():
                seen.setdefault(key, None)
        return list(seen)

    def dims(self) -> Dict[Key, int]:
        """Block dimension of every key; inconsistent blocks raise ValueError."""
        dims: Dict[Key, int] = {}
        for factor in self._factors:
            for key, dim in factor.dims().items():
                known = dims.setdefault(key, dim)
                if known != dim:
                    raise ValueError(
                        f"Inconsistent dimension for key {key!r}: {known} and {dim}"
                    )
        return dims

    def error(self, x: VectorValues) -> float:
        """Total cost of the soft factors at ``x``; hard factors are ignored."""
        return float(sum(f.error(x) for f in self._factors if not is_hard(f)))

    # ------------------------------------------------------------------
    # Solve
    # ------------------------------------------------------------------
    def _layout(self) -> Tuple[List[Key], Dict[Key, int], Dict[Key, int], int]:
        keys = self.keys()
        dims = self.dims()
        offsets: Dict[Key, int] = {}
        total = 0
        for key in keys:
            offsets[key] = total
            total += dims[key]
        return keys, dims, offsets, total

    def optimize(self) -> VectorValues:
        """Return the exact minimizer of the soft cost subject to the hard rows."""
        if not self._factors:
            return VectorValues()
        keys, dims, offsets, total = self._layout()

        soft_rows: List[Tuple[np.ndarray, np.ndarray]] = []
        hard_rows: List[Tuple[np.ndarray, np.ndarray]] = []
        hessians: List[HessianFactor] = []
        for factor in self._factors:
            if isinstance(factor, HessianFactor):
                hessians.append(factor)
            elif is_hard(factor):
                hard_rows.append(factor.jacobian(offsets, total))
            elif not factor.empty:
                soft_rows.append(factor.jacobian(offsets, total))

        if not hard_rows and not hessians:
            A = np.vstack([a for a, _ in soft_rows]) if soft_rows else np.zeros((0, total))
            b = np.concatenate([rhs for _, rhs in soft_rows]) if soft_rows else np.zeros(0)
            logger.debug("Least-squares solve: %d rows, %d unknowns", A.shape[0], total)
            sol, *_ = np.linalg.lstsq(A, b, rcond=None)
            return VectorValues.from_vector(sol, keys, dims)

        hessian = np.zeros((total, total))
        linear = np.zeros(total)
        for a_mat, rhs in soft_rows:
            hessian += a_mat.T @ a_mat
            linear += a_mat.T @ rhs
        for factor in hessians:
            g_mat, g_vec = factor.hessian(offsets, total)
            hessian += g_mat
            linear += g_vec

        if not hard_rows:
            logger.debug("Normal-equation solve: %d unknowns", total)
            return VectorValues.from_vector(stable_solve(hessian, linear), keys, dims)

        c_mat = np.vstack([a for a, _ in hard_rows])
        d_vec = np.concatenate([rhs for _, rhs in hard_rows])
        m = c_mat.shape[0]

        kkt = np.block([[hessian, c_mat.T], [c_mat, np.zeros((m, m))]])
        rhs = np.concatenate([linear, d_vec])
        logger.debug("KKT solve: %d unknowns, %d constraint rows", total, m)
        sol = stable_solve(kkt, rhs)
        return VectorValues.from_vector(sol[:total], keys, dims)


__all__ = ["GaussianFactorGraph", "is_hard"]
