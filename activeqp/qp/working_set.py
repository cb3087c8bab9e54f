"""
Working-set bookkeeping for the active-set method.

The inequality terms themselves never change while solving. Which of them
are currently imposed as equalities is tracked separately by a boolean flag
per term, and every change of the working set produces a new
:class:`InequalityFactorGraph` so that earlier :class:`~activeqp.qp.core.QPState`
snapshots stay valid.
"""

from __future__ import annotations

from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from ..linear import LinearInequality, VectorValues
from ..logging import get_logger
from .core import InfeasibleInitialValues

logger = get_logger(__name__)


class InequalityFactorGraph:
    """
    Inequality constraints paired with their activation flags.

    Args:
        factors: The :class:`LinearInequality` terms, in problem order.
        active: Optional flags, one per term. Defaults to all inactive.
    """

    __slots__ = ("_factors", "_active")

    def __init__(
        self,
        factors: Iterable[LinearInequality],
        active: Optional[Sequence[bool]] = None,
    ):
        self._factors: Tuple[LinearInequality, ...] = tuple(factors)
        for factor in self._factors:
            if not isinstance(factor, LinearInequality):
                raise TypeError(f"Expected LinearInequality, got {type(factor).__name__}")
        if active is None:
            flags = np.zeros(len(self._factors), dtype=bool)
        else:
            flags = np.array(active, dtype=bool).reshape(-1)
            if flags.shape[0] != len(self._factors):
                raise ValueError(
                    f"Got {flags.shape[0]} activation flags for {len(self._factors)} factors"
                )
        flags.setflags(write=False)
        self._active = flags

    # ------------------------------------------------------------------
    def at(self, index: int) -> LinearInequality:
        return self._factors[index]

    def is_active(self, index: int) -> bool:
        return bool(self._active[index])

    @property
    def flags(self) -> np.ndarray:
        return self._active

    def active_indices(self) -> List[int]:
        return [int(i) for i in np.flatnonzero(self._active)]

    def inactive_indices(self) -> List[int]:
        return [int(i) for i in np.flatnonzero(~self._active)]

    def active_factors(self) -> List[LinearInequality]:
        return [self._factors[i] for i in self.active_indices()]

    def keys(self) -> list:
        seen: dict = {}
        for factor in self._factors:
            for key in factor.keys():
                seen.setdefault(key, None)
        return list(seen)

    # ------------------------------------------------------------------
    def with_active(self, flags: Sequence[bool]) -> "InequalityFactorGraph":
        return InequalityFactorGraph(self._factors, flags)

    def _with_flag(self, index: int, value: bool) -> "InequalityFactorGraph":
        flags = self._active.copy()
        flags[index] = value
        return InequalityFactorGraph(self._factors, flags)

    def activate(self, index: int) -> "InequalityFactorGraph":
        """Return a copy with constraint ``index`` active."""
        return self._with_flag(index, True)

    def inactivate(self, index: int) -> "InequalityFactorGraph":
        """Return a copy with constraint ``index`` inactive."""
        return self._with_flag(index, False)

    # ------------------------------------------------------------------
    def __getitem__(self, index: int) -> LinearInequality:
        return self._factors[index]

    def __iter__(self) -> Iterator[LinearInequality]:
        return iter(self._factors)

    def __len__(self) -> int:
        return len(self._factors)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InequalityFactorGraph):
            return NotImplemented
        return self._factors == other._factors and bool(np.array_equal(self._active, other._active))

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"InequalityFactorGraph(size={len(self._factors)}, active={self.active_indices()})"


def identify_active_constraints(
    inequalities: Iterable[LinearInequality],
    initial_values: VectorValues,
    duals: Optional[VectorValues] = None,
    use_warm_start: bool = False,
    activation_tol: float = 1e-7,
    feasibility_tol: float = 0.0,
) -> InequalityFactorGraph:
    """
    Build the initial working set.

    With a warm start and a non-empty ``duals``, a constraint is active
    exactly when its dual key has a prior multiplier. Otherwise each
    constraint is checked at ``initial_values``: a violation above
    ``feasibility_tol`` (zero by default) raises
    :class:`InfeasibleInitialValues`, a violation within ``activation_tol`` of
    zero activates it, and anything else leaves it inactive.
    """

    factors = tuple(inequalities)
    duals = VectorValues() if duals is None else duals
    warm = use_warm_start and len(duals) > 0
    flags = np.zeros(len(factors), dtype=bool)
    for index, factor in enumerate(factors):
        if warm:
            flags[index] = duals.exists(factor.dual_key)
            continue
        violation = factor.error(initial_values)
        if violation > feasibility_tol:
            logger.warning("Inequality %d violated at the initial point (%.3e)", index, violation)
            raise InfeasibleInitialValues(index, violation)
        flags[index] = abs(violation) < activation_tol

    logger.debug(
        "Initial working set: %d of %d inequalities active (%s start)",
        int(flags.sum()),
        len(factors),
        "warm" if warm else "cold",
    )
    return InequalityFactorGraph(factors, flags)


__all__ = ["InequalityFactorGraph", "identify_active_constraints"]
