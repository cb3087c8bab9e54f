"""Pytest configuration and shared fixtures for activeqp tests.

This module provides:
- A deterministic numpy RNG fixture
- Small keyed QP fixtures reused across the QP test modules
"""

import os

import numpy as np
import pytest

from activeqp import (
    QP,
    GaussianFactorGraph,
    HessianFactor,
    JacobianFactor,
    LinearEquality,
    LinearInequality,
)


@pytest.fixture(scope="function")
def rng() -> np.random.Generator:
    """Provide a deterministic numpy RNG for tests.

    Uses seed from TEST_RNG_SEED environment variable (default: 0).
    This ensures tests are reproducible while allowing override for debugging.

    Returns:
        A seeded numpy.random.Generator instance.
    """
    seed = int(os.environ.get("TEST_RNG_SEED", "0"))
    return np.random.default_rng(seed)


@pytest.fixture(scope="function", autouse=True)
def set_random_seeds() -> None:
    """Auto-use fixture to set the global numpy seed for reproducibility."""
    np.random.seed(int(os.environ.get("TEST_RNG_SEED", "0")))


@pytest.fixture
def bounded_scalar_qp() -> QP:
    """min 0.5 (x - 10)^2  s.t.  x <= 5."""
    cost = GaussianFactorGraph([JacobianFactor({"x": np.eye(1)}, [10.0])])
    inequalities = GaussianFactorGraph([LinearInequality({"x": np.eye(1)}, 5.0, "lambda")])
    return QP(cost=cost, inequalities=inequalities)


@pytest.fixture
def two_variable_qp() -> QP:
    """
    Nocedal & Wright example 16.4 on two scalar keys.

    min (x1 - 1)^2 + (x2 - 2.5)^2
    s.t. -x1 + 2 x2 <= 2,  x1 + 2 x2 <= 6,  x1 - 2 x2 <= 2,  -x1 <= 0,  -x2 <= 0

    Solution (1.4, 1.7) with the first constraint active. Starting from (2, 0)
    the iteration visits (1, 0) and (1, 1.5) before reaching it.
    """
    cost = GaussianFactorGraph(
        [
            HessianFactor("x1", 2.0 * np.eye(1), [2.0], f=2.0),
            HessianFactor("x2", 2.0 * np.eye(1), [5.0], f=12.5),
        ]
    )
    rows = [
        (-1.0, 2.0, 2.0),
        (1.0, 2.0, 6.0),
        (1.0, -2.0, 2.0),
        (-1.0, 0.0, 0.0),
        (0.0, -1.0, 0.0),
    ]
    inequalities = GaussianFactorGraph()
    for i, (a1, a2, b) in enumerate(rows):
        terms = []
        if a1:
            terms.append(("x1", [[a1]]))
        if a2:
            terms.append(("x2", [[a2]]))
        inequalities.push_back(LinearInequality(terms, b, ("mu", i)))
    return QP(cost=cost, inequalities=inequalities)


@pytest.fixture
def equality_qp() -> QP:
    """min 0.5 ||x||^2 + 0.5 ||y||^2  s.t.  x + y = 1 (2-vectors),  x[0] <= 0.2."""
    cost = GaussianFactorGraph(
        [
            JacobianFactor({"x": np.eye(2)}, np.zeros(2)),
            JacobianFactor({"y": np.eye(2)}, np.zeros(2)),
        ]
    )
    equalities = GaussianFactorGraph(
        [LinearEquality({"x": np.eye(2), "y": np.eye(2)}, np.ones(2), "nu")]
    )
    inequalities = GaussianFactorGraph(
        [LinearInequality({"x": np.array([[1.0, 0.0]])}, 0.2, "mu")]
    )
    return QP(cost=cost, equalities=equalities, inequalities=inequalities)
