"""
Integration tests for the QP package.

Tests that the public API is reachable from the package root and that the
pieces compose in realistic scenarios.
"""

import numpy as np
import pytest

from activeqp import (
    QP,
    GaussianFactorGraph,
    HessianFactor,
    JacobianFactor,
    LinearEquality,
    LinearInequality,
    OptimizeResult,
    QPError,
    QPSolver,
    Status,
    VectorValues,
    active_set_qp,
    is_kkt_optimal,
)


def test_main_package_imports():
    """Test that the QP APIs are accessible from main package."""
    assert QPSolver is not None
    assert active_set_qp is not None
    assert is_kkt_optimal is not None
    assert OptimizeResult is not None
    assert Status is not None


def test_keyed_and_dense_front_ends_agree(rng):
    """The same QP solved through factors and through matrices."""
    M = rng.normal(size=(3, 3))
    H = M @ M.T + np.eye(3)
    g = rng.normal(size=3)
    G = np.array([[1.0, 1.0, 1.0], [-1.0, 0.0, 0.0]])
    h = np.array([0.5, 0.25])
    A = np.array([[1.0, -1.0, 0.0]])
    b = np.array([0.0])

    dense = active_set_qp(H, g, a_mat=A, b_vec=b, g_mat=G, h_vec=h)
    assert dense.status is Status.OPTIMAL

    qp = QP(
        cost=GaussianFactorGraph([HessianFactor("x", H, -g)]),
        equalities=GaussianFactorGraph([LinearEquality({"x": A}, b, "nu")]),
        inequalities=GaussianFactorGraph(
            [LinearInequality({"x": G[i : i + 1]}, h[i], ("mu", i)) for i in range(2)]
        ),
    )
    values, duals = QPSolver(qp).optimize(VectorValues({"x": np.zeros(3)}))
    assert np.allclose(values["x"], dense.x, atol=1e-9)
    assert is_kkt_optimal(qp, values, duals, tol=1e-8)


def test_multi_block_chain():
    """A 1-D chain of scalar positions pulled towards 3, capped at 2 by the last one."""
    keys = [("p", i) for i in range(4)]
    cost = GaussianFactorGraph([JacobianFactor({keys[0]: [[1.0]]}, [0.0])])
    for a, b in zip(keys, keys[1:]):
        cost.push_back(JacobianFactor({a: [[-1.0]], b: [[1.0]]}, [1.0]))
    inequalities = GaussianFactorGraph([LinearInequality({keys[-1]: [[1.0]]}, 2.0, "cap")])
    qp = QP(cost=cost, inequalities=inequalities)

    x0 = VectorValues({key: [0.0] for key in keys})
    values, duals = QPSolver(qp).optimize(x0)

    assert pytest.approx(2.0) == float(values[keys[-1]][0])
    assert float(duals["cap"][0]) < 0.0
    assert is_kkt_optimal(qp, values, duals, tol=1e-9)


def test_qp_validation_errors():
    eq = LinearEquality({"x": [[1.0]]}, [0.0], "dual")
    with pytest.raises(ValueError):
        QP(inequalities=GaussianFactorGraph([eq]))
    with pytest.raises(ValueError):
        QP(cost=GaussianFactorGraph([eq]))
    with pytest.raises(ValueError):
        QP(
            equalities=GaussianFactorGraph([eq]),
            inequalities=GaussianFactorGraph([LinearInequality({"x": [[1.0]]}, 1.0, "dual")]),
        )
    with pytest.raises(ValueError):
        QP(inequalities=GaussianFactorGraph([LinearInequality({"x": [[1.0]]}, 1.0, "x")]))
    with pytest.raises(ValueError):
        QP(
            cost=GaussianFactorGraph([JacobianFactor({"x": np.eye(2)}, np.zeros(2))]),
            inequalities=GaussianFactorGraph([LinearInequality({"x": [[1.0]]}, 1.0, "mu")]),
        )
    assert issubclass(QPError, Exception)


def test_qp_helpers(equality_qp):
    assert equality_qp.keys() == ["x", "y"]
    assert equality_qp.dims() == {"x": 2, "y": 2}
    assert equality_qp.dual_keys() == ["nu", "mu"]
    values = VectorValues({"x": [0.2, 0.5], "y": [0.8, 0.5]})
    assert pytest.approx(0.59) == equality_qp.cost_value(values)
