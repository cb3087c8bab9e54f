import numpy as np
import pytest

from activeqp.linear import (
    HessianFactor,
    JacobianFactor,
    LinearEquality,
    LinearInequality,
    VectorValues,
)


def test_jacobian_factor_error_and_gradient():
    A1 = np.array([[1.0, 0.0], [0.0, 2.0]])
    A2 = np.array([[1.0], [-1.0]])
    factor = JacobianFactor([("x", A1), ("y", A2)], [1.0, 1.0])
    x = VectorValues({"x": [1.0, 1.0], "y": [2.0]})

    residual = A1 @ x["x"] + A2 @ x["y"] - np.array([1.0, 1.0])
    assert np.allclose(factor.residual(x), residual)
    assert pytest.approx(0.5 * residual @ residual) == factor.error(x)
    assert np.allclose(factor.gradient("x", x), A1.T @ residual)
    assert np.allclose(factor.gradient("y", x), A2.T @ residual)
    assert factor.keys() == ("x", "y")
    assert factor.dims() == {"x": 2, "y": 1}


def test_jacobian_factor_blocks_are_read_only():
    factor = JacobianFactor({"x": np.eye(2)}, [1.0, 2.0])
    with pytest.raises(ValueError):
        factor.get_a("x")[0, 0] = 5.0
    with pytest.raises(ValueError):
        factor.get_b()[0] = 5.0


def test_transpose_terms_returns_transposed_block():
    A = np.array([[1.0, 2.0], [0.0, -1.0], [3.0, 0.5]])
    factor = LinearEquality({"x": A, "y": np.ones((3, 1))}, np.zeros(3), "nu")
    assert factor.transpose_terms("x").shape == (2, 3)
    assert np.allclose(factor.transpose_terms("x"), A.T)
    assert np.allclose(factor.transpose_terms("y"), np.ones((1, 3)))
    with pytest.raises(KeyError):
        factor.transpose_terms("z")


def test_jacobian_factor_validates_rows():
    with pytest.raises(ValueError):
        JacobianFactor([("x", np.eye(2)), ("y", np.eye(3))], np.zeros(2))
    with pytest.raises(ValueError):
        JacobianFactor({"x": np.eye(2)}, np.zeros(3))
    with pytest.raises(ValueError):
        JacobianFactor([("x", np.eye(2)), ("x", np.eye(2))], np.zeros(2))


def test_empty_jacobian_factor():
    factor = JacobianFactor()
    assert factor.empty
    assert factor.rows == 0


def test_hessian_factor_matches_jacobian_form():
    jac = JacobianFactor([("x", np.array([[1.0, 2.0]])), ("y", np.array([[3.0]]))], [4.0])
    hess = HessianFactor.from_jacobian(jac)
    x = VectorValues({"x": [0.5, -1.0], "y": [2.0]})
    assert pytest.approx(jac.error(x)) == hess.error(x)
    assert np.allclose(jac.gradient("x", x), hess.gradient("x", x))
    assert np.allclose(jac.gradient("y", x), hess.gradient("y", x))


def test_hessian_factor_symmetrizes_and_checks_dims():
    factor = HessianFactor("x", np.array([[2.0, 1.0], [0.0, 2.0]]), [0.0, 0.0])
    assert np.allclose(factor.information(), factor.information().T)
    with pytest.raises(ValueError):
        HessianFactor(["x", "y"], np.eye(2), np.zeros(2))
    with pytest.raises(ValueError):
        HessianFactor(["x", "y"], np.eye(3), np.zeros(3), dims=[1, 1])


def test_hessian_factor_tuple_is_one_key():
    factor = HessianFactor(("x", 1), np.eye(1), [1.0])
    assert factor.keys() == (("x", 1),)


def test_linear_inequality_violation_and_row_product():
    factor = LinearInequality({"x": [[1.0, -1.0]], "y": [[2.0]]}, 3.0, "mu")
    x = VectorValues({"x": [1.0, 0.0], "y": [0.5]})
    assert factor.dual_key == "mu"
    assert factor.bound == 3.0
    assert pytest.approx(-1.0) == factor.error(x)
    assert pytest.approx(2.0) == factor.dot_product_row(x)


def test_linear_inequality_must_have_one_row():
    with pytest.raises(ValueError):
        LinearInequality({"x": np.eye(2)}, [1.0, 1.0], "mu")
    with pytest.raises(ValueError):
        LinearInequality({}, 1.0, "mu")


def test_linear_equality_carries_dual_key():
    factor = LinearEquality({"x": np.eye(2)}, [1.0, 2.0], "nu")
    assert factor.dual_key == "nu"
    assert factor.rows == 2
    x = VectorValues({"x": [1.0, 2.0]})
    assert np.allclose(factor.residual(x), 0.0)
