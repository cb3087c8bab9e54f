import numpy as np
import pytest

from activeqp.linear import VectorValues


def test_insert_copies_and_coerces():
    source = np.array([1, 2])
    values = VectorValues({"x": source})
    source[0] = 10
    assert values["x"].dtype == float
    assert np.allclose(values.at("x"), [1.0, 2.0])


def test_insert_rejects_duplicate_key():
    values = VectorValues({"x": [1.0]})
    with pytest.raises(ValueError):
        values.insert("x", [2.0])
    values["x"] = [2.0]
    assert values["x"][0] == 2.0


def test_equals_uses_absolute_tolerance():
    a = VectorValues({"x": [1.0, 2.0], "y": [0.0]})
    b = VectorValues({"y": [5e-8], "x": [1.0, 2.0 - 5e-8]})
    assert a.equals(b, 1e-7)
    assert not a.equals(b, 1e-8)
    assert not a.equals(VectorValues({"x": [1.0, 2.0]}), 1e-7)


def test_arithmetic_returns_new_values():
    x = VectorValues({"a": [1.0, 1.0], "b": [2.0]})
    y = VectorValues({"a": [0.5, -1.0], "b": [1.0]})
    step = 0.5 * (y - x)
    moved = x + step
    assert np.allclose(moved["a"], [0.75, 0.0])
    assert np.allclose(moved["b"], [1.5])
    assert np.allclose((-x)["b"], [-2.0])
    assert np.allclose(x["a"], [1.0, 1.0])


def test_arithmetic_requires_matching_keys():
    with pytest.raises(ValueError):
        VectorValues({"a": [1.0]}) - VectorValues({"b": [1.0]})


def test_vector_round_trip_follows_key_order():
    values = VectorValues({"x": [1.0, 2.0], "y": [3.0]})
    flat = values.vector(["y", "x"])
    assert np.allclose(flat, [3.0, 1.0, 2.0])
    back = VectorValues.from_vector(flat, ["y", "x"], values.dims())
    assert back.keys() == ["y", "x"]
    assert back.equals(values)
    with pytest.raises(ValueError):
        VectorValues.from_vector(np.zeros(2), ["x", "y"], values.dims())


def test_zero_and_subset():
    values = VectorValues.zero({"x": 2, "y": 1})
    assert values.dims() == {"x": 2, "y": 1}
    assert np.allclose(values.vector(), 0.0)
    assert values.subset(["y"]).keys() == ["y"]
    with pytest.raises(KeyError):
        values.subset(["z"])


def test_non_finite_entries_rejected():
    with pytest.raises(ValueError):
        VectorValues({"x": [np.nan]})
