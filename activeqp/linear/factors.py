"""
Sparse linear terms ("factors") over keyed vector variables.

Two soft forms describe quadratic costs:

* :class:`JacobianFactor` with cost ``0.5 * ||sum_j A_j x_j - b||^2``;
* :class:`HessianFactor` with cost ``0.5 x' G x - g' x + 0.5 f``.

Two hard forms describe constraints and carry the key of their Lagrange
multiplier ("dual key"):

* :class:`LinearEquality` for ``sum_j A_j x_j = b``;
* :class:`LinearInequality` for the single row ``sum_j a_j' x_j <= b``.

All factors are immutable values. Their blocks are copied on construction and
exposed as read-only arrays, so a factor can be shared freely between graphs
and working sets.
"""

from __future__ import annotations

from typing import Dict, Hashable, Iterable, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .utils import as_matrix, as_vector, symmetrize
from .values import Key, VectorValues

TermsLike = Union[Mapping[Key, np.ndarray], Iterable[Tuple[Key, np.ndarray]]]


def _frozen(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


def _normalize_terms(terms: Optional[TermsLike]) -> list[Tuple[Key, np.ndarray]]:
    if terms is None:
        return []
    pairs = list(terms.items()) if isinstance(terms, Mapping) else list(terms)
    out: list[Tuple[Key, np.ndarray]] = []
    seen = set()
    for key, mat in pairs:
        if key in seen:
            raise ValueError(f"Duplicate key {key!r} in factor terms")
        seen.add(key)
        out.append((key, as_matrix(mat, name=f"block for {key!r}")))
    return out


class JacobianFactor:
    """
    Linear least-squares term ``0.5 * ||sum_j A_j x_j - b||^2``.

    Args:
        terms: ``(key, A_j)`` pairs (or a mapping). All blocks must share the
            same number of rows.
        b: Right-hand side with one entry per row. Defaults to zeros.

    A factor without terms is *empty*; the QP solver uses it as a no-op
    result when a variable touches no constraint.
    """

    def __init__(self, terms: Optional[TermsLike] = None, b: Optional[Iterable[float]] = None):
        pairs = _normalize_terms(terms)
        if pairs:
            rows = pairs[0][1].shape[0]
            for key, mat in pairs:
                if mat.shape[0] != rows:
                    raise ValueError(
                        f"Block for {key!r} has {mat.shape[0]} rows, expected {rows}"
                    )
        else:
            rows = 0 if b is None else as_vector(b).shape[0]
        rhs = np.zeros(rows) if b is None else as_vector(b, name="b")
        if rhs.shape[0] != rows:
            raise ValueError(f"b has length {rhs.shape[0]}, expected {rows}")

        self._keys: Tuple[Key, ...] = tuple(key for key, _ in pairs)
        self._blocks: Dict[Key, np.ndarray] = {key: _frozen(mat) for key, mat in pairs}
        self._b = _frozen(rhs)

    # ------------------------------------------------------------------
    @property
    def empty(self) -> bool:
        return not self._keys

    @property
    def rows(self) -> int:
        return int(self._b.shape[0])

    def keys(self) -> Tuple[Key, ...]:
        return self._keys

    def get_a(self, key: Key) -> np.ndarray:
        return self._blocks[key]

    def transpose_terms(self, key: Key) -> np.ndarray:
        """Return ``A_key'``, the block contributed to the dual factor of ``key``."""
        return self._blocks[key].T

    def get_b(self) -> np.ndarray:
        return self._b

    def terms(self) -> list[Tuple[Key, np.ndarray]]:
        return [(key, self._blocks[key]) for key in self._keys]

    def dims(self) -> Dict[Key, int]:
        return {key: int(self._blocks[key].shape[1]) for key in self._keys}

    # ------------------------------------------------------------------
    def residual(self, x: VectorValues) -> np.ndarray:
        """Return ``sum_j A_j x_j - b``."""
        acc = -np.array(self._b)
        for key in self._keys:
            acc += self._blocks[key] @ x.at(key)
        return acc

    def error(self, x: VectorValues) -> float:
        res = self.residual(x)
        return 0.5 * float(res @ res)

    def gradient(self, key: Key, x: VectorValues) -> np.ndarray:
        """Gradient of :meth:`error` with respect to ``key``: ``A_key' (A x - b)``."""
        return self._blocks[key].T @ self.residual(x)

    def jacobian(self, offsets: Mapping[Key, int], total: int) -> Tuple[np.ndarray, np.ndarray]:
        """Dense ``(A, b)`` laid out with column ``offsets`` in a ``total``-wide system."""
        dense = np.zeros((self.rows, total))
        for key in self._keys:
            block = self._blocks[key]
            start = offsets[key]
            dense[:, start : start + block.shape[1]] = block
        return dense, np.array(self._b)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(keys={list(self._keys)!r}, rows={self.rows})"


class HessianFactor:
    """
    Quadratic term ``0.5 x' G x - g' x + 0.5 f`` over the stacked blocks of ``keys``.

    Args:
        keys: A list of variable keys, in the order their blocks appear in
            ``G``. Anything other than a list (tuples included) is one key.
        G: Symmetric information matrix (symmetrized on construction).
        g: Linear term.
        f: Constant term (twice the constant of the cost).
        dims: Block dimensions. Required when there is more than one key.
    """

    def __init__(
        self,
        keys: Union[Key, list],
        G: np.ndarray,
        g: Iterable[float],
        f: float = 0.0,
        dims: Optional[Sequence[int]] = None,
    ):
        key_list = list(keys) if isinstance(keys, list) else [keys]
        if len(set(key_list)) != len(key_list):
            raise ValueError("Duplicate key in HessianFactor")
        info = as_matrix(G, name="G")
        if info.shape[0] != info.shape[1]:
            raise ValueError(f"G must be square, got shape {info.shape}")
        lin = as_vector(g, name="g")
        if lin.shape[0] != info.shape[0]:
            raise ValueError(f"g has length {lin.shape[0]}, expected {info.shape[0]}")
        if dims is None:
            if len(key_list) != 1:
                raise ValueError("dims must be given for a multi-key HessianFactor")
            dims = [info.shape[0]]
        dims = [int(d) for d in dims]
        if len(dims) != len(key_list) or sum(dims) != info.shape[0]:
            raise ValueError("dims do not match the keys and the size of G")

        self._keys: Tuple[Key, ...] = tuple(key_list)
        self._dims = dict(zip(key_list, dims))
        self._local: Dict[Key, slice] = {}
        offset = 0
        for key, dim in zip(key_list, dims):
            self._local[key] = slice(offset, offset + dim)
            offset += dim
        self._G = _frozen(symmetrize(info))
        self._g = _frozen(lin)
        self._f = float(f)

    @classmethod
    def from_jacobian(cls, factor: JacobianFactor) -> "HessianFactor":
        """Return the Hessian form of a Jacobian factor (same cost everywhere)."""
        keys = list(factor.keys())
        dims = [factor.dims()[key] for key in keys]
        offsets = {}
        offset = 0
        for key, dim in zip(keys, dims):
            offsets[key] = offset
            offset += dim
        A, b = factor.jacobian(offsets, offset)
        return cls(keys, A.T @ A, A.T @ b, float(b @ b), dims=dims)

    # ------------------------------------------------------------------
    @property
    def empty(self) -> bool:
        return not self._keys

    def keys(self) -> Tuple[Key, ...]:
        return self._keys

    def dims(self) -> Dict[Key, int]:
        return dict(self._dims)

    def information(self) -> np.ndarray:
        return self._G

    def linear_term(self) -> np.ndarray:
        return self._g

    def constant_term(self) -> float:
        return self._f

    def _stack(self, x: VectorValues) -> np.ndarray:
        return np.concatenate([x.at(key) for key in self._keys])

    def error(self, x: VectorValues) -> float:
        vec = self._stack(x)
        return 0.5 * float(vec @ (self._G @ vec)) - float(self._g @ vec) + 0.5 * self._f

    def gradient(self, key: Key, x: VectorValues) -> np.ndarray:
        """Rows of ``G x - g`` belonging to ``key``."""
        rows = self._local[key]
        return self._G[rows] @ self._stack(x) - self._g[rows]

    def hessian(self, offsets: Mapping[Key, int], total: int) -> Tuple[np.ndarray, np.ndarray]:
        """Dense ``(G, g)`` scattered into a ``total``-wide system."""
        dense_G = np.zeros((total, total))
        dense_g = np.zeros(total)
        index = np.concatenate(
            [np.arange(offsets[key], offsets[key] + self._dims[key]) for key in self._keys]
        )
        dense_G[np.ix_(index, index)] = self._G
        dense_g[index] = self._g
        return dense_G, dense_g

    def __repr__(self) -> str:
        return f"HessianFactor(keys={list(self._keys)!r})"


class LinearEquality(JacobianFactor):
    """
    Hard constraint ``sum_j A_j x_j = b``.

    Its multiplier vector has one entry per row and lives at ``dual_key``.
    Equalities are always active.
    """

    def __init__(self, terms: TermsLike, b: Iterable[float], dual_key: Hashable):
        super().__init__(terms, b)
        if self.empty:
            raise ValueError("LinearEquality needs at least one term")
        self._dual_key = dual_key

    @property
    def dual_key(self) -> Hashable:
        return self._dual_key

    def __repr__(self) -> str:
        return (
            f"LinearEquality(keys={list(self.keys())!r}, rows={self.rows}, "
            f"dual_key={self._dual_key!r})"
        )


class LinearInequality(JacobianFactor):
    """
    Single-row hard constraint ``sum_j a_j' x_j <= b``.

    When pushed into a factor graph it is treated as the equality
    ``a' x = b``, which is how the active set is imposed.
    """

    def __init__(self, terms: TermsLike, b: Union[float, Iterable[float]], dual_key: Hashable):
        super().__init__(terms, np.atleast_1d(np.asarray(b, dtype=float)))
        if self.empty:
            raise ValueError("LinearInequality needs at least one term")
        if self.rows != 1:
            raise ValueError(f"LinearInequality must have exactly one row, got {self.rows}")
        self._dual_key = dual_key

    @property
    def dual_key(self) -> Hashable:
        return self._dual_key

    @property
    def bound(self) -> float:
        return float(self.get_b()[0])

    def error(self, x: VectorValues) -> float:
        """Signed violation ``a' x - b``; positive means infeasible."""
        return float(self.residual(x)[0])

    def dot_product_row(self, p: VectorValues) -> float:
        """Return ``a' p``."""
        total = 0.0
        for key in self.keys():
            total += float(self.get_a(key)[0] @ p.at(key))
        return total

    def __repr__(self) -> str:
        return (
            f"LinearInequality(keys={list(self.keys())!r}, b={self.bound}, "
            f"dual_key={self._dual_key!r})"
        )


Factor = Union[JacobianFactor, HessianFactor]

__all__ = [
    "Factor",
    "JacobianFactor",
    "HessianFactor",
    "LinearEquality",
    "LinearInequality",
]
