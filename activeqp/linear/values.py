"""
Vector-valued assignments keyed by variable identifiers.

A :class:`VectorValues` maps each variable key to one block vector. It is the
currency of the linear layer: factor graphs return one from ``optimize()``,
the QP solver threads primal points and multiplier estimates through it, and
step directions are formed by plain arithmetic on two of them.
"""

from __future__ import annotations

from typing import Dict, Hashable, Iterable, Iterator, Mapping, Optional, Sequence, Tuple

import numpy as np

from .utils import as_vector

Key = Hashable


class VectorValues:
    """
    Ordered mapping from variable keys to 1-D float arrays.

    Keys keep insertion order so that packing to a flat vector is
    deterministic. Arithmetic returns new objects and requires both operands
    to hold the same key set.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Optional[Mapping[Key, Iterable[float]]] = None):
        self._values: Dict[Key, np.ndarray] = {}
        if values is not None:
            for key, vec in values.items():
                self.insert(key, vec)

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------
    @classmethod
    def zero(cls, dims: Mapping[Key, int]) -> "VectorValues":
        """Return all-zero values for a key to dimension map."""
        return cls({key: np.zeros(int(dim)) for key, dim in dims.items()})

    @classmethod
    def from_vector(
        cls, vec: np.ndarray, keys: Sequence[Key], dims: Mapping[Key, int]
    ) -> "VectorValues":
        """Split a flat vector into blocks following ``keys`` and ``dims``."""
        flat = np.asarray(vec, dtype=float).reshape(-1)
        total = sum(int(dims[key]) for key in keys)
        if flat.shape[0] != total:
            raise ValueError(f"Vector has length {flat.shape[0]}, expected {total}")
        out = cls()
        offset = 0
        for key in keys:
            dim = int(dims[key])
            out._values[key] = flat[offset : offset + dim].copy()
            offset += dim
        return out

    # ------------------------------------------------------------------
    # Mapping protocol
    # ------------------------------------------------------------------
    def insert(self, key: Key, vec: Iterable[float]) -> None:
        """Add a new key. Raises ValueError when the key already exists."""
        if key in self._values:
            raise ValueError(f"Key {key!r} already present in VectorValues")
        self._values[key] = as_vector(vec, name=f"value for {key!r}")

    def update(self, other: Mapping[Key, Iterable[float]]) -> None:
        """Insert or overwrite every entry of ``other``."""
        for key, vec in other.items():
            self[key] = vec

    def at(self, key: Key) -> np.ndarray:
        return self._values[key]

    def exists(self, key: Key) -> bool:
        return key in self._values

    def keys(self) -> list:
        return list(self._values.keys())

    def items(self) -> list[Tuple[Key, np.ndarray]]:
        return list(self._values.items())

    def dims(self) -> Dict[Key, int]:
        return {key: int(vec.shape[0]) for key, vec in self._values.items()}

    def subset(self, keys: Iterable[Key]) -> "VectorValues":
        """Return a copy restricted to ``keys`` (KeyError on a missing key)."""
        return VectorValues({key: self._values[key] for key in keys})

    def vector(self, keys: Optional[Sequence[Key]] = None) -> np.ndarray:
        """Concatenate the blocks of ``keys`` (all keys by default)."""
        order = self.keys() if keys is None else list(keys)
        if not order:
            return np.zeros(0)
        return np.concatenate([self._values[key] for key in order])

    def copy(self) -> "VectorValues":
        return VectorValues(self._values)

    def __getitem__(self, key: Key) -> np.ndarray:
        return self._values[key]

    def __setitem__(self, key: Key, vec: Iterable[float]) -> None:
        self._values[key] = as_vector(vec, name=f"value for {key!r}")

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[Key]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    # ------------------------------------------------------------------
    # Comparison and arithmetic
    # ------------------------------------------------------------------
    def equals(self, other: "VectorValues", tol: float = 1e-9) -> bool:
        """True when both hold the same keys and every entry differs by at most ``tol``."""
        if set(self._values) != set(other._values):
            return False
        for key, vec in self._values.items():
            rhs = other._values[key]
            if vec.shape != rhs.shape:
                return False
            if np.any(np.abs(vec - rhs) > tol):
                return False
        return True

    def _check_compatible(self, other: "VectorValues") -> None:
        if set(self._values) != set(other._values):
            raise ValueError("VectorValues operands must hold the same keys")

    def __add__(self, other: "VectorValues") -> "VectorValues":
        self._check_compatible(other)
        return VectorValues({k: v + other._values[k] for k, v in self._values.items()})

    def __sub__(self, other: "VectorValues") -> "VectorValues":
        self._check_compatible(other)
        return VectorValues({k: v - other._values[k] for k, v in self._values.items()})

    def __mul__(self, alpha: float) -> "VectorValues":
        return VectorValues({k: float(alpha) * v for k, v in self._values.items()})

    __rmul__ = __mul__

    def __neg__(self) -> "VectorValues":
        return self * -1.0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VectorValues):
            return NotImplemented
        return self.equals(other, tol=0.0)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        body = ", ".join(f"{key!r}: {np.array2string(vec)}" for key, vec in self._values.items())
        return f"VectorValues({{{body}}})"


__all__ = ["Key", "VectorValues"]
