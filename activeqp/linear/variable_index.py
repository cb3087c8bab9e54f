"""Lookup from variable keys to the factors that touch them."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional

from .values import Key


class VariableIndex:
    """
    Map each key to the increasing list of indices of factors involving it.

    Built once from a factor sequence and read-only afterwards. Keys appear
    in order of first use.

    Complexity:
        - construction: O(total number of factor keys)
        - lookup: O(1)
    """

    __slots__ = ("_index", "_n_factors")

    def __init__(self, factors: Iterable = ()):
        index: Dict[Key, List[int]] = {}
        count = 0
        for factor_ix, factor in enumerate(factors):
            count = factor_ix + 1
            for key in factor.keys():
                index.setdefault(key, []).append(factor_ix)
        self._index = {key: tuple(ixs) for key, ixs in index.items()}
        self._n_factors = count

    @property
    def n_factors(self) -> int:
        return self._n_factors

    def keys(self) -> list:
        return list(self._index)

    def get(self, key: Key, default: Optional[tuple] = None) -> Optional[tuple]:
        return self._index.get(key, default)

    def __getitem__(self, key: Key) -> tuple:
        return self._index[key]

    def __contains__(self, key: object) -> bool:
        return key in self._index

    def __iter__(self) -> Iterator[Key]:
        return iter(self._index)

    def __len__(self) -> int:
        return len(self._index)

    def __repr__(self) -> str:
        return f"VariableIndex(keys={len(self._index)}, factors={self._n_factors})"


__all__ = ["VariableIndex"]
