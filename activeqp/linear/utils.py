"""
Numerical helper routines for the linear-system layer.

These helpers emphasize determinism and graceful degradation when matrices are
nearly singular, which happens routinely in active-set solves once several
active constraints become linearly dependent.
"""

from __future__ import annotations

import numpy as np


def symmetrize(matrix: np.ndarray) -> np.ndarray:
    """
    Return the symmetric part of ``matrix``.

    Quadratic terms assume exactly symmetric information matrices. This helper
    removes small asymmetries due to floating-point error by returning
    ``0.5 * (matrix + matrix.T)``.
    """

    return 0.5 * (matrix + matrix.T)


def stable_solve(matrix: np.ndarray, rhs: np.ndarray, reg: float = 1e-12) -> np.ndarray:
    """
    Solve ``A x = b`` with simple regularization fallbacks.

    The function first attempts ``np.linalg.solve``. Upon encountering a
    ``LinAlgError`` it retries with Tikhonov regularization by adding ``reg``
    to the diagonal. If the system remains singular it falls back to a
    least-squares solve via ``np.linalg.lstsq``.
    """

    try:
        return np.linalg.solve(matrix, rhs)
    except np.linalg.LinAlgError:
        if reg > 0.0:
            augmented = matrix + reg * np.eye(matrix.shape[0], dtype=matrix.dtype)
            try:
                return np.linalg.solve(augmented, rhs)
            except np.linalg.LinAlgError:
                pass
    # Final fallback: least squares
    sol, *_ = np.linalg.lstsq(matrix, rhs, rcond=None)
    return sol


def as_vector(vec, name: str = "vector") -> np.ndarray:
    """Return ``vec`` as a fresh 1-D float array."""

    arr = np.array(vec, dtype=float, copy=True).reshape(-1)
    if not np.all(np.isfinite(arr)):
        raise ValueError(f"{name} contains non-finite entries")
    return arr


def as_matrix(mat, rows: int | None = None, name: str = "matrix") -> np.ndarray:
    """
    Return ``mat`` as a fresh 2-D float array.

    One-dimensional input is read as a single row. When ``rows`` is given the
    row count is checked.
    """

    arr = np.array(mat, dtype=float, copy=True)
    if arr.ndim == 1:
        arr = arr.reshape(1, -1)
    if arr.ndim != 2:
        raise ValueError(f"{name} must be two-dimensional, got shape {arr.shape}")
    if rows is not None and arr.shape[0] != rows:
        raise ValueError(f"{name} has {arr.shape[0]} rows, expected {rows}")
    return arr


__all__ = ["symmetrize", "stable_solve", "as_vector", "as_matrix"]
