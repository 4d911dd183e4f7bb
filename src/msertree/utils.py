"""Utility functions for validation and positional moments."""

import warnings
from collections.abc import Sequence

import numpy as np


def covariance_size(n: int) -> int:
    """Number of independent covariance entries for ``n`` dimensions."""
    return (n * (n + 1)) // 2


def upper_triangle(matrix: np.ndarray) -> np.ndarray:
    """Flatten the upper triangle (diagonal included) of a square matrix, row-major."""
    matrix = np.asarray(matrix)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ValueError(f"matrix must be square, got shape {matrix.shape}")
    return matrix[np.triu_indices(matrix.shape[0])]


def position_moments(positions: Sequence[Sequence[float]]) -> tuple[np.ndarray, np.ndarray]:
    """Compute mean and covariance upper triangle of pixel positions.

    The covariance is normalized by the number of positions, matching the
    statistics accumulated incrementally by component records.

    Parameters
    ----------
    positions : Sequence[Sequence[float]]
        One row of coordinates per pixel

    Returns
    -------
    tuple[np.ndarray, np.ndarray]
        Mean of shape (n,) and covariance entries of shape (n(n+1)/2,)
    """
    points = np.asarray(positions, dtype=np.float64)
    if points.ndim != 2 or len(points) == 0:
        raise ValueError("positions must be a non-empty sequence of coordinate rows")
    mean = points.mean(axis=0)
    centered = points - mean
    cov = centered.T @ centered / len(points)
    return mean, upper_triangle(cov)


def validate_size_range(min_size: int, max_size: int | None) -> None:
    """Validate the accepted region size range."""
    if min_size < 1:
        raise ValueError(f"min_size must be at least 1, got {min_size}")
    if max_size is not None and max_size < min_size:
        raise ValueError(f"max_size ({max_size}) must not be smaller than min_size ({min_size})")


def warn_on_diversity(min_diversity: float) -> None:
    """Warn when nested regions will almost always be pruned."""
    if min_diversity >= 0.9:
        warnings.warn(
            f"min_diversity {min_diversity} will prune nearly all nested regions",
            UserWarning,
            stacklevel=2,
        )
