"""
Subspace Splitter Module

Partitions D-dimensional vectors into D/n contiguous n-dimensional subspaces
"""

from typing import List

import numpy as np

from .exceptions import ConfigurationError


def subspace_count(dimension: int, n: int) -> int:
    """Number of subspaces, failing when the dimension is not a multiple of n"""
    if n <= 0:
        raise ConfigurationError(f"Invalid subspace width n={n}")
    if dimension <= 0 or dimension % n != 0:
        raise ConfigurationError(
            f"Expected dimensionality to be divisible by n, got D={dimension}, n={n}")
    return dimension // n


def subspace_slice(s: int, n: int) -> slice:
    return slice(s * n, (s + 1) * n)


def split_subspaces(data: np.ndarray, n: int) -> List[np.ndarray]:
    """
    Split vectors (N, D) into D/n sub-matrices

    Returns list of arrays, each (N, n), C-contiguous float32 as FAISS expects.
    A 1-D vector is treated as a single row.
    """
    data = np.asarray(data, dtype=np.float32)
    if data.ndim == 1:
        data = data.reshape(1, -1)
    if data.ndim != 2:
        raise ConfigurationError(f"Expected a 2-D matrix, got shape {data.shape}")

    count = subspace_count(data.shape[1], n)
    return [np.ascontiguousarray(data[:, subspace_slice(s, n)]) for s in range(count)]
