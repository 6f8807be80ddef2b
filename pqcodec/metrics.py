"""
Distance Metrics Module

Center-to-center distance strategies used to fill the per-subspace lookup tables
"""

from typing import Dict, List, Type

import numpy as np

from .exceptions import ConfigurationError


class DistanceMetric:
    """Strategy comparing two vectors; `pairwise` fills a whole table at once"""

    name = ""

    def compare(self, a: np.ndarray, b: np.ndarray) -> float:
        raise NotImplementedError

    def pairwise(self, centers: np.ndarray) -> np.ndarray:
        """Return the (k, k) matrix with entry [i, j] = compare(centers[i], centers[j])"""
        k = centers.shape[0]
        out = np.empty((k, k), dtype=np.float32)
        for i in range(k):
            for j in range(k):
                out[i, j] = self.compare(centers[i], centers[j])
        return out

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class EuclideanDistance(DistanceMetric):
    name = "l2"

    def compare(self, a: np.ndarray, b: np.ndarray) -> float:
        diff = np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)
        return float(np.sqrt(np.sum(diff ** 2)))

    def pairwise(self, centers: np.ndarray) -> np.ndarray:
        c = np.asarray(centers, dtype=np.float64)
        diff = c[:, None, :] - c[None, :, :]
        return np.sqrt(np.sum(diff ** 2, axis=2)).astype(np.float32)


class SquaredEuclideanDistance(DistanceMetric):
    name = "sqeuclidean"

    def compare(self, a: np.ndarray, b: np.ndarray) -> float:
        diff = np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)
        return float(np.sum(diff ** 2))

    def pairwise(self, centers: np.ndarray) -> np.ndarray:
        c = np.asarray(centers, dtype=np.float64)
        diff = c[:, None, :] - c[None, :, :]
        return np.sum(diff ** 2, axis=2).astype(np.float32)


class ManhattanDistance(DistanceMetric):
    name = "l1"

    def compare(self, a: np.ndarray, b: np.ndarray) -> float:
        diff = np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)
        return float(np.sum(np.abs(diff)))

    def pairwise(self, centers: np.ndarray) -> np.ndarray:
        c = np.asarray(centers, dtype=np.float64)
        return np.sum(np.abs(c[:, None, :] - c[None, :, :]), axis=2).astype(np.float32)


class CosineDistance(DistanceMetric):
    """1 - cosine similarity; zero vectors are treated as orthogonal to everything"""

    name = "cosine"

    def compare(self, a: np.ndarray, b: np.ndarray) -> float:
        return float(self.pairwise(np.stack([a, b]))[0, 1])

    def pairwise(self, centers: np.ndarray) -> np.ndarray:
        c = np.asarray(centers, dtype=np.float64)
        norms = np.linalg.norm(c, axis=1)
        norms[norms == 0] = 1
        unit = c / norms[:, None]
        out = 1.0 - unit @ unit.T
        out = (out + out.T) / 2
        np.fill_diagonal(out, 0.0)
        return np.clip(out, 0.0, 2.0).astype(np.float32)


_METRICS: Dict[str, Type[DistanceMetric]] = {
    "l2": EuclideanDistance,
    "euclidean": EuclideanDistance,
    "sqeuclidean": SquaredEuclideanDistance,
    "l1": ManhattanDistance,
    "manhattan": ManhattanDistance,
    "cosine": CosineDistance,
}


def available_metrics() -> List[str]:
    return sorted(_METRICS)


def get_metric(name: str) -> DistanceMetric:
    """Resolve a metric name from configuration"""
    try:
        return _METRICS[name.lower()]()
    except (KeyError, AttributeError):
        raise ConfigurationError(f"Unsupported distance metric: {name}. Supported: {available_metrics()}")
