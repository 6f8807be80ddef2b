"""Unit tests for center distance metrics."""

import numpy as np
import pytest

from pqcodec.exceptions import ConfigurationError
from pqcodec.metrics import (
    DistanceMetric, EuclideanDistance, SquaredEuclideanDistance,
    ManhattanDistance, CosineDistance, get_metric, available_metrics
)


@pytest.fixture
def centers():
    rng = np.random.default_rng(3)
    return rng.normal(size=(16, 3)).astype(np.float32)


class TestMetrics:

    @pytest.mark.parametrize("metric", [
        EuclideanDistance(), SquaredEuclideanDistance(), ManhattanDistance(), CosineDistance()
    ])
    def test_pairwise_matches_compare(self, metric, centers):
        table = metric.pairwise(centers)
        assert table.shape == (16, 16)
        assert table.dtype == np.float32
        for i, j in [(0, 1), (3, 9), (15, 2)]:
            assert table[i, j] == pytest.approx(metric.compare(centers[i], centers[j]), rel=1e-5, abs=1e-6)

    @pytest.mark.parametrize("metric", [
        EuclideanDistance(), SquaredEuclideanDistance(), ManhattanDistance(), CosineDistance()
    ])
    def test_symmetric_with_zero_diagonal(self, metric, centers):
        table = metric.pairwise(centers)
        np.testing.assert_array_equal(table, table.T)
        np.testing.assert_array_equal(np.diag(table), np.zeros(16, dtype=np.float32))

    def test_euclidean_value(self):
        assert EuclideanDistance().compare(np.array([0, 0]), np.array([3, 4])) == pytest.approx(5.0)

    def test_base_pairwise_uses_compare(self, centers):
        class Chebyshev(DistanceMetric):
            name = "chebyshev"

            def compare(self, a, b):
                return float(np.max(np.abs(a - b)))

        table = Chebyshev().pairwise(centers[:4])
        assert table[0, 1] == pytest.approx(float(np.max(np.abs(centers[0] - centers[1]))))

    def test_get_metric(self):
        assert isinstance(get_metric("l2"), EuclideanDistance)
        assert isinstance(get_metric("L1"), ManhattanDistance)
        assert "cosine" in available_metrics()

    def test_get_unknown_metric_raises(self):
        with pytest.raises(ConfigurationError, match="Unsupported distance metric"):
            get_metric("hamming")
