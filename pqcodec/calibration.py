"""
Bayesian Calibration Module

Rescales a subspace distance table into log-likelihood-ratio scores using
kernel density estimates of genuine and impostor score distributions
"""

import logging
from typing import Tuple, Optional

import numpy as np
from scipy.special import logsumexp
from scipy.stats import norm

from .exceptions import CalibrationError


class BayesianCalibrator:
    """Converts raw center distances into log(p_genuine / p_impostor)"""

    # Cells evaluated per KDE block, bounds the (cells x samples) work matrix
    CHUNK_SIZE = 4096

    def __init__(self, sample_size: int = 256, max_log_ratio: float = 50.0,
                 seed: int = 1234, min_bandwidth: float = 1e-6):
        self.logger = logging.getLogger(__name__)
        self.sample_size = sample_size
        self.max_log_ratio = max_log_ratio
        self.seed = seed
        self.min_bandwidth = min_bandwidth

    @staticmethod
    def validate_labels(labels: Optional[np.ndarray], rows: int) -> np.ndarray:
        """Check labels can produce both genuine and impostor pairs"""
        if labels is None:
            raise CalibrationError("Bayesian calibration requires sample labels")
        labels = np.asarray(labels).reshape(-1)
        if labels.shape[0] != rows:
            raise CalibrationError(f"Expected {rows} labels, got {labels.shape[0]}")

        _, counts = np.unique(labels, return_counts=True)
        if len(counts) < 2:
            raise CalibrationError("Calibration needs at least two distinct labels for impostor pairs")
        if counts.max() < 2:
            raise CalibrationError("Calibration needs at least one repeated label for genuine pairs")
        return labels

    def pair_scores(self, table_row: np.ndarray, assignments: np.ndarray,
                    labels: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Scores of all unordered sample pairs i < j, split into (genuine, impostor).

        Pairs are walked one row at a time into preallocated outputs; peak
        memory is one score per pair plus one row.
        """
        table = np.asarray(table_row).reshape(256, 256)
        assignments = np.asarray(assignments).reshape(-1)
        labels = np.asarray(labels).reshape(-1)
        rows = assignments.shape[0]

        _, counts = np.unique(labels, return_counts=True)
        genuine_total = int(np.sum(counts * (counts - 1) // 2))
        impostor_total = rows * (rows - 1) // 2 - genuine_total
        genuine = np.empty(genuine_total, dtype=table.dtype)
        impostor = np.empty(impostor_total, dtype=table.dtype)

        g = p = 0
        for i in range(rows - 1):
            scores = table[assignments[i], assignments[i + 1:]]
            same = labels[i + 1:] == labels[i]
            matched = int(np.count_nonzero(same))
            genuine[g:g + matched] = scores[same]
            impostor[p:p + scores.shape[0] - matched] = scores[~same]
            g += matched
            p += scores.shape[0] - matched
        return genuine, impostor

    def downsample(self, scores: np.ndarray, rng: np.random.Generator) -> np.ndarray:
        """Uniform random subsample without replacement, kept in input order"""
        if scores.shape[0] <= self.sample_size:
            return scores
        keep = np.sort(rng.choice(scores.shape[0], size=self.sample_size, replace=False))
        return scores[keep]

    def bandwidth(self, scores: np.ndarray) -> float:
        """Rule-of-thumb bandwidth h = (4 sigma^5 / 3m)^(1/5)"""
        sigma = float(np.std(scores))
        h = (4.0 * sigma ** 5 / (3.0 * scores.shape[0])) ** 0.2
        return max(h, self.min_bandwidth)

    def log_density(self, samples: np.ndarray, points: np.ndarray, h: float) -> np.ndarray:
        """Gaussian KDE log-density of `samples` evaluated at `points`"""
        samples = np.asarray(samples, dtype=np.float64)
        points = np.asarray(points, dtype=np.float64)
        out = np.empty(points.shape[0], dtype=np.float64)
        log_m = np.log(samples.shape[0])

        for start in range(0, points.shape[0], self.CHUNK_SIZE):
            block = points[start:start + self.CHUNK_SIZE]
            log_kernels = norm.logpdf(block[:, None], loc=samples[None, :], scale=h)
            out[start:start + block.shape[0]] = logsumexp(log_kernels, axis=1) - log_m
        return out

    def calibrate(self, table_row: np.ndarray, assignments: np.ndarray,
                  labels: np.ndarray, seed_offset: int = 0) -> np.ndarray:
        """Return the log-likelihood-ratio version of one subspace table row"""
        raw = np.asarray(table_row, dtype=np.float32).reshape(-1)
        genuine, impostor = self.pair_scores(raw, assignments, labels)
        if genuine.size == 0 or impostor.size == 0:
            raise CalibrationError(
                f"Cannot calibrate with {genuine.size} genuine and {impostor.size} impostor pairs")

        rng = np.random.default_rng(self.seed + seed_offset)
        genuine = self.downsample(genuine, rng)
        impostor = self.downsample(impostor, rng)

        h_genuine = self.bandwidth(genuine)
        h_impostor = self.bandwidth(impostor)
        self.logger.debug(f"Calibration bandwidths: genuine={h_genuine:.6g} "
                          f"({genuine.size} scores), impostor={h_impostor:.6g} ({impostor.size} scores)")

        # The table holds far fewer distinct values than cells
        values, inverse = np.unique(raw, return_inverse=True)
        ratio = (self.log_density(genuine, values, h_genuine)
                 - self.log_density(impostor, values, h_impostor))

        # Zero density on either side: clamp instead of propagating inf/nan
        degenerate = int(np.count_nonzero(~np.isfinite(ratio)))
        if degenerate:
            self.logger.warning(f"Clamping {degenerate} non-finite log-likelihood ratios")
        ratio = np.nan_to_num(ratio, nan=0.0, posinf=self.max_log_ratio, neginf=-self.max_log_ratio)
        ratio = np.clip(ratio, -self.max_log_ratio, self.max_log_ratio)

        return ratio[inverse.reshape(-1)].astype(np.float32)
