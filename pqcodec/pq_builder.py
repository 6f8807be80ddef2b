"""
PQ Builder Module

Handles per-subspace codebook training and distance table construction
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional

import faiss
import numpy as np

from .calibration import BayesianCalibrator
from .exceptions import ConfigurationError
from .metrics import DistanceMetric, EuclideanDistance
from .splitter import split_subspaces, subspace_count
from .utils import ProgressTracker, format_time, get_memory_usage

# One code byte per subspace fixes the number of centers
NUM_CENTERS = 256
TABLE_SIZE = NUM_CENTERS * NUM_CENTERS


@dataclass
class SubspaceModel:
    """Training output of a single subspace"""
    index: int
    centers: np.ndarray       # (256, n)
    table: np.ndarray         # (65536,)
    assignments: np.ndarray   # (rows,)


@dataclass
class TrainingResult:
    codebook: np.ndarray      # (S, 256, n)
    table: np.ndarray         # (S, 65536)
    assignments: np.ndarray   # (rows, S)
    calibrated: bool
    metric_name: str
    train_time: float

    @property
    def subspaces(self) -> int:
        return self.codebook.shape[0]


class PQBuilder:
    """Trains one k-means codebook and one center-distance table per subspace"""

    def __init__(self, metric: Optional[DistanceMetric] = None, n: int = 2,
                 bayesian: bool = False, parallelism: bool = False,
                 niter: int = 10, nredo: int = 3, seed: int = 1234,
                 max_workers: Optional[int] = None,
                 calibrator: Optional[BayesianCalibrator] = None):
        """Initialize PQ builder"""
        self.logger = logging.getLogger(__name__)
        self.metric = metric if metric is not None else EuclideanDistance()
        self.n = n
        self.bayesian = bayesian
        self.parallelism = parallelism
        self.niter = niter
        self.nredo = nredo
        self.seed = seed
        self.max_workers = max_workers
        self.calibrator = calibrator if calibrator is not None else BayesianCalibrator(seed=seed)

    def _validate(self, data: np.ndarray, labels) -> Optional[np.ndarray]:
        """Validate everything before any subspace work starts"""
        if data.ndim != 2:
            raise ConfigurationError(f"Expected a 2-D training matrix, got shape {data.shape}")
        subspace_count(data.shape[1], self.n)

        if data.shape[0] < NUM_CENTERS:
            raise ConfigurationError(
                f"Need at least {NUM_CENTERS} training vectors for {NUM_CENTERS} centers, got {data.shape[0]}")
        if not np.all(np.isfinite(data)):
            raise ConfigurationError("Training matrix contains NaN or Inf values")

        if self.bayesian:
            return self.calibrator.validate_labels(labels, data.shape[0])
        return None

    def train(self, data: np.ndarray, labels=None) -> TrainingResult:
        """Train all subspaces and return codebook plus distance table"""
        data = np.asarray(data, dtype=np.float32)
        labels = self._validate(data, labels)

        subdata = split_subspaces(data, self.n)
        subspaces = len(subdata)

        self.logger.info(f"Training PQ codec: vectors={data.shape[0]}, dim={data.shape[1]}, "
                         f"n={self.n}, subspaces={subspaces}")
        self.logger.info(f"Distance metric: {self.metric.name}, bayesian: {self.bayesian}, "
                         f"parallelism: {self.parallelism}")

        tracker = ProgressTracker(subspaces, "Training subspaces")

        if self.parallelism:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = [executor.submit(self._train_subspace, s, subdata[s], labels)
                           for s in range(subspaces)]
                models = []
                for future in futures:
                    models.append(future.result())
                    tracker.update()
        else:
            models = []
            for s in range(subspaces):
                models.append(self._train_subspace(s, subdata[s], labels))
                tracker.update()

        train_time = tracker.finish()

        result = self._assemble(models, train_time)
        self.logger.info(f"Training completed, time: {format_time(train_time)}, "
                         f"memory: {get_memory_usage():.2f} MB")
        return result

    def _train_subspace(self, s: int, subdata: np.ndarray,
                        labels: Optional[np.ndarray]) -> SubspaceModel:
        """Cluster one subspace and fill its 256x256 table"""
        kmeans = faiss.Kmeans(subdata.shape[1], NUM_CENTERS, niter=self.niter,
                              nredo=self.nredo, seed=self.seed + s, verbose=False)
        kmeans.train(subdata)

        centers = np.ascontiguousarray(kmeans.centroids, dtype=np.float32).reshape(NUM_CENTERS, -1)
        _, nearest = kmeans.index.search(subdata, 1)
        assignments = nearest.reshape(-1).astype(np.int64)

        table = self.metric.pairwise(centers).reshape(TABLE_SIZE).astype(np.float32)
        objective = getattr(kmeans, "obj", None)
        if objective is not None and len(objective):
            self.logger.debug(f"Subspace {s}: k-means objective={float(objective[-1]):.6g}")

        if self.bayesian:
            table = self.calibrator.calibrate(table, assignments, labels, seed_offset=s)

        return SubspaceModel(index=s, centers=centers, table=table, assignments=assignments)

    def _assemble(self, models: List[SubspaceModel], train_time: float) -> TrainingResult:
        models = sorted(models, key=lambda m: m.index)
        return TrainingResult(
            codebook=np.stack([m.centers for m in models]).astype(np.float32),
            table=np.stack([m.table for m in models]).astype(np.float32),
            assignments=np.stack([m.assignments for m in models], axis=1),
            calibrated=self.bayesian,
            metric_name=self.metric.name,
            train_time=train_time,
        )
