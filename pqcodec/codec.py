"""
Product Quantization Codec Module

A codec instance owns its codebook and one LUT registry slot in its context
"""

import logging
from typing import Optional

import numpy as np

from .calibration import BayesianCalibrator
from .config import CodecConfig
from .encoder import PQEncoder
from .exceptions import PreconditionError, ConfigurationError
from .lut_registry import LUTHandle
from .metrics import get_metric
from .pq_builder import PQBuilder, TrainingResult, NUM_CENTERS
from .pq_searcher import ProductQuantizationDistance


class ProductQuantizationCodec:
    """Product quantization (Jegou et al., 2011) with a center-to-center lookup table"""

    def __init__(self, context, config: Optional[CodecConfig] = None, key: Optional[str] = None):
        self.logger = logging.getLogger(__name__)
        self.context = context
        self.config = config if config is not None else context.config
        self.metric = get_metric(self.config.metric)
        self.handle: LUTHandle = context.registry.register(key)
        self._encoder: Optional[PQEncoder] = None
        self.train_time = 0.0

    @property
    def is_trained(self) -> bool:
        return self._encoder is not None

    def _require_trained(self) -> PQEncoder:
        if self._encoder is None:
            raise PreconditionError("Codec must be trained or loaded before use")
        return self._encoder

    @property
    def codebook(self) -> np.ndarray:
        return self._require_trained().codebook

    @property
    def table(self) -> np.ndarray:
        return self.context.registry.table(self.handle)

    @property
    def calibrated(self) -> bool:
        return self.context.registry.get(self.handle).calibrated

    @property
    def subspaces(self) -> int:
        return self._require_trained().subspaces

    @property
    def dimension(self) -> int:
        return self._require_trained().dimension

    def make_builder(self) -> PQBuilder:
        config = self.config
        calibrator = BayesianCalibrator(sample_size=config.sample_size,
                                        max_log_ratio=config.max_log_ratio,
                                        seed=config.seed)
        return PQBuilder(metric=self.metric, n=config.n, bayesian=config.bayesian,
                         parallelism=self.context.parallelism, niter=config.niter,
                         nredo=config.nredo, seed=config.seed,
                         max_workers=config.max_workers, calibrator=calibrator)

    def train(self, data: np.ndarray, labels=None) -> TrainingResult:
        """Train codebook and table; on failure the codec is left untouched"""
        result = self.make_builder().train(data, labels)
        self.restore(result.codebook, result.table, result.calibrated, result.metric_name)
        self.train_time = result.train_time
        self.logger.info(f"Codec slot {self.handle.index} trained: subspaces={result.subspaces}, "
                         f"calibrated={result.calibrated}")
        return result

    def restore(self, codebook: np.ndarray, table: np.ndarray, calibrated: bool,
                metric_name: str = "") -> None:
        """Install a codebook and its table, e.g. from a persisted model"""
        codebook = np.array(codebook, dtype=np.float32, copy=True)
        if codebook.ndim != 3 or codebook.shape[1] != NUM_CENTERS:
            raise ConfigurationError(f"Expected codebook of shape (subspaces, {NUM_CENTERS}, n), got {codebook.shape}")
        if codebook.shape[2] != self.config.n:
            raise ConfigurationError(f"Codebook subspace width {codebook.shape[2]} does not match n={self.config.n}")
        if np.asarray(table).shape[0] != codebook.shape[0]:
            raise ConfigurationError(
                f"Codebook has {codebook.shape[0]} subspaces but table has {np.asarray(table).shape[0]}")

        self.context.registry.set(self.handle, table, calibrated, metric_name or self.metric.name)
        codebook.setflags(write=False)
        self._encoder = PQEncoder(codebook)

    def encode(self, vector: np.ndarray) -> np.ndarray:
        return self._require_trained().encode(vector)

    def encode_batch(self, vectors: np.ndarray) -> np.ndarray:
        return self._require_trained().encode_batch(vectors)

    def decode(self, codes: np.ndarray) -> np.ndarray:
        return self._require_trained().decode(codes)

    def distance(self, bayesian: Optional[bool] = None) -> ProductQuantizationDistance:
        """Distance evaluator reading this codec's table"""
        flag = self.config.bayesian if bayesian is None else bayesian
        return ProductQuantizationDistance(self.context, self.handle, bayesian=flag)

    def unload(self) -> None:
        """Release the registry slot and drop the codebook"""
        self.context.registry.release(self.handle)
        self._encoder = None
        self.logger.info(f"Codec slot {self.handle.index} unloaded")

    def __repr__(self) -> str:
        state = f"subspaces={self.subspaces}" if self.is_trained else "untrained"
        return (f"ProductQuantizationCodec(n={self.config.n}, metric={self.metric.name}, "
                f"bayesian={self.config.bayesian}, slot={self.handle.index}, {state})")
