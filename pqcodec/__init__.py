"""
Product Quantization Codec Module

Compresses float feature vectors into one byte per subspace and scores codes
against each other through precomputed 256x256 center-distance lookup tables,
optionally calibrated into log-likelihood ratios.

References:
    - Jegou, H., et al. (2011). Product quantization for nearest neighbor search. IEEE TPAMI.
"""

# Core algorithm components
from .calibration import BayesianCalibrator
from .codec import ProductQuantizationCodec
from .config import CodecConfig, load_codec_config
from .context import CodecContext
from .encoder import PQEncoder
from .lut_registry import LUTRegistry, LUTHandle, LUTEntry
from .metrics import (
    DistanceMetric, EuclideanDistance, SquaredEuclideanDistance,
    ManhattanDistance, CosineDistance, get_metric
)
from .persistence import CodecStore
from .pq_builder import PQBuilder, SubspaceModel, TrainingResult
from .pq_searcher import ProductQuantizationDistance
from .splitter import split_subspaces, subspace_count

# Errors
from .exceptions import (
    PQCodecError, ConfigurationError, PreconditionError,
    CalibrationError, RegistryError, ModelFormatError
)

# Utility functions
from .utils import setup_logging, load_config

__version__ = "1.0.0"

__all__ = [
    "BayesianCalibrator",
    "ProductQuantizationCodec",
    "CodecConfig",
    "load_codec_config",
    "CodecContext",
    "PQEncoder",
    "LUTRegistry",
    "LUTHandle",
    "LUTEntry",
    "DistanceMetric",
    "EuclideanDistance",
    "SquaredEuclideanDistance",
    "ManhattanDistance",
    "CosineDistance",
    "get_metric",
    "CodecStore",
    "PQBuilder",
    "SubspaceModel",
    "TrainingResult",
    "ProductQuantizationDistance",
    "split_subspaces",
    "subspace_count",
    "PQCodecError",
    "ConfigurationError",
    "PreconditionError",
    "CalibrationError",
    "RegistryError",
    "ModelFormatError",
    "setup_logging",
    "load_config",
]
