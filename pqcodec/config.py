"""
Configuration Module

Codec options loaded from the `codec:` section of a YAML config file
"""

import logging
from dataclasses import dataclass, asdict, replace
from typing import Dict, Any, Optional

from .exceptions import ConfigurationError
from .metrics import available_metrics
from .utils import load_config


@dataclass(frozen=True)
class CodecConfig:
    """Options recognized by the codec, with their defaults"""
    n: int = 2
    metric: str = "l2"
    bayesian: bool = False
    parallelism: bool = False
    niter: int = 10
    nredo: int = 3
    seed: int = 1234
    max_workers: Optional[int] = None
    sample_size: int = 256
    max_log_ratio: float = 50.0

    def __post_init__(self):
        if isinstance(self.metric, str):
            object.__setattr__(self, "metric", self.metric.lower())
        validate_parameters(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CodecConfig":
        """Build config from a plain dict, flattening the `calibration` subsection"""
        data = dict(data or {})
        calibration = data.pop("calibration", None) or {}
        if "sample_size" in calibration:
            data["sample_size"] = calibration["sample_size"]
        if "max_log_ratio" in calibration:
            data["max_log_ratio"] = calibration["max_log_ratio"]

        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown codec options: {unknown}")
        return cls(**data)

    def with_overrides(self, **overrides) -> "CodecConfig":
        """Copy of this config with some options replaced"""
        return replace(self, **overrides)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def validate_parameters(config: CodecConfig) -> None:
    """Validate parameter validity"""
    if not isinstance(config.n, int) or config.n <= 0:
        raise ConfigurationError(f"Invalid subspace width n={config.n}. n should be a positive integer")

    valid_metrics = available_metrics()
    if config.metric not in valid_metrics:
        raise ConfigurationError(f"Unsupported distance metric: {config.metric}. Supported: {valid_metrics}")

    if config.niter <= 0:
        raise ConfigurationError(f"Invalid niter: {config.niter}. niter should be positive")
    if config.nredo <= 0:
        raise ConfigurationError(f"Invalid nredo: {config.nredo}. nredo should be positive")
    if config.max_workers is not None and config.max_workers <= 0:
        raise ConfigurationError(f"Invalid max_workers: {config.max_workers}")
    if config.sample_size < 2:
        raise ConfigurationError(f"Invalid calibration sample_size: {config.sample_size}. Need at least 2")
    if not config.max_log_ratio > 0:
        raise ConfigurationError(f"Invalid calibration max_log_ratio: {config.max_log_ratio}")


def load_codec_config(config_path: str) -> CodecConfig:
    """Load codec config from a YAML file"""
    logger = logging.getLogger(__name__)
    try:
        config = load_config(config_path)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e
    codec_config = CodecConfig.from_dict(config.get("codec", {}))
    logger.info(f"Codec config loaded from {config_path}: {codec_config.to_dict()}")
    return codec_config
