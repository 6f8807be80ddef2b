"""
Codec Context Module

Session object owning the LUT registry, the parallelism flag and default codec options
"""

import logging
from typing import Optional

from .codec import ProductQuantizationCodec
from .config import CodecConfig, load_codec_config
from .lut_registry import LUTRegistry
from .utils import load_config, setup_logging


class CodecContext:
    """Pass the same context to codecs and distance evaluators so they share tables"""

    def __init__(self, config: Optional[CodecConfig] = None,
                 parallelism: Optional[bool] = None):
        self.logger = logging.getLogger(__name__)
        self.config = config if config is not None else CodecConfig()
        self.parallelism = self.config.parallelism if parallelism is None else parallelism
        self.registry = LUTRegistry()

    @classmethod
    def from_config_file(cls, config_path: str, configure_logging: bool = False) -> "CodecContext":
        """Create a context from a YAML config, optionally applying its `logging` section"""
        if configure_logging:
            log_config = load_config(config_path).get("logging") or {}
            setup_logging(log_config.get("level", "INFO"), log_config.get("file"))
        return cls(load_codec_config(config_path))

    def create_codec(self, **overrides) -> ProductQuantizationCodec:
        """Construct a codec bound to this context, registering its LUT slot"""
        config = self.config.with_overrides(**overrides) if overrides else self.config
        return ProductQuantizationCodec(self, config)

    def close(self) -> None:
        self.registry.clear()

    def __enter__(self) -> "CodecContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
