"""
Codec Store Module

Saves and loads {codebook, distance table} as one unit per codec, with JSON metadata
"""

import os
import shutil
import logging
import tempfile
from typing import Dict, Any, List, Optional

import numpy as np

from .codec import ProductQuantizationCodec
from .config import CodecConfig
from .exceptions import ModelFormatError, CalibrationError, PreconditionError
from .utils import ensure_dir, save_json, load_json, get_timestamp

ARRAYS_FILE = "codec.npz"
METADATA_FILE = "metadata.json"
FORMAT_VERSION = 1


class CodecStore:
    """Directory of persisted codec models, one sub-directory per model"""

    def __init__(self, models_dir: str = "./models"):
        """Initialize codec store"""
        self.logger = logging.getLogger(__name__)
        self.models_dir = models_dir
        ensure_dir(models_dir)
        self.logger.info(f"Models directory ensured: {models_dir}")

    def _model_path(self, model_name: str) -> str:
        return os.path.join(self.models_dir, model_name)

    def exists(self, model_name: str) -> bool:
        """Check if model exists"""
        model_path = self._model_path(model_name)
        return (os.path.exists(os.path.join(model_path, ARRAYS_FILE))
                and os.path.exists(os.path.join(model_path, METADATA_FILE)))

    def save(self, codec: ProductQuantizationCodec, model_name: str, overwrite: bool = False) -> str:
        """Save model and metadata; the model directory appears only when complete"""
        if not codec.is_trained:
            raise PreconditionError("Cannot save an untrained codec")

        model_path = self._model_path(model_name)
        if os.path.exists(model_path) and not overwrite:
            raise FileExistsError(f"Model already exists: {model_name}")

        self.logger.info(f"Saving model to: {model_path}")
        staging = tempfile.mkdtemp(prefix=f".{model_name}.", dir=self.models_dir)
        try:
            arrays_path = os.path.join(staging, ARRAYS_FILE)
            np.savez(arrays_path, codebook=codec.codebook, table=codec.table)

            metadata = {
                "format_version": FORMAT_VERSION,
                "handle_key": codec.handle.key,
                "handle_index": codec.handle.index,
                "calibrated": codec.calibrated,
                "n": codec.config.n,
                "metric": codec.config.metric,
                "dimension": codec.dimension,
                "subspaces": codec.subspaces,
                "config": codec.config.to_dict(),
                "train_time": codec.train_time,
                "saved_at": get_timestamp(),
                "arrays_size_mb": os.path.getsize(arrays_path) / 1024 / 1024,
            }
            save_json(metadata, os.path.join(staging, METADATA_FILE))

            if os.path.exists(model_path):
                shutil.rmtree(model_path)
            os.replace(staging, model_path)
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        self.logger.info(f"Model saved successfully: {model_name} (key {codec.handle.key})")
        return model_path

    def load(self, model_name: str, context, bayesian: Optional[bool] = None) -> ProductQuantizationCodec:
        """
        Load a model into `context`, registering it under its persisted key.

        bayesian: scoring mode the caller intends to use; a mismatch with the
        persisted calibration flag raises CalibrationError.
        """
        if not self.exists(model_name):
            raise ModelFormatError(f"Model files not found: {model_name}")

        model_path = self._model_path(model_name)
        self.logger.info(f"Loading model: {model_name}")

        try:
            metadata = load_json(os.path.join(model_path, METADATA_FILE))
            with np.load(os.path.join(model_path, ARRAYS_FILE)) as arrays:
                codebook = arrays["codebook"]
                table = arrays["table"]
        except (OSError, ValueError, KeyError) as e:
            raise ModelFormatError(f"Failed to read model {model_name}: {e}") from e

        self._validate(model_name, metadata, codebook, table)

        calibrated = bool(metadata["calibrated"])
        if bayesian is not None and bayesian != calibrated:
            raise CalibrationError(
                f"Model {model_name} was trained with bayesian={calibrated}, requested bayesian={bayesian}")

        config = CodecConfig.from_dict(metadata.get("config")).with_overrides(
            n=int(metadata["n"]), metric=metadata["metric"], bayesian=calibrated)

        codec = ProductQuantizationCodec(context, config, key=metadata["handle_key"])
        try:
            codec.restore(codebook, table, calibrated, metadata["metric"])
        except Exception:
            context.registry.release(codec.handle)
            raise
        codec.train_time = float(metadata.get("train_time", 0.0))

        self.logger.info(f"Model loaded successfully: {model_name}")
        self.logger.info(f"  Dimension: {codec.dimension}, subspaces: {codec.subspaces}, "
                         f"calibrated: {calibrated}, slot: {codec.handle.index}")
        return codec

    def _validate(self, model_name: str, metadata: Dict[str, Any],
                  codebook: np.ndarray, table: np.ndarray) -> None:
        missing = [key for key in ("handle_key", "calibrated", "n", "metric", "subspaces")
                   if key not in metadata]
        if missing:
            raise ModelFormatError(f"Model {model_name} metadata missing keys {missing}")

        subspaces = int(metadata["subspaces"])
        expected_codebook = (subspaces, 256, int(metadata["n"]))
        if codebook.shape != expected_codebook:
            raise ModelFormatError(
                f"Model {model_name} codebook shape {codebook.shape}, expected {expected_codebook}")
        if table.shape != (subspaces, 256 * 256):
            raise ModelFormatError(
                f"Model {model_name} table shape {table.shape}, expected {(subspaces, 256 * 256)}")
        if not np.all(np.isfinite(table)):
            raise ModelFormatError(f"Model {model_name} table contains NaN or Inf values")

    def list_models(self) -> List[Dict[str, Any]]:
        """List all saved models with their metadata"""
        models = []
        if not os.path.exists(self.models_dir):
            return models

        for model_name in sorted(os.listdir(self.models_dir)):
            if model_name.startswith(".") or not self.exists(model_name):
                continue
            try:
                metadata = load_json(os.path.join(self._model_path(model_name), METADATA_FILE))
            except (OSError, ValueError) as e:
                self.logger.warning(f"Failed to read model metadata {model_name}: {str(e)}")
                continue
            models.append({"model_name": model_name, "path": self._model_path(model_name), **metadata})
        return models

    def get_model_info(self, model_name: str) -> Optional[Dict[str, Any]]:
        """Get model information"""
        if not self.exists(model_name):
            self.logger.warning(f"Model not found: {model_name}")
            return None
        model_path = self._model_path(model_name)
        metadata = load_json(os.path.join(model_path, METADATA_FILE))
        metadata["model_path"] = model_path
        return metadata

    def delete_model(self, model_name: str) -> bool:
        """Delete model"""
        model_path = self._model_path(model_name)
        if not os.path.exists(model_path):
            self.logger.warning(f"Model does not exist: {model_name}")
            return False

        shutil.rmtree(model_path)
        self.logger.info(f"Model deleted: {model_name}")
        return True
