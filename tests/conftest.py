"""
Shared pytest fixtures for codec tests.

Training is the expensive step, so trained codecs are module scoped and
tests must not mutate them.
"""

from pathlib import Path

import numpy as np
import pytest

from pqcodec import CodecContext, CodecConfig

CONFIG_DIR = Path(__file__).resolve().parent.parent / "configs"


def make_labeled_data(rows: int = 1000, dim: int = 8, classes: int = 3,
                      spread: float = 4.0, noise: float = 0.5, seed: int = 7):
    """Gaussian blobs, one per class, separated along every dimension"""
    rng = np.random.default_rng(seed)
    labels = np.arange(rows) % classes
    means = labels[:, None] * spread
    data = means + rng.normal(scale=noise, size=(rows, dim))
    return data.astype(np.float32), labels.astype(np.int64)


@pytest.fixture(scope="module")
def training_data():
    return make_labeled_data()


@pytest.fixture
def context():
    with CodecContext(CodecConfig(seed=11)) as ctx:
        yield ctx


@pytest.fixture(scope="module")
def trained_context(training_data):
    data, _ = training_data
    with CodecContext(CodecConfig(seed=11)) as ctx:
        codec = ctx.create_codec()
        codec.train(data)
        yield ctx, codec


@pytest.fixture(scope="module")
def calibrated_context(training_data):
    data, labels = training_data
    with CodecContext(CodecConfig(seed=11, bayesian=True)) as ctx:
        codec = ctx.create_codec()
        codec.train(data, labels)
        yield ctx, codec


@pytest.fixture
def default_config_path() -> Path:
    return CONFIG_DIR / "default_config.yaml"
