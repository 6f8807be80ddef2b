"""Unit tests for nearest-center encoding."""

import numpy as np
import pytest

from pqcodec.encoder import PQEncoder
from pqcodec.exceptions import ConfigurationError


@pytest.fixture
def codebook():
    rng = np.random.default_rng(4)
    return rng.normal(size=(3, 256, 2)).astype(np.float32)


class TestEncode:

    def test_code_length_and_type(self, codebook):
        encoder = PQEncoder(codebook)
        code = encoder.encode(np.zeros(6, dtype=np.float32))
        assert code.shape == (3,)
        assert code.dtype == np.uint8

    def test_center_encodes_to_its_index(self, codebook):
        encoder = PQEncoder(codebook)
        vector = np.concatenate([codebook[0, 17], codebook[1, 200], codebook[2, 255]])
        np.testing.assert_array_equal(encoder.encode(vector), [17, 200, 255])

    def test_tie_goes_to_first_center(self, codebook):
        codebook = codebook.copy()
        codebook[1, 7] = codebook[1, 3]
        encoder = PQEncoder(codebook)

        vector = np.concatenate([codebook[0, 0], codebook[1, 3], codebook[2, 0]])
        assert encoder.encode(vector)[1] == 3

    def test_equidistant_centers_tie_break(self):
        codebook = np.full((1, 256, 2), 100.0, dtype=np.float32)
        codebook[0, 40] = [1.0, 0.0]
        codebook[0, 12] = [-1.0, 0.0]
        assert PQEncoder(codebook).encode(np.zeros(2))[0] == 12

    def test_idempotent(self, codebook):
        encoder = PQEncoder(codebook)
        vector = np.random.default_rng(0).normal(size=6)
        np.testing.assert_array_equal(encoder.encode(vector), encoder.encode(vector))

    def test_batch_matches_single(self, codebook):
        encoder = PQEncoder(codebook)
        vectors = np.random.default_rng(1).normal(size=(5000, 6)).astype(np.float32)
        codes = encoder.encode_batch(vectors)

        assert codes.shape == (5000, 3)
        for row in (0, 4095, 4096, 4999):
            np.testing.assert_array_equal(codes[row], encoder.encode(vectors[row]))

    def test_wrong_length_raises(self, codebook):
        with pytest.raises(ConfigurationError, match="length 6"):
            PQEncoder(codebook).encode(np.zeros(5))

    def test_bad_codebook_shape_raises(self):
        with pytest.raises(ConfigurationError):
            PQEncoder(np.zeros((2, 128, 2)))


class TestDecode:

    def test_decode_returns_centers(self, codebook):
        encoder = PQEncoder(codebook)
        decoded = encoder.decode(np.array([1, 2, 3], dtype=np.uint8))
        np.testing.assert_array_equal(decoded, np.concatenate([codebook[0, 1], codebook[1, 2], codebook[2, 3]]))

    def test_decode_batch(self, codebook):
        encoder = PQEncoder(codebook)
        codes = np.array([[0, 0, 0], [255, 1, 2]], dtype=np.uint8)
        assert encoder.decode(codes).shape == (2, 6)
