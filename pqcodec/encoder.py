"""
Encoder Module

Maps vectors to one byte per subspace (index of the nearest center)
"""

import numpy as np

from .exceptions import ConfigurationError

NUM_CENTERS = 256


class PQEncoder:
    """Nearest-center encoder over a trained codebook"""

    BATCH_SIZE = 4096

    def __init__(self, codebook: np.ndarray):
        codebook = np.asarray(codebook, dtype=np.float32)
        if codebook.ndim != 3 or codebook.shape[1] != NUM_CENTERS or codebook.shape[0] == 0:
            raise ConfigurationError(f"Expected codebook of shape (subspaces, {NUM_CENTERS}, n), got {codebook.shape}")
        self.codebook = codebook
        self.subspaces, _, self.n = codebook.shape
        self.dimension = self.subspaces * self.n

    def encode_batch(self, vectors: np.ndarray) -> np.ndarray:
        """Encode (N, D) vectors to (N, subspaces) uint8 codes"""
        vectors = np.asarray(vectors, dtype=np.float32)
        if vectors.ndim != 2 or vectors.shape[1] != self.dimension:
            raise ConfigurationError(
                f"Expected vectors of dimension {self.dimension}, got shape {vectors.shape}")

        sub = vectors.reshape(vectors.shape[0], self.subspaces, self.n)
        codes = np.empty((vectors.shape[0], self.subspaces), dtype=np.uint8)
        for start in range(0, vectors.shape[0], self.BATCH_SIZE):
            block = sub[start:start + self.BATCH_SIZE]
            for s in range(self.subspaces):
                diff = block[:, s, None, :].astype(np.float64) - self.codebook[s][None, :, :]
                dists = np.sum(diff ** 2, axis=2)
                # argmin keeps the first minimum, so ties go to the lowest center index
                codes[start:start + block.shape[0], s] = np.argmin(dists, axis=1)
        return codes

    def encode(self, vector: np.ndarray) -> np.ndarray:
        """Encode one vector of length D"""
        vector = np.asarray(vector, dtype=np.float32).reshape(-1)
        if vector.shape[0] != self.dimension:
            raise ConfigurationError(f"Expected vector of length {self.dimension}, got {vector.shape[0]}")
        return self.encode_batch(vector.reshape(1, -1))[0]

    def decode(self, codes: np.ndarray) -> np.ndarray:
        """
        Reconstruct approximate vectors from codes.

        codes: (subspaces,) or (N, subspaces); returns (D,) or (N, D) float32
        """
        codes = np.asarray(codes)
        single = codes.ndim == 1
        if single:
            codes = codes.reshape(1, -1)
        if codes.shape[1] != self.subspaces:
            raise ConfigurationError(f"Expected codes of length {self.subspaces}, got {codes.shape[1]}")

        approx = np.empty((codes.shape[0], self.subspaces, self.n), dtype=np.float32)
        for s in range(self.subspaces):
            approx[:, s, :] = self.codebook[s][codes[:, s]]
        approx = approx.reshape(codes.shape[0], -1)
        return approx[0] if single else approx
