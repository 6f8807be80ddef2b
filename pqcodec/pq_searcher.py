"""
PQ Searcher Module

Approximate distance between product-quantized codes through the shared lookup tables
"""

import logging
from typing import List, Sequence, Union

import numpy as np

from .exceptions import PreconditionError, CalibrationError
from .lut_registry import LUTHandle

NUM_CENTERS = 256


class ProductQuantizationDistance:
    """
    Sums table[s][a_s][b_s] over subspaces.

    Without calibration the accumulated distance is mapped to the similarity
    -log(sum + 1); calibrated tables already hold log-likelihood ratios and
    their sum is returned as is. The flag must match how the table was trained.

    A template may consist of several parts, each encoded by a different codec;
    pass one handle per part and use `compare_parts`.
    """

    def __init__(self, context, handles: Union[LUTHandle, Sequence[LUTHandle]],
                 bayesian: bool = False):
        self.logger = logging.getLogger(__name__)
        self.context = context
        self.handles: List[LUTHandle] = [handles] if isinstance(handles, LUTHandle) else list(handles)
        if not self.handles:
            raise PreconditionError("Distance needs at least one LUT handle")
        self.bayesian = bayesian

        for handle in self.handles:
            entry = context.registry.get(handle)
            if not entry.is_empty:
                self._check_calibration(handle, entry.calibrated)

    @classmethod
    def for_codecs(cls, context, codecs, bayesian: bool = False) -> "ProductQuantizationDistance":
        return cls(context, [codec.handle for codec in codecs], bayesian=bayesian)

    def _check_calibration(self, handle: LUTHandle, calibrated: bool) -> None:
        if calibrated != self.bayesian:
            raise CalibrationError(
                f"LUT slot {handle.index} calibrated={calibrated} but distance expects bayesian={self.bayesian}")

    def _table(self, handle: LUTHandle) -> np.ndarray:
        entry = self.context.registry.get(handle)
        if entry.is_empty:
            raise PreconditionError(f"LUT slot {handle.index} is empty, train or load the codec first")
        self._check_calibration(handle, entry.calibrated)
        return entry.table

    @staticmethod
    def _check_range(codes: np.ndarray) -> None:
        if codes.size and (codes.min() < 0 or codes.max() >= NUM_CENTERS):
            raise PreconditionError(
                f"Code values must lie in [0, {NUM_CENTERS - 1}], got [{codes.min()}, {codes.max()}]")

    def _codes(self, code: np.ndarray, subspaces: int) -> np.ndarray:
        code = np.asarray(code).reshape(-1).astype(np.int64)
        if code.shape[0] != subspaces:
            raise PreconditionError(f"Expected code of length {subspaces}, got {code.shape[0]}")
        self._check_range(code)
        return code

    def _part_sum(self, handle: LUTHandle, code_a: np.ndarray, code_b: np.ndarray) -> float:
        table = self._table(handle)
        subspaces = table.shape[0]
        a = self._codes(code_a, subspaces)
        b = self._codes(code_b, subspaces)
        return float(np.sum(table[np.arange(subspaces), a * NUM_CENTERS + b], dtype=np.float64))

    def _transform(self, distance):
        if self.bayesian:
            return distance
        return -np.log(distance + 1)

    def raw_distance(self, code_a: np.ndarray, code_b: np.ndarray) -> float:
        """Accumulated table value without the similarity transform"""
        return self._part_sum(self.handles[0], code_a, code_b)

    def compare(self, code_a: np.ndarray, code_b: np.ndarray) -> float:
        if len(self.handles) != 1:
            raise PreconditionError(f"Distance has {len(self.handles)} parts, use compare_parts")
        return float(self._transform(self.raw_distance(code_a, code_b)))

    def compare_parts(self, parts_a: Sequence[np.ndarray], parts_b: Sequence[np.ndarray]) -> float:
        """Compare multi-part templates, part p scored with handle p"""
        if len(parts_a) != len(self.handles) or len(parts_b) != len(self.handles):
            raise PreconditionError(
                f"Expected {len(self.handles)} parts, got {len(parts_a)} and {len(parts_b)}")
        distance = sum(self._part_sum(handle, a, b)
                       for handle, a, b in zip(self.handles, parts_a, parts_b))
        return float(self._transform(distance))

    def score_matrix(self, queries: np.ndarray, gallery: np.ndarray) -> np.ndarray:
        """Scores of every query code against every gallery code, shape (Q, G)"""
        if len(self.handles) != 1:
            raise PreconditionError(f"Distance has {len(self.handles)} parts, score parts separately")
        table = self._table(self.handles[0])
        subspaces = table.shape[0]

        queries = np.atleast_2d(np.asarray(queries)).astype(np.int64)
        gallery = np.atleast_2d(np.asarray(gallery)).astype(np.int64)
        if queries.shape[1] != subspaces or gallery.shape[1] != subspaces:
            raise PreconditionError(
                f"Expected codes of length {subspaces}, got {queries.shape[1]} and {gallery.shape[1]}")
        self._check_range(queries)
        self._check_range(gallery)

        scores = np.zeros((queries.shape[0], gallery.shape[0]), dtype=np.float64)
        for s in range(subspaces):
            scores += table[s][queries[:, s, None] * NUM_CENTERS + gallery[None, :, s]]

        self.logger.debug(f"Scored {queries.shape[0]} x {gallery.shape[0]} codes")
        return self._transform(scores).astype(np.float32)
