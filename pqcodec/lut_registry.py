"""
LUT Registry Module

Arena of distance tables addressed by stable handles, one slot per codec
"""

import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np

from .exceptions import RegistryError, PreconditionError, ConfigurationError

TABLE_WIDTH = 256 * 256


@dataclass(frozen=True)
class LUTHandle:
    """Registration order plus a stable key that survives persistence"""
    index: int
    key: str


@dataclass
class LUTEntry:
    table: Optional[np.ndarray] = None
    calibrated: bool = False
    metric_name: str = ""

    @property
    def is_empty(self) -> bool:
        return self.table is None

    @property
    def subspaces(self) -> int:
        return 0 if self.table is None else self.table.shape[0]


class LUTRegistry:
    """Keyed store of distance tables shared by codecs and distance evaluators"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._entries: Dict[str, LUTEntry] = {}
        self._handles: Dict[str, LUTHandle] = {}
        self._next_index = 0

    def register(self, key: Optional[str] = None) -> LUTHandle:
        """Append an empty slot and return its handle"""
        with self._lock:
            key = key or uuid.uuid4().hex
            if key in self._entries:
                raise RegistryError(f"LUT key already registered: {key}")
            handle = LUTHandle(index=self._next_index, key=key)
            self._next_index += 1
            self._entries[key] = LUTEntry()
            self._handles[key] = handle
        self.logger.debug(f"Registered LUT slot {handle.index} ({key})")
        return handle

    def _entry(self, handle: LUTHandle) -> LUTEntry:
        entry = self._entries.get(handle.key)
        if entry is None or self._handles[handle.key] != handle:
            raise RegistryError(f"Unknown or released LUT handle: {handle}")
        return entry

    def get(self, handle: LUTHandle) -> LUTEntry:
        return self._entry(handle)

    def table(self, handle: LUTHandle) -> np.ndarray:
        """Distance table of a populated slot"""
        entry = self._entry(handle)
        if entry.is_empty:
            raise PreconditionError(f"LUT slot {handle.index} is empty, train or load the codec first")
        return entry.table

    def set(self, handle: LUTHandle, table: np.ndarray, calibrated: bool = False,
            metric_name: str = "") -> None:
        """Store a (subspaces, 65536) table; the stored copy is read-only"""
        table = np.array(table, dtype=np.float32, copy=True)
        if table.ndim != 2 or table.shape[1] != TABLE_WIDTH or table.shape[0] == 0:
            raise ConfigurationError(f"Expected table of shape (subspaces, {TABLE_WIDTH}), got {table.shape}")
        if not np.all(np.isfinite(table)):
            raise ConfigurationError("Distance table contains NaN or Inf values")
        table.setflags(write=False)

        with self._lock:
            entry = self._entry(handle)
            entry.table = table
            entry.calibrated = calibrated
            entry.metric_name = metric_name

    def lookup(self, key: str) -> LUTHandle:
        try:
            return self._handles[key]
        except KeyError:
            raise RegistryError(f"Unknown LUT key: {key}")

    def release(self, handle: LUTHandle) -> None:
        """Drop one slot, e.g. on model unload"""
        with self._lock:
            self._entry(handle)
            del self._entries[handle.key]
            del self._handles[handle.key]
        self.logger.debug(f"Released LUT slot {handle.index} ({handle.key})")

    def clear(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._handles.clear()
        self.logger.info(f"LUT registry cleared ({count} slots)")

    def handles(self) -> List[LUTHandle]:
        return sorted(self._handles.values(), key=lambda h: h.index)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, handle: object) -> bool:
        return isinstance(handle, LUTHandle) and self._handles.get(handle.key) == handle
