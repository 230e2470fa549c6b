"""
HistoryStore: binary snapshot of the telemetry ring buffer.

Layout (little-endian)::

    magic   u32   0xB0B0B0B0
    len     u16   capacity N
    idx     u16   write index
    filled  u8    0/1
    pad     3 bytes
    soil    i16[N]
    temp    i16[N]   tenths of a degree C, INT16_MIN when missing
    load    u8[N]

A blob with the wrong size, magic, capacity or an out-of-range index is
rejected as a whole and the recorder falls back to an empty buffer.
"""
from __future__ import annotations

import logging
import struct
from pathlib import Path
from typing import Union

from infrastructure.storage.files import read_bytes, write_bytes_atomic
from pumpguard.constants import HISTORY_MAGIC, TEMP_MISSING_SENTINEL
from pumpguard.domain.exceptions import StorageError
from pumpguard.domain.history import HistoryRecorder, HistoryState

logger = logging.getLogger(__name__)

_HEADER = struct.Struct("<IHHB3x")
_INT16_MIN, _INT16_MAX = -32768, 32767


def _int16(value: int) -> int:
    return max(_INT16_MIN, min(_INT16_MAX, int(value)))


def _uint8(value: int) -> int:
    return max(0, min(255, int(value)))


class HistoryStore:
    """Persists a ``HistoryRecorder`` of one fixed capacity."""

    def __init__(self, path: Union[str, Path], capacity: int):
        self.path = Path(path)
        self.capacity = capacity
        self._body = struct.Struct(f"<{capacity}h{capacity}h{capacity}B")

    @property
    def blob_size(self) -> int:
        return _HEADER.size + self._body.size

    def encode(self, state: HistoryState) -> bytes:
        # real readings stay above the missing marker
        temp = [
            TEMP_MISSING_SENTINEL if t is None else max(TEMP_MISSING_SENTINEL + 1, _int16(t))
            for t in state.temp_tenths_c
        ]
        header = _HEADER.pack(HISTORY_MAGIC, state.capacity, state.index, 1 if state.filled else 0)
        body = self._body.pack(
            *(_int16(s) for s in state.soil),
            *temp,
            *(_uint8(load) for load in state.load_pct),
        )
        return header + body

    def decode(self, blob: bytes) -> HistoryState:
        """
        Raises:
            ValueError: The blob does not describe a buffer of this capacity.
        """
        if len(blob) != self.blob_size:
            raise ValueError(f"size {len(blob)} != expected {self.blob_size}")
        magic, length, index, filled = _HEADER.unpack_from(blob, 0)
        if magic != HISTORY_MAGIC:
            raise ValueError(f"bad magic 0x{magic:08X}")
        if length != self.capacity:
            raise ValueError(f"capacity {length} != expected {self.capacity}")
        if index >= self.capacity:
            raise ValueError(f"index {index} out of range")

        values = self._body.unpack_from(blob, _HEADER.size)
        n = self.capacity
        return HistoryState(
            capacity=n,
            index=index,
            filled=filled != 0,
            soil=list(values[:n]),
            temp_tenths_c=[None if t == TEMP_MISSING_SENTINEL else t for t in values[n : 2 * n]],
            load_pct=list(values[2 * n :]),
        )

    def save(self, recorder: HistoryRecorder) -> bool:
        if recorder.capacity != self.capacity:
            logger.error("History capacity %s does not match store capacity %s", recorder.capacity, self.capacity)
            return False
        try:
            write_bytes_atomic(self.path, self.encode(recorder.export_state()))
        except StorageError as exc:
            logger.error("Failed to save history snapshot to %s: %s", self.path, exc)
            return False
        logger.debug("History snapshot saved to %s (%s samples)", self.path, len(recorder))
        return True

    def load(self, recorder: HistoryRecorder) -> bool:
        """
        Restore ``recorder`` from disk.

        Returns True when a snapshot was restored. On any failure the
        recorder is left empty and False is returned.
        """
        try:
            state = self.decode(read_bytes(self.path))
            recorder.restore_state(state)
        except FileNotFoundError:
            logger.info("No history snapshot at %s, starting empty", self.path)
            recorder.clear()
            return False
        except (StorageError, ValueError) as exc:
            logger.warning("Discarding history snapshot %s: %s", self.path, exc)
            recorder.clear()
            return False
        logger.info("History restored from %s (%s samples)", self.path, len(recorder))
        return True
