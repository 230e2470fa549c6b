"""
Telemetry History
=================

Fixed-capacity ring buffers of recent samples (soil, temperature, load).

Three parallel arrays share one write index and one ``filled`` flag, so the
columns always advance in lockstep. The oldest sample is silently overwritten
on overflow; there is no way to recover it.

All logical-position -> physical-slot mapping lives in
``HistoryRecorder._slot``; callers read through ``iterate()`` or ``series()``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from pumpguard.constants import DEFAULT_HISTORY_CAPACITY, MAX_HISTORY_CAPACITY


@dataclass(frozen=True)
class HistorySample:
    soil: int
    temp_tenths_c: Optional[int] = None
    load_pct: int = 0


@dataclass(frozen=True)
class HistoryState:
    """Raw buffer contents, used for snapshots."""

    capacity: int
    index: int
    filled: bool
    soil: List[int]
    temp_tenths_c: List[Optional[int]]
    load_pct: List[int]


class HistoryView:
    """Chronological (oldest first) view over a recorder.

    Every ``iter()`` starts again from the oldest sample, so the view can be
    walked any number of times. It reads the live buffer; take ``list(view)``
    before the next append if a stable copy is needed.
    """

    def __init__(self, recorder: "HistoryRecorder") -> None:
        self._recorder = recorder

    def __len__(self) -> int:
        return len(self._recorder)

    def __iter__(self) -> Iterator[HistorySample]:
        recorder = self._recorder
        for position in range(len(recorder)):
            yield recorder._sample_at(recorder._slot(position))


class HistoryRecorder:
    """Append-only O(1) ring buffer of telemetry samples."""

    def __init__(self, capacity: int = DEFAULT_HISTORY_CAPACITY):
        if not 1 <= capacity <= MAX_HISTORY_CAPACITY:
            raise ValueError(f"History capacity must be within 1..{MAX_HISTORY_CAPACITY}, got {capacity}")
        self.capacity = capacity
        self.clear()

    def clear(self) -> None:
        """Reset to an empty, zeroed buffer."""
        self._soil: List[int] = [0] * self.capacity
        self._temp: List[Optional[int]] = [None] * self.capacity
        self._load: List[int] = [0] * self.capacity
        self._index = 0
        self._filled = False

    @property
    def index(self) -> int:
        return self._index

    @property
    def filled(self) -> bool:
        return self._filled

    def __len__(self) -> int:
        return self.capacity if self._filled else self._index

    def __iter__(self) -> Iterator[HistorySample]:
        return iter(self.iterate())

    def append(self, sample: HistorySample) -> None:
        slot = self._index
        self._soil[slot] = sample.soil
        self._temp[slot] = sample.temp_tenths_c
        self._load[slot] = sample.load_pct
        self._index = (slot + 1) % self.capacity
        if self._index == 0:
            self._filled = True

    def iterate(self) -> HistoryView:
        return HistoryView(self)

    def latest(self) -> Optional[HistorySample]:
        if len(self) == 0:
            return None
        return self._sample_at((self._index - 1) % self.capacity)

    def series(self) -> Dict[str, list]:
        """Column lists for status reporting, oldest first.

        Temperature is converted to degrees Celsius (None when missing).
        """
        soil: List[int] = []
        temp_c: List[Optional[float]] = []
        load: List[int] = []
        for sample in self.iterate():
            soil.append(sample.soil)
            temp_c.append(None if sample.temp_tenths_c is None else sample.temp_tenths_c / 10.0)
            load.append(sample.load_pct)
        return {"soil": soil, "temp_c": temp_c, "load_pct": load}

    def export_state(self) -> HistoryState:
        return HistoryState(
            capacity=self.capacity,
            index=self._index,
            filled=self._filled,
            soil=list(self._soil),
            temp_tenths_c=list(self._temp),
            load_pct=list(self._load),
        )

    def restore_state(self, state: HistoryState) -> None:
        """Replace the buffer with ``state``.

        Raises:
            ValueError: Capacity, column length or index does not match this
                recorder. Nothing is modified in that case.
        """
        if state.capacity != self.capacity:
            raise ValueError(f"Capacity mismatch: snapshot {state.capacity}, recorder {self.capacity}")
        columns = (state.soil, state.temp_tenths_c, state.load_pct)
        if any(len(column) != self.capacity for column in columns):
            raise ValueError("Snapshot column length does not match capacity")
        if not 0 <= state.index < self.capacity:
            raise ValueError(f"Snapshot index {state.index} out of range")

        self._soil = list(state.soil)
        self._temp = list(state.temp_tenths_c)
        self._load = list(state.load_pct)
        self._index = state.index
        self._filled = bool(state.filled)

    def _slot(self, position: int) -> int:
        if self._filled:
            return (self._index + position) % self.capacity
        return position

    def _sample_at(self, slot: int) -> HistorySample:
        return HistorySample(soil=self._soil[slot], temp_tenths_c=self._temp[slot], load_pct=self._load[slot])
