"""Fixed-width millisecond tick arithmetic.

All timestamps handled by the controller are unsigned 32-bit millisecond
counters that wrap after ~49.7 days. Durations must always be computed with
``ticks_diff`` on two values of that same width; comparing raw values or
widening only one side breaks at the wrap.
"""

from __future__ import annotations

import time
from typing import Callable

from pumpguard.constants import TICKS_MASK


def ticks(value: int) -> int:
    """Truncate an integer to the tick width."""
    return value & TICKS_MASK


def ticks_add(base: int, delta_ms: int) -> int:
    """Offset a tick value, wrapping at the counter width."""
    return (base + delta_ms) & TICKS_MASK


def ticks_diff(now: int, then: int) -> int:
    """Elapsed milliseconds from ``then`` to ``now`` (unsigned, wrap-safe)."""
    return (now - then) & TICKS_MASK


class MonotonicTicks:
    """Millisecond counter derived from a nanosecond monotonic clock, starting at zero."""

    def __init__(self, clock: Callable[[], int] = time.monotonic_ns, offset_ms: int = 0) -> None:
        self._clock = clock
        self._origin = clock()
        self._offset_ms = offset_ms

    def __call__(self) -> int:
        elapsed_ms = (self._clock() - self._origin) // 1_000_000
        return (elapsed_ms + self._offset_ms) & TICKS_MASK


class ManualTicks:
    """Hand-driven tick source for simulations and tests."""

    def __init__(self, start_ms: int = 0) -> None:
        self.now = ticks(start_ms)

    def __call__(self) -> int:
        return self.now

    def advance(self, delta_ms: int) -> int:
        self.now = ticks_add(self.now, delta_ms)
        return self.now

    def set(self, value_ms: int) -> int:
        self.now = ticks(value_ms)
        return self.now
