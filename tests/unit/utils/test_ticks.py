import pytest

from pumpguard.constants import TICKS_MASK
from pumpguard.utils.ticks import ManualTicks, MonotonicTicks, ticks, ticks_add, ticks_diff


@pytest.mark.parametrize(
    "now, then, expected",
    [
        (5000, 0, 5000),
        (0, 0, 0),
        (999, TICKS_MASK - 1000, 2000),
        (0, TICKS_MASK, 1),
    ],
)
def test_ticks_diff_wraps(now, then, expected):
    assert ticks_diff(now, then) == expected


def test_ticks_add_and_truncate():
    assert ticks_add(TICKS_MASK, 1) == 0
    assert ticks(-1) == TICKS_MASK
    assert ticks(1 << 32) == 0


def test_manual_ticks():
    clock = ManualTicks(TICKS_MASK - 1)

    assert clock() == TICKS_MASK - 1
    assert clock.advance(3) == 1
    assert clock.set(-2) == TICKS_MASK - 1


def test_monotonic_ticks_from_fake_clock():
    now = [100_000_000_000]
    clock = MonotonicTicks(clock=lambda: now[0], offset_ms=TICKS_MASK)

    assert clock() == TICKS_MASK
    now[0] += 2_000_000
    assert clock() == 1


def test_monotonic_ticks_count_whole_milliseconds():
    now = [5_000_000_000]
    clock = MonotonicTicks(clock=lambda: now[0])

    now[0] += 1_999_999
    assert clock() == 1
    now[0] += 1
    assert clock() == 2
    now[0] += 997_000_000
    assert clock() == 999
