import pytest

from pumpguard.domain.history import HistoryRecorder, HistorySample


def _samples(count, start=0):
    return [HistorySample(soil=start + i, temp_tenths_c=200 + i, load_pct=i % 100) for i in range(count)]


def test_empty_recorder():
    recorder = HistoryRecorder(4)

    assert len(recorder) == 0
    assert list(recorder.iterate()) == []
    assert recorder.latest() is None
    assert recorder.filled is False


def test_partial_fill_is_chronological():
    recorder = HistoryRecorder(5)
    for sample in _samples(3):
        recorder.append(sample)

    assert len(recorder) == 3
    assert recorder.index == 3
    assert [s.soil for s in recorder.iterate()] == [0, 1, 2]
    assert recorder.latest().soil == 2


def test_filled_flips_exactly_on_nth_append_and_stays():
    recorder = HistoryRecorder(4)
    samples = _samples(11)

    for count, sample in enumerate(samples, start=1):
        recorder.append(sample)
        assert recorder.filled is (count >= 4)
        assert 0 <= recorder.index < recorder.capacity


@pytest.mark.parametrize("extra", [1, 3, 4, 9])
def test_overflow_keeps_last_n_oldest_first(extra):
    capacity = 4
    recorder = HistoryRecorder(capacity)
    samples = _samples(capacity + extra)
    for sample in samples:
        recorder.append(sample)

    assert list(recorder.iterate()) == samples[-capacity:]
    assert len(recorder) == capacity


def test_view_is_restartable_and_tracks_live_buffer():
    recorder = HistoryRecorder(3)
    for sample in _samples(2):
        recorder.append(sample)
    view = recorder.iterate()

    assert list(view) == list(view)
    recorder.append(HistorySample(soil=99))
    assert [s.soil for s in view] == [0, 1, 99]
    assert len(view) == 3


def test_columns_advance_in_lockstep():
    recorder = HistoryRecorder(3)
    recorder.append(HistorySample(soil=10, temp_tenths_c=None, load_pct=5))
    recorder.append(HistorySample(soil=20, temp_tenths_c=215, load_pct=6))

    series = recorder.series()

    assert series == {"soil": [10, 20], "temp_c": [None, 21.5], "load_pct": [5, 6]}


def test_clear_resets_buffer():
    recorder = HistoryRecorder(2)
    for sample in _samples(5):
        recorder.append(sample)

    recorder.clear()

    assert len(recorder) == 0
    assert recorder.filled is False
    assert recorder.index == 0


def test_export_restore_round_trip():
    source = HistoryRecorder(4)
    for sample in _samples(6):
        source.append(sample)

    target = HistoryRecorder(4)
    target.restore_state(source.export_state())

    assert list(target.iterate()) == list(source.iterate())
    assert target.filled is True
    assert target.index == source.index


def test_restore_rejects_mismatched_state_without_changes():
    recorder = HistoryRecorder(4)
    recorder.append(HistorySample(soil=1))
    other = HistoryRecorder(8)

    with pytest.raises(ValueError):
        recorder.restore_state(other.export_state())

    assert [s.soil for s in recorder.iterate()] == [1]


@pytest.mark.parametrize("capacity", [0, -1, 70000])
def test_capacity_bounds(capacity):
    with pytest.raises(ValueError):
        HistoryRecorder(capacity)
