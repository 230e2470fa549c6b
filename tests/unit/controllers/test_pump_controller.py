import random
from dataclasses import replace

from pumpguard.constants import SOFT_RAMP_MS, TICKS_MASK
from pumpguard.enums import PumpEvent, PumpMode, PumpState
from pumpguard.utils.ticks import ticks, ticks_diff


def _run(controller, config, runtime, start_ms, soil, count, step_ms=1000):
    """Tick ``count`` times with a constant soil reading; returns (runtime, results)."""
    results = []
    now = start_ms
    for _ in range(count):
        result = controller.tick(config, now, soil, runtime)
        runtime = result.runtime
        results.append((now, result))
        now = ticks(now + step_ms)
    return runtime, results


# ---------------------------------------------------------------------------
# AUTO hysteresis
# ---------------------------------------------------------------------------


def test_auto_turns_on_when_dry_and_dwell_satisfied(controller, pump_config, idle_runtime):
    result = controller.tick(pump_config, 0, 2500, idle_runtime())

    assert result.runtime.pump_on is True
    assert result.runtime.last_pump_change_ms == 0
    assert result.event_names == (PumpEvent.PUMP_ON,)
    assert result.command.duty == pump_config.pump_pwm


def test_auto_holds_off_until_min_off_elapsed(controller, pump_config, idle_runtime):
    runtime = idle_runtime(last_pump_change_ms=0)

    result = controller.tick(pump_config, 4999, 3000, runtime)
    assert result.runtime.pump_on is False
    assert result.events == ()

    result = controller.tick(pump_config, 5000, 3000, result.runtime)
    assert result.runtime.pump_on is True


def test_auto_turns_off_when_wet_and_min_on_elapsed(controller, pump_config, idle_runtime):
    runtime = idle_runtime(pump_on=True, last_pump_change_ms=0, last_tick_ms=4000)

    result = controller.tick(pump_config, 5000, 2200, runtime)

    assert result.runtime.pump_on is False
    assert result.event_names == (PumpEvent.PUMP_OFF,)
    assert result.command.duty == 0


def test_auto_keeps_running_until_min_on_elapsed(controller, pump_config, idle_runtime):
    runtime = idle_runtime(pump_on=True, last_pump_change_ms=0, last_tick_ms=0)

    result = controller.tick(pump_config, 4000, 1000, runtime)

    assert result.runtime.pump_on is True
    assert result.runtime.last_pump_change_ms == 0


def test_auto_holds_state_inside_hysteresis_band(controller, pump_config, idle_runtime):
    off = controller.tick(pump_config, 0, 2350, idle_runtime())
    assert off.runtime.pump_on is False

    on = controller.tick(pump_config, 0, 2350, idle_runtime(pump_on=True, last_tick_ms=0))
    assert on.runtime.pump_on is True
    assert on.events == ()


def test_tick_does_not_mutate_input_runtime(controller, pump_config, idle_runtime):
    runtime = idle_runtime()
    before = replace(runtime)

    result = controller.tick(pump_config, 0, 2600, runtime)

    assert runtime == before
    assert result.runtime is not runtime


def test_transitions_respect_dwell_times(controller, pump_config, idle_runtime):
    config = replace(pump_config, limit_window_sec=100_000, max_on_sec_in_window=100_000)
    rng = random.Random(42)
    runtime = idle_runtime()
    last_change = None
    last_state = runtime.pump_on
    now = 0

    for _ in range(3000):
        soil = rng.choice([2000, 2150, 2300, 2450, 2550, 2700])
        runtime = controller.tick(config, now, soil, runtime).runtime
        if runtime.pump_on != last_state:
            if last_change is not None:
                dwell = config.min_on_ms if last_state else config.min_off_ms
                assert now - last_change >= dwell
            last_change = now
            last_state = runtime.pump_on
        now += rng.choice([250, 500, 1000, 2000])

    assert last_change is not None


# ---------------------------------------------------------------------------
# Manual modes
# ---------------------------------------------------------------------------


def test_off_mode_stops_pump_regardless_of_dwell(controller, pump_config, idle_runtime):
    config = replace(pump_config, mode=PumpMode.OFF)
    runtime = idle_runtime(pump_on=True, last_pump_change_ms=0, last_tick_ms=0)

    result = controller.tick(config, 100, 4000, runtime)

    assert result.runtime.pump_on is False
    assert result.event_names == (PumpEvent.PUMP_OFF,)


def test_on_mode_runs_pump_on_wet_soil(controller, pump_config, idle_runtime):
    config = replace(pump_config, mode=PumpMode.ON)

    result = controller.tick(config, 0, 100, idle_runtime(last_pump_change_ms=0))

    assert result.runtime.pump_on is True


def test_on_mode_is_still_bound_by_duty_budget(controller, pump_config, idle_runtime):
    config = replace(pump_config, mode=PumpMode.ON, max_on_sec_in_window=5)

    runtime, results = _run(controller, config, idle_runtime(), 0, 100, 20)

    lockout_ticks = [now for now, r in results if PumpEvent.LOCKOUT_ENTER in r.event_names]
    assert lockout_ticks == [5000]
    assert runtime.pump_on is False
    assert runtime.lockout is True
    assert runtime.state is PumpState.LOCKOUT


# ---------------------------------------------------------------------------
# Duty-cycle limiter
# ---------------------------------------------------------------------------


def test_breach_tick_forces_off_and_clamps_accumulator(controller, pump_config, idle_runtime):
    runtime = idle_runtime(pump_on=True, on_time_this_window_ms=59_000, last_tick_ms=0, last_pump_change_ms=0)

    result = controller.tick(pump_config, 5000, 3000, runtime)

    assert result.runtime.pump_on is False
    assert result.runtime.lockout is True
    assert result.runtime.on_time_this_window_ms == pump_config.max_on_ms_in_window
    assert result.event_names == (PumpEvent.LOCKOUT_ENTER, PumpEvent.PUMP_OFF)


def test_lockout_holds_until_window_reset(controller, pump_config, idle_runtime):
    runtime = idle_runtime(lockout=True, on_time_this_window_ms=60_000, last_tick_ms=0)

    for now in (1000, 300_000, 599_999):
        result = controller.tick(pump_config, now, 4000, runtime)
        runtime = result.runtime
        assert runtime.pump_on is False
        assert runtime.lockout is True
        assert result.events == ()

    result = controller.tick(pump_config, 600_000, 4000, runtime)
    assert result.runtime.lockout is False
    assert result.runtime.window_start_ms == 600_000
    assert result.runtime.on_time_this_window_ms == 0
    assert result.runtime.pump_on is True
    assert result.event_names == (PumpEvent.LOCKOUT_CLEAR, PumpEvent.PUMP_ON)


def test_accumulator_never_exceeds_budget_after_breach(controller, pump_config, idle_runtime):
    runtime, results = _run(controller, pump_config, idle_runtime(), 0, 3000, 200, step_ms=700)

    budget = pump_config.max_on_ms_in_window
    assert all(r.runtime.on_time_this_window_ms <= budget for _, r in results)
    assert runtime.lockout is True


def test_window_reset_without_lockout_emits_nothing(controller, pump_config, idle_runtime):
    runtime = idle_runtime(on_time_this_window_ms=10_000, last_tick_ms=0)

    result = controller.tick(pump_config, 600_000, 2300, runtime)

    assert result.runtime.window_start_ms == 600_000
    assert result.runtime.on_time_this_window_ms == 0
    assert result.events == ()


def test_concrete_scenario(controller, pump_config, idle_runtime):
    runtime = idle_runtime(0)

    result = controller.tick(pump_config, 0, 2600, runtime)
    assert result.runtime.pump_on is True

    result = controller.tick(pump_config, 5000, 2100, result.runtime)
    assert result.runtime.pump_on is False
    assert result.runtime.on_time_this_window_ms == 5000

    runtime = result.runtime
    lockout_at = None
    now = 10_000
    while now < 600_000:
        result = controller.tick(pump_config, now, 2600, runtime)
        runtime = result.runtime
        if PumpEvent.LOCKOUT_ENTER in result.event_names:
            lockout_at = now
        if lockout_at is not None:
            assert runtime.pump_on is False
            assert runtime.lockout is True
        now += 1000

    # 5 s in the first run plus 55 s continuous from t=10 s
    assert lockout_at == 65_000
    assert runtime.on_time_this_window_ms == 60_000

    result = controller.tick(pump_config, 600_000, 2600, runtime)
    assert result.runtime.lockout is False
    assert result.runtime.pump_on is True


# ---------------------------------------------------------------------------
# Clock wraparound
# ---------------------------------------------------------------------------


def test_dwell_and_accumulator_survive_counter_wrap(controller, pump_config, idle_runtime):
    start = TICKS_MASK - 2999  # 3 s before the wrap
    runtime = idle_runtime(start)

    result = controller.tick(pump_config, start, 2600, runtime)
    assert result.runtime.pump_on is True

    result = controller.tick(pump_config, ticks(start + 4000), 2000, result.runtime)
    assert result.runtime.pump_on is True  # 4 s on, dwell not yet satisfied

    result = controller.tick(pump_config, ticks(start + 5000), 2000, result.runtime)
    assert result.runtime.pump_on is False
    assert result.runtime.last_pump_change_ms == 2000
    assert result.runtime.on_time_this_window_ms == 5000
    assert ticks_diff(result.runtime.last_pump_change_ms, start) == 5000


def test_window_reset_across_wrap(controller, pump_config, idle_runtime):
    start = TICKS_MASK - 100_000
    runtime = idle_runtime(start, lockout=True, last_tick_ms=start)

    result = controller.tick(pump_config, ticks(start + 599_999), 2600, runtime)
    assert result.runtime.lockout is True

    result = controller.tick(pump_config, ticks(start + 600_000), 2600, result.runtime)
    assert result.runtime.lockout is False


# ---------------------------------------------------------------------------
# Missing readings and commands
# ---------------------------------------------------------------------------


def test_missing_reading_holds_state_and_dwell_timer(controller, pump_config, idle_runtime):
    runtime = idle_runtime(pump_on=True, soil_now=2100, last_pump_change_ms=0, last_tick_ms=0)

    result = controller.tick(pump_config, 30_000, None, runtime)

    assert result.runtime.pump_on is True
    assert result.runtime.last_pump_change_ms == 0
    assert result.runtime.soil_now == 2100
    assert result.events == ()


def test_missing_reading_still_counts_duty(controller, pump_config, idle_runtime):
    runtime = idle_runtime(pump_on=True, on_time_this_window_ms=58_000, last_pump_change_ms=0, last_tick_ms=0)

    result = controller.tick(pump_config, 2000, None, runtime)

    assert result.runtime.lockout is True
    assert result.runtime.pump_on is False


def test_missing_reading_in_on_mode_holds_off_pump(controller, pump_config, idle_runtime):
    config = replace(pump_config, mode=PumpMode.ON)
    runtime = idle_runtime(last_pump_change_ms=0, last_tick_ms=0)

    result = controller.tick(config, 5000, None, runtime)

    assert result.runtime.pump_on is False
    assert result.command.duty == 0


def test_missing_reading_in_off_mode_stops_pump(controller, pump_config, idle_runtime):
    config = replace(pump_config, mode=PumpMode.OFF)
    runtime = idle_runtime(pump_on=True, last_pump_change_ms=0, last_tick_ms=0)

    result = controller.tick(config, 5000, None, runtime)

    assert result.runtime.pump_on is False


def test_soft_ramp_only_on_turn_on(controller, pump_config, idle_runtime):
    first = controller.tick(pump_config, 0, 2600, idle_runtime())
    assert first.command.ramp_ms == SOFT_RAMP_MS

    second = controller.tick(pump_config, 1000, 2600, first.runtime)
    assert second.command.ramp_ms == 0
    assert second.command.duty == pump_config.pump_pwm


def test_step_command_without_soft_ramp(controller, pump_config, idle_runtime):
    config = replace(pump_config, soft_ramp=False, pump_pwm=255)

    result = controller.tick(config, 0, 2600, idle_runtime())

    assert result.command.ramp_ms == 0
    assert result.command.duty == 255
