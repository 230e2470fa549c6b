import pytest

from pumpguard.domain.pump import PumpCommand, PumpConfig, PumpRuntime
from pumpguard.enums import PumpMode, PumpState


def test_defaults_match_compiled_values():
    config = PumpConfig()

    assert config.to_mapping() == {
        "dryOn": 2500,
        "wetOff": 2200,
        "pumpPwm": 180,
        "softRamp": True,
        "minOnMs": 5000,
        "minOffMs": 5000,
        "limitWindowSec": 600,
        "maxOnSecInWindow": 60,
        "logPeriodMs": 10000,
        "mode": 1,
    }
    assert config.limit_window_ms == 600_000
    assert config.max_on_ms_in_window == 60_000


def test_merged_coerces_wire_values_and_ignores_unknown_keys():
    config = PumpConfig().merged(
        {"dryOn": "2600", "softRamp": "0", "mode": "ON", "minOnMs": 7000.0, "bogus": 1, "wetOff": None}
    )

    assert config.dry_on == 2600
    assert config.soft_ramp is False
    assert config.mode is PumpMode.ON
    assert config.min_on_ms == 7000
    assert config.wet_off == 2200


def test_legacy_log_period_key_is_accepted():
    assert PumpConfig.from_mapping({"soilLogPeriodMs": 30000}).log_period_ms == 30000


@pytest.mark.parametrize("changes", [{"dryOn": "wet"}, {"pumpPwm": 1.5}, {"softRamp": "maybe"}])
def test_merged_rejects_wrong_types(changes):
    with pytest.raises(ValueError):
        PumpConfig().merged(changes)


def test_diff_reports_camel_case_changes():
    before = PumpConfig()
    after = before.merged({"dryOn": 2700, "mode": 0})

    assert before.diff(after) == {"dryOn": (2500, 2700), "mode": (1, 0)}


@pytest.mark.parametrize(
    "value, expected",
    [(0, PumpMode.OFF), ("2", PumpMode.ON), ("auto", PumpMode.AUTO), (9, PumpMode.AUTO), ("x", PumpMode.AUTO)],
)
def test_mode_coerce(value, expected):
    assert PumpMode.coerce(value) is expected


def test_runtime_state_and_boot():
    runtime = PumpRuntime.at_boot(1234)

    assert runtime.window_start_ms == 1234
    assert runtime.last_pump_change_ms == 1234
    assert runtime.last_tick_ms is None
    assert runtime.state is PumpState.OFF
    runtime.pump_on = True
    assert runtime.to_dict()["state"] == "on"
    runtime.lockout = True
    assert runtime.state is PumpState.LOCKOUT


def test_command_linear_ramp_is_bounded():
    command = PumpCommand(pump_on=True, duty=180, ramp_ms=1000)

    assert command.duty_at(-5) == 0
    assert command.duty_at(0) == 0
    assert command.duty_at(500) == 90
    assert command.duty_at(1000) == 180
    assert command.duty_at(5000) == 180


def test_off_command():
    command = PumpCommand.for_state(PumpConfig(), pump_on=False, just_turned_on=False)

    assert command == PumpCommand.off()
    assert command.duty_at(10) == 0
