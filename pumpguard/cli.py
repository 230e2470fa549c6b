from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from infrastructure.logging.event_log import EventLog
from infrastructure.storage.config_store import ConfigStore
from pumpguard.config import load_config, setup_logging
from pumpguard.control_loops.pump_loop import PumpControlLoop
from pumpguard.domain.history import HistoryRecorder
from pumpguard.hardware.pump_driver import RecordingPumpDriver
from pumpguard.hardware.sensors import ScriptedSensorSampler
from pumpguard.utils.ticks import ManualTicks

logger = logging.getLogger(__name__)

# CLI option -> camelCase config key
_CONFIG_OPTIONS = {
    "dry_on": "dryOn",
    "wet_off": "wetOff",
    "pump_pwm": "pumpPwm",
    "min_on_ms": "minOnMs",
    "min_off_ms": "minOffMs",
    "limit_window_sec": "limitWindowSec",
    "max_on_sec": "maxOnSecInWindow",
    "log_period_ms": "logPeriodMs",
    "mode": "mode",
}


def _parse_soil_series(raw: str) -> List[Optional[int]]:
    """``"2600,2600,-,2100"`` -> readings; ``-`` marks a missing reading."""
    readings: List[Optional[int]] = []
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        if item == "-":
            readings.append(None)
            continue
        try:
            readings.append(int(item))
        except ValueError:
            raise argparse.ArgumentTypeError(f"invalid soil reading: {item!r}") from None
    if not readings:
        raise argparse.ArgumentTypeError("soil series is empty")
    return readings


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pumpguard", description="Soil-moisture pump controller")
    sub = parser.add_subparsers(dest="command")

    run = sub.add_parser("run", help="Start the control loop and the status/config API")
    run.add_argument("--host", help="HTTP bind address (default: PUMPGUARD_HTTP_HOST)")
    run.add_argument("--port", type=int, help="HTTP port (default: PUMPGUARD_HTTP_PORT)")

    sim = sub.add_parser("simulate", help="Replay a soil series against the controller with a fake clock")
    sim.add_argument("--soil", type=_parse_soil_series, required=True, help="Comma separated readings, '-' = missing")
    sim.add_argument("--step-ms", type=int, default=1000, help="Fake time between ticks")
    sim.add_argument("--ticks", type=int, help="Number of ticks (default: one per reading)")
    sim.add_argument("--start-ms", type=int, default=0, help="Initial tick counter value")
    sim.add_argument("--dry-on", type=int)
    sim.add_argument("--wet-off", type=int)
    sim.add_argument("--pump-pwm", type=int)
    sim.add_argument("--no-soft-ramp", action="store_true")
    sim.add_argument("--min-on-ms", type=int)
    sim.add_argument("--min-off-ms", type=int)
    sim.add_argument("--limit-window-sec", type=int)
    sim.add_argument("--max-on-sec", type=int)
    sim.add_argument("--log-period-ms", type=int)
    sim.add_argument("--mode", help="OFF, AUTO, ON or 0/1/2")
    sim.add_argument("-v", "--verbose", action="store_true", help="Print every tick, not only events")
    return parser


def run_server(args: argparse.Namespace) -> int:
    from pumpguard import create_app
    from pumpguard.extensions import socketio

    app = create_app(start_loop=True)
    config = app.config["CONTAINER"].config
    host = args.host or config.http_host
    port = args.port or config.http_port
    logger.info("PumpGuard API listening on %s:%s", host, port)
    socketio.run(app, host=host, port=port, debug=False, use_reloader=False, allow_unsafe_werkzeug=True)
    return 0


def simulate(args: argparse.Namespace, out=None) -> int:
    """Drive the full control loop in memory and print what happened."""
    out = out or sys.stdout
    clock = ManualTicks(args.start_ms)
    event_log = EventLog(None, clock=clock)
    store = ConfigStore(None, event_log=event_log)

    changes = {
        key: getattr(args, option) for option, key in _CONFIG_OPTIONS.items() if getattr(args, option) is not None
    }
    if args.no_soft_ramp:
        changes["softRamp"] = False
    if changes:
        store.update(changes)

    driver = RecordingPumpDriver()
    loop = PumpControlLoop(
        store,
        ScriptedSensorSampler(args.soil),
        driver,
        HistoryRecorder(),
        event_log=event_log,
        clock=clock,
    )

    ticks = args.ticks if args.ticks is not None else len(args.soil)
    print(f"config {store.current.to_mapping()}", file=out)
    for _ in range(ticks):
        result = loop.tick_once()
        rt = result.runtime
        for event in result.events:
            print(f"{clock.now:>10} {event.event.value:<14} {event.detail}", file=out)
        if args.verbose:
            print(
                f"{clock.now:>10} tick           soil={rt.soil_now} state={rt.state.value} "
                f"duty={result.command.duty} on_time_ms={rt.on_time_this_window_ms}",
                file=out,
            )
        clock.advance(args.step_ms)

    rt = loop.runtime
    print(
        f"final state={rt.state.value} on_time_ms={rt.on_time_this_window_ms} "
        f"window_start_ms={rt.window_start_ms} duty_writes={len(driver.writes)}",
        file=out,
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    config = load_config()
    if args.command == "run":
        setup_logging(config)
        return run_server(args)
    if args.command == "simulate":
        logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
        return simulate(args)

    parser.print_help()
    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
