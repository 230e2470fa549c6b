import csv
import io
import logging
import sys
import threading
from collections import deque
from dataclasses import asdict, dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Deque, Dict, List, Optional, Sequence, Union

from pumpguard.constants import EVENT_TAIL_DEFAULT
from pumpguard.enums import PumpEvent


class WindowsSafeRotatingFileHandler(RotatingFileHandler):
    """
    A RotatingFileHandler that works better on Windows by closing the file
    handle before rotation and catching PermissionError exceptions.
    """

    def doRollover(self):
        if self.stream:
            self.stream.close()
            self.stream = None
        try:
            super().doRollover()
        except PermissionError:
            # On Windows, file may still be locked. Skip rotation and continue logging.
            pass
        finally:
            if not self.stream:
                self.stream = self._open()


def _csv_line(values: Sequence[Any]) -> str:
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="").writerow(values)
    return buffer.getvalue()


class CsvLogSink:
    """Append-only CSV file written through a rotating, non-propagating logger."""

    header: Sequence[str] = ()
    logger_name = "pumpguard.csv"

    def __init__(self, log_path: Optional[Union[str, Path]], max_bytes: int = 10 * 1024 * 1024, backup_count: int = 5):
        self.log_path = Path(log_path) if log_path is not None else None
        # one logger per file so two sinks never share a handler
        name = self.logger_name if self.log_path is None else f"{self.logger_name}.{self.log_path.resolve()}"
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)
        self.logger.propagate = False
        self._handler: Optional[RotatingFileHandler] = None

        if self.log_path is None:
            return

        existing = next((h for h in self.logger.handlers if isinstance(h, RotatingFileHandler)), None)
        if existing is not None:
            self._handler = existing
            return

        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        if not self.log_path.exists() or self.log_path.stat().st_size == 0:
            self.log_path.write_text(_csv_line(self.header) + "\n", encoding="utf-8")

        handler_cls = WindowsSafeRotatingFileHandler if sys.platform == "win32" else RotatingFileHandler
        self._handler = handler_cls(
            filename=str(self.log_path),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        self._handler.setFormatter(logging.Formatter("%(message)s"))
        self.logger.addHandler(self._handler)

    def write_row(self, values: Sequence[Any]) -> None:
        if self._handler is not None:
            self.logger.info(_csv_line(values))

    def close(self) -> None:
        if self._handler is not None:
            self.logger.removeHandler(self._handler)
            self._handler.close()
            self._handler = None


@dataclass(frozen=True)
class EventRecord:
    ts_ms: int
    event: str
    detail: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class EventLog(CsvLogSink):
    """Audit sink for pump and config events: ``ts,event,detail`` rows.

    The most recent records are also kept in memory for the status API.
    """

    header = ("ts", "event", "detail")
    logger_name = "pumpguard.events"

    def __init__(
        self,
        log_path: Optional[Union[str, Path]] = None,
        clock: Optional[Callable[[], int]] = None,
        tail_size: int = EVENT_TAIL_DEFAULT,
    ) -> None:
        super().__init__(log_path)
        self.clock = clock
        self._tail: Deque[EventRecord] = deque(maxlen=tail_size)
        self._tail_lock = threading.Lock()
        self._app_logger = logging.getLogger(__name__)

    def record(self, event: Union[PumpEvent, str], detail: str = "", ts_ms: Optional[int] = None) -> EventRecord:
        if ts_ms is None:
            ts_ms = self.clock() if self.clock is not None else 0
        name = event.value if isinstance(event, PumpEvent) else str(event)
        entry = EventRecord(ts_ms=ts_ms, event=name, detail=detail)
        with self._tail_lock:
            self._tail.append(entry)
        self.write_row((entry.ts_ms, entry.event, entry.detail))
        self._app_logger.info("Event %s: %s", entry.event, entry.detail)
        return entry

    def recent(self, limit: Optional[int] = None) -> List[EventRecord]:
        """Most recent records, oldest first."""
        with self._tail_lock:
            records = list(self._tail)
        if limit is not None:
            records = records[-limit:] if limit > 0 else []
        return records


class SoilLog(CsvLogSink):
    """Periodic soil/pump data points: ``ts,soil_adc,pump_on,lockout,on_time_window_ms``."""

    header = ("ts", "soil_adc", "pump_on", "lockout", "on_time_window_ms")
    logger_name = "pumpguard.soil"

    def log_point(self, ts_ms: int, soil: int, pump_on: bool, lockout: bool, on_time_window_ms: int) -> None:
        self.write_row((ts_ms, soil, 1 if pump_on else 0, 1 if lockout else 0, on_time_window_ms))
