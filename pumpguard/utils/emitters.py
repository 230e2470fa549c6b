"""
WebSocket Emitters
==================

Pushes the control-loop status to Socket.IO clients on the ``/pump``
namespace, so dashboards do not have to poll ``/api/status``.

Events:
    pump_status  full status snapshot, at most once per ``min_interval_ms``
                 and immediately on any state change
    pump_event   one controller event (PUMP_ON, LOCKOUT_ENTER, ...)
"""

import logging
from typing import Optional

from flask_socketio import SocketIO

from pumpguard.control_loops.pump_loop import StatusSnapshot
from pumpguard.domain.pump import TickResult
from pumpguard.utils.ticks import ticks_diff

logger = logging.getLogger("emitters")

SOCKETIO_NAMESPACE_PUMP = "/pump"
WS_EVENT_STATUS = "pump_status"
WS_EVENT_PUMP = "pump_event"


class StatusEmitter:
    """Control-loop listener that forwards snapshots and events to Socket.IO."""

    def __init__(self, socketio: SocketIO, min_interval_ms: int = 1000):
        self.socketio = socketio
        self.min_interval_ms = min_interval_ms
        self._last_emit_ms: Optional[int] = None

    def __call__(self, snapshot: StatusSnapshot, result: TickResult) -> None:
        try:
            for event in result.events:
                self.socketio.emit(
                    WS_EVENT_PUMP,
                    {"ts_ms": snapshot.ticks_ms, "event": event.event.value, "detail": event.detail},
                    namespace=SOCKETIO_NAMESPACE_PUMP,
                )
            if self._due(snapshot.ticks_ms) or result.events:
                self._last_emit_ms = snapshot.ticks_ms
                self.socketio.emit(WS_EVENT_STATUS, snapshot.to_dict(), namespace=SOCKETIO_NAMESPACE_PUMP)
        except (RuntimeError, OSError, ValueError) as exc:
            # a broken socket must never stop the control loop
            logger.warning("Failed to emit pump status: %s", exc)

    def _due(self, now_ms: int) -> bool:
        return self._last_emit_ms is None or ticks_diff(now_ms, self._last_emit_ms) >= self.min_interval_ms
