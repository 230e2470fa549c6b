"""
Status API
==========

Read-only snapshot of the pump runtime, its config and the telemetry history.
"""

import logging

from pumpguard.blueprints.api import pump_api
from pumpguard.blueprints.api._common import get_container, success
from pumpguard.utils.http import safe_route
from pumpguard.utils.time import iso_now

logger = logging.getLogger(__name__)


@pump_api.get("/status")
@safe_route("read pump status")
def get_status():
    """
    Latest published control-loop snapshot.

    Example Response:
        {
            "ok": true,
            "data": {
                "soil": 2450, "temp_c": 41.2, "load_pct": 7,
                "pump_on": false, "lockout": false, "state": "off", "duty": 0,
                "mode": 1, "window_sec": 600, "max_on_sec_window": 60,
                "on_time_window_ms": 12000, "ticks_ms": 734000,
                "hist_soil": [...], "hist_temp": [...], "hist_load": [...],
                "timestamp": "2026-01-01T00:00:00+00:00"
            },
            "error": null
        }
    """
    data = get_container().loop.snapshot.to_dict()
    data["timestamp"] = iso_now()
    return success(data)
