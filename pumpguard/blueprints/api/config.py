"""
Pump Config API
===============

Read and update the pump thresholds. Every update goes through
``ConfigStore.update`` (validate, then save); the control loop picks the new
config up on its next tick.
"""

import logging

from flask import request
from pydantic import ValidationError

from pumpguard.blueprints.api import pump_api
from pumpguard.blueprints.api._common import fail, get_container, get_json, success
from pumpguard.schemas import ConfigUpdateRequest
from pumpguard.utils.http import safe_route

logger = logging.getLogger(__name__)


@pump_api.get("/config")
@safe_route("read pump config")
def get_config():
    """Current validated config, camelCase keys, mode as 0/1/2."""
    return success(get_container().config_store.current.to_mapping())


@pump_api.post("/config")
@safe_route("update pump config")
def update_config():
    """
    Partial config update from a JSON body or from query/form arguments.

    Values outside their documented range are clamped, not rejected; values
    of the wrong type are a 400.

    Request Body (all fields optional):
        {"dryOn": 2600, "wetOff": 2300, "pumpPwm": 200, "softRamp": true,
         "minOnMs": 5000, "minOffMs": 5000, "limitWindowSec": 600,
         "maxOnSecInWindow": 60, "logPeriodMs": 10000, "mode": 1}
    """
    try:
        if request.is_json:
            payload = ConfigUpdateRequest.model_validate(get_json())
        else:
            payload = ConfigUpdateRequest.from_form({**request.args.to_dict(), **request.form.to_dict()})
    except ValidationError as ve:
        errors = ve.errors(include_url=False, include_context=False)
        return fail("Invalid config payload", 400, details={"errors": errors})

    store = get_container().config_store
    config = store.update(payload.to_changes())
    return success(config.to_mapping(), message=None if store.last_save_ok else "Config applied but not persisted")


@pump_api.post("/config/reload")
@safe_route("reload pump config")
def reload_config():
    """Forced reload of the persisted config from disk."""
    config = get_container().config_store.reload()
    return success(config.to_mapping())
