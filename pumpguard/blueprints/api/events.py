"""Recent audit events kept in memory by the event log."""

from flask import request
from pydantic import ValidationError

from pumpguard.blueprints.api import pump_api
from pumpguard.blueprints.api._common import fail, get_container, success
from pumpguard.schemas import EventsQuery
from pumpguard.utils.http import safe_route


@pump_api.get("/events")
@safe_route("read events")
def list_events():
    try:
        query = EventsQuery.model_validate(request.args.to_dict())
    except ValidationError as ve:
        errors = ve.errors(include_url=False, include_context=False)
        return fail("Invalid events query", 400, details={"errors": errors})
    records = get_container().event_log.recent(query.limit)
    return success([record.to_dict() for record in records])
