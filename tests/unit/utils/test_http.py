import pytest
from flask import Flask
from werkzeug.exceptions import NotFound

from pumpguard.domain.exceptions import SensorReadError, StorageError
from pumpguard.utils.http import error_response, exception_response, safe_route, success_response


@pytest.fixture()
def ctx():
    app = Flask(__name__)
    with app.test_request_context("/api/status"):
        yield


def test_success_envelope(ctx):
    response = success_response({"soil": 2400}, message="Config applied but not persisted")

    assert response.status_code == 200
    assert response.get_json() == {
        "ok": True,
        "data": {"soil": 2400},
        "error": None,
        "message": "Config applied but not persisted",
    }


def test_error_envelope_carries_details(ctx):
    body = error_response("Invalid config payload", 400, details={"errors": ["dryOn"]}).get_json()

    assert body["ok"] is False
    assert body["data"] is None
    assert body["error"]["message"] == "Invalid config payload"
    assert body["error"]["details"] == {"errors": ["dryOn"]}
    assert "timestamp" in body["error"]


def test_unexpected_exception_is_hidden_behind_500(ctx):
    response = exception_response(KeyError("runtime"), "read pump status")

    assert response.status_code == 500
    assert response.get_json()["error"]["message"] == "Pump controller error"
    assert "runtime" not in response.get_data(as_text=True)


def test_pump_errors_use_their_status(ctx):
    response = exception_response(SensorReadError("adc timeout"))
    assert response.status_code == 503
    assert "adc timeout" not in response.get_data(as_text=True)

    response = exception_response(StorageError("disk full", detail={"path": "/var/config.json"}))
    assert response.status_code == 500
    assert "details" not in response.get_json()["error"]


def test_http_exceptions_keep_code_and_description(ctx):
    response = exception_response(NotFound("No such pump resource"))

    assert response.status_code == 404
    assert response.get_json()["error"]["message"] == "No such pump resource"


def test_safe_route_wraps_view_errors(ctx):
    @safe_route("read events")
    def view():
        raise RuntimeError("boom")

    response = view()

    assert response.status_code == 500
    assert response.get_json()["ok"] is False
