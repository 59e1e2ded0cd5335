from disaster_api.errors import NotFound, ValidationFailed
from disaster_api.response import error_response, success_response


def test_success_response_shape() -> None:
    payload = success_response({"id": 1}, {"count": 1})
    assert payload["success"] is True
    assert payload["data"] == {"id": 1}
    assert payload["meta"] == {"count": 1}


def test_success_response_defaults_meta() -> None:
    assert success_response([])["meta"] == {}


def test_error_response_shape() -> None:
    payload = error_response("NOT_FOUND", "missing")
    assert payload["success"] is False
    assert payload["error"]["code"] == "NOT_FOUND"
    assert payload["error"]["message"] == "missing"


def test_error_subclasses_carry_codes() -> None:
    invalid = ValidationFailed("radius", "too small")
    missing = NotFound("Disaster")

    assert (invalid.code, invalid.status_code, invalid.message) == ("VALIDATION_ERROR", 400, "radius: too small")
    assert invalid.field == "radius"
    assert (missing.code, missing.status_code, missing.message) == ("NOT_FOUND", 404, "Disaster not found")
