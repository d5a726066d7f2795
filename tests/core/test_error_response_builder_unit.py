import json

from core.error_handler import _build_error_response


def test_build_error_response_production_hides_optional_fields():
    resp = _build_error_response(
        correlation_id="cid",
        error_type="extraction_failed",
        message="Could not extract a place from this URL",
        environment="production",
        details={"error_code": "extraction_failed"},
        traceback_str="trace",
        exception_type="ExtractionFailedError",
        validation_errors={"x": 1},
        status_code=502,
    )
    # The JSONResponse produced here stores the rendered bytes in `body`
    body = json.loads(resp.body)

    assert resp.status_code == 502
    # In production only correlation_id and type should be present in error
    assert body["success"] is False
    assert body["message"] == "Could not extract a place from this URL"
    assert body["error"]["correlation_id"] == "cid"
    assert body["error"]["type"] == "extraction_failed"
    assert "details" not in body["error"]
    assert "traceback" not in body["error"]
    assert "exception_type" not in body["error"]
    assert "validation_errors" not in body["error"]


def test_build_error_response_development_includes_optional_fields():
    resp = _build_error_response(
        correlation_id="cid",
        error_type="extraction_failed",
        message="Could not extract a place from this URL",
        environment="development",
        details={"error_code": "extraction_failed"},
        traceback_str="trace",
        exception_type="ExtractionFailedError",
        validation_errors={"x": 1},
        status_code=502,
    )
    # Read rendered body bytes directly (Starlette/fastapi versions differ)
    body = json.loads(resp.body)

    assert resp.status_code == 502
    # Development environment exposes additional fields
    assert body["error"]["details"] == {"error_code": "extraction_failed"}
    assert "traceback" in body["error"]
    assert body["error"]["exception_type"] == "ExtractionFailedError"
    assert body["error"]["validation_errors"] == {"x": 1}
