from core.error_handler import StructuredLogger


def test_structured_logger_redacts_sensitive_keys():
    logger = StructuredLogger("tests")

    # allowlist: placeholder values, not real secrets
    data = {
        "google_maps_api_key": "placeholder_key",  # pragma: allowlist secret
        "phone": "+44 20 7420 9320",
        "provider": "google_maps",
        "request": {"authorization": "Bearer placeholder_token", "depth": 1},
    }
    sanitized = logger._sanitize_data(data)

    assert sanitized["google_maps_api_key"] == "[REDACTED]"
    assert sanitized["phone"] == "[REDACTED]"
    assert sanitized["provider"] == "google_maps"
    assert sanitized["request"] == {"authorization": "[REDACTED]", "depth": 1}


def test_structured_logger_header_like_redaction():
    logger = StructuredLogger("tests")

    header = {"name": "X-Goog-Api-Key", "value": "placeholder_key"}
    redacted = logger._redact_header_like(header)
    assert redacted["value"] == "[REDACTED]"
    assert redacted["name"] == "X-Goog-Api-Key"


def test_structured_logger_leaves_plain_headers():
    logger = StructuredLogger("tests")

    assert logger._redact_header_like({"name": "Accept", "value": "text/html"}) is None
