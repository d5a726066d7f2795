"""Focused unit tests for global exception handling behaviors.

These tests exercise the public contract via FastAPI test app using the installed
exception handler and ExceptionNormalizationMiddleware.
"""

from __future__ import annotations

from unittest.mock import patch

from fastapi import FastAPI, HTTPException, status
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient
from pydantic import BaseModel, Field

from core.error_handler import (
    ExceptionNormalizationMiddleware,
    global_exception_handler,
)
from core.middleware import CorrelationIdMiddleware
from services.url_import.exceptions import (
    ExtractionFailedError,
    PageFetchError,
    URLValidationError,
)


class Item(BaseModel):
    url: str = Field(min_length=3)
    priority: int = Field(ge=1)


def build_test_app(env: str) -> TestClient:
    app = FastAPI()
    app.add_middleware(ExceptionNormalizationMiddleware)
    app.add_middleware(CorrelationIdMiddleware)
    app.add_exception_handler(Exception, global_exception_handler)
    app.add_exception_handler(HTTPException, global_exception_handler)
    app.add_exception_handler(RequestValidationError, global_exception_handler)

    @app.post("/items")
    async def create_item(item: Item):  # pragma: no cover - executed via client
        return {"ok": True, "item": item.model_dump()}

    @app.get("/invalid-url")
    async def invalid_url():
        raise URLValidationError("Host localhost is blocked for security reasons")

    @app.get("/extraction-failed")
    async def extraction_failed():
        raise ExtractionFailedError("Could not extract a place from this URL: parser exploded")

    @app.get("/fetch-failed")
    async def fetch_failed():
        raise PageFetchError("Request timed out fetching https://slow.test")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("Exploded with secret=should_not_leak")

    @app.get("/forbidden")
    async def forbidden():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )

    client = TestClient(app, raise_server_exceptions=False)

    # Patch environment setting per test invocation
    patcher = patch("core.error_handler.get_settings")
    mocked = patcher.start()
    mocked.return_value.ENVIRONMENT = env

    # Ensure patcher stops at client finalizer
    def fin():
        patcher.stop()

    client._finalizer = fin  # type: ignore[attr-defined]
    return client


def test_validation_error_production():
    client = build_test_app("production")
    resp = client.post("/items", json={"url": "ab", "priority": 0})
    assert resp.status_code == 422
    data = resp.json()
    assert data["error"]["type"] == "validation_error"
    # production should not include validation_errors
    assert "validation_errors" not in data["error"]


def test_validation_error_development():
    client = build_test_app("development")
    resp = client.post("/items", json={"url": "ab", "priority": 0})
    assert resp.status_code == 422
    data = resp.json()
    assert "validation_errors" in data["error"]


def test_invalid_url_is_bad_request_with_user_message():
    client = build_test_app("production")
    resp = client.get("/invalid-url")
    assert resp.status_code == 400
    data = resp.json()
    assert data["success"] is False
    assert data["error"]["type"] == "invalid_url"
    assert data["message"] == "Host localhost is blocked for security reasons"
    assert "details" not in data["error"]


def test_extraction_failed_is_bad_gateway():
    client = build_test_app("production")
    resp = client.get("/extraction-failed")
    assert resp.status_code == 502
    data = resp.json()
    assert data["error"]["type"] == "extraction_failed"
    assert data["message"] == "Could not extract a place from this URL"
    assert "parser exploded" not in str(data)


def test_extraction_failed_development_details():
    client = build_test_app("development")
    resp = client.get("/extraction-failed")
    assert resp.status_code == 502
    details = resp.json()["error"]["details"]
    assert details["error_code"] == "extraction_failed"
    assert "parser exploded" in details["reason"]


def test_unmapped_import_error_is_internal():
    client = build_test_app("production")
    resp = client.get("/fetch-failed")
    assert resp.status_code == 500
    data = resp.json()
    assert data["error"]["type"] == "fetch_failed"
    assert data["message"] == "URL import failed"


def test_generic_exception_production():
    client = build_test_app("production")
    resp = client.get("/boom")
    assert resp.status_code == 500
    body = resp.json()
    assert body["error"]["type"] == "internal_server_error"
    assert "traceback" not in body["error"]
    assert "secret=should_not_leak" not in str(body)


def test_generic_exception_development():
    client = build_test_app("development")
    resp = client.get("/boom")
    assert resp.status_code == 500
    body = resp.json()
    assert body["error"]["type"] == "internal_server_error"
    assert "traceback" in body["error"]


def test_http_error_production_hides_details():
    client = build_test_app("production")
    resp = client.get("/forbidden")
    assert resp.status_code == 403
    body = resp.json()
    assert body["error"]["type"] == "http_error"
    assert body["error"]["correlation_id"]
    assert body["success"] is False
    assert "details" not in body["error"]


def test_http_error_development_details():
    client = build_test_app("development")
    resp = client.get("/forbidden")
    assert resp.status_code == 403
    body = resp.json()
    assert body["error"]["correlation_id"]
    assert body["error"]["details"]["detail"] == "Access denied"


def test_correlation_id_header_is_echoed():
    client = build_test_app("production")
    resp = client.get("/invalid-url", headers={"X-Correlation-ID": "req-123"})
    assert resp.headers["X-Correlation-ID"] == "req-123"
    assert resp.json()["error"]["correlation_id"] == "req-123"
