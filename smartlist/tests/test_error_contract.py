"""Tests for normalized error responses and request correlation."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient

from smartlist.core.errors import (
    AppError,
    ConflictError,
    NotFoundError,
    SyncError,
    app_error_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from smartlist.core.middleware.request_id import RequestIdMiddleware
from smartlist.main import app


def _make_app():
    test_app = FastAPI()
    test_app.add_middleware(RequestIdMiddleware)
    test_app.add_exception_handler(AppError, app_error_handler)
    test_app.add_exception_handler(RequestValidationError, request_validation_handler)
    test_app.add_exception_handler(Exception, unhandled_exception_handler)

    @test_app.get("/")
    async def root(request: Request):
        return {"request_id": getattr(request.state, "request_id", None)}

    @test_app.get("/conflict")
    async def conflict():
        raise ConflictError("already there")

    @test_app.get("/boom")
    async def boom():
        raise RuntimeError("kaput")

    return test_app


def test_generates_request_id_when_missing():
    client = TestClient(_make_app())

    resp = client.get("/")

    assert resp.status_code == 200
    assert resp.headers.get("x-request-id")
    assert resp.headers["x-request-id"] == resp.json()["request_id"]


def test_echoes_provided_request_id():
    client = TestClient(_make_app())

    resp = client.get("/", headers={"X-Request-Id": "test-rid-123"})

    assert resp.headers.get("x-request-id") == "test-rid-123"
    assert resp.json()["request_id"] == "test-rid-123"


def test_app_error_has_standard_shape():
    client = TestClient(_make_app())

    resp = client.get("/conflict", headers={"X-Request-Id": "rid-9"})

    assert resp.status_code == 409
    assert resp.json() == {"error": "already there", "code": "CONFLICT", "request_id": "rid-9"}


def test_unhandled_error_is_masked():
    client = TestClient(_make_app(), raise_server_exceptions=False)

    resp = client.get("/boom")

    assert resp.status_code == 500
    body = resp.json()
    assert body["code"] == "INTERNAL_ERROR"
    assert "kaput" not in body["error"]


def test_unknown_route_uses_error_shape():
    client = TestClient(app)

    resp = client.get("/api/nope")

    assert resp.status_code == 404
    assert resp.json()["code"] == "NOT_FOUND"
    assert resp.json()["request_id"] == resp.headers["x-request-id"]


def test_request_id_in_logs(caplog):
    client = TestClient(app)
    with caplog.at_level(logging.INFO, logger="smartlist"):
        resp = client.get("/healthz")
    rid = resp.headers.get("x-request-id")
    records = [r for r in caplog.records if getattr(r, "request_id", None) == rid]
    assert records
    complete = [r for r in records if r.getMessage() == "request.complete"]
    assert complete
    assert complete[0].event_type == "http.request"
    assert complete[0].status == "200"
    assert complete[0].method == "GET"


def test_error_codes_and_status_defaults():
    assert (NotFoundError("x").code, NotFoundError("x").status_code) == ("NOT_FOUND", 404)
    assert SyncError("x").status_code == 502
    assert SyncError("x", code="STALE_WRITE", status_code=409).code == "STALE_WRITE"
    assert isinstance(NotFoundError("x"), LookupError)
