# ruff: noqa

from __future__ import annotations

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from pydantic import BaseModel, Field
from starlette.requests import Request

from app.core import error_handling
from app.core.error_handling import (
    REQUEST_ID_HEADER,
    ApiError,
    _app_error_handler,
    _error_payload,
    _get_request_id,
    _http_exception_exception_handler,
    _request_validation_exception_handler,
    _response_validation_exception_handler,
    install_error_handling,
    status_for,
)
from app.core.errors import (
    ErrorCode,
    GrantPermissionFailedError,
    NoLoginError,
    PermissionDeniedError,
    PermissionNotFoundError,
    QueryFailedError,
    TaskNotFoundError,
    TransactionNotFoundError,
    UserAlreadyExistsError,
)


class _TitledPayload(BaseModel):
    title: str
    due_date: str


class _ContentPayload(BaseModel):
    content: str


def test_request_validation_error_returns_400_with_validation_code():
    app = FastAPI()
    install_error_handling(app)

    @app.get("/needs-int")
    def needs_int(limit: int) -> dict[str, int]:
        return {"limit": limit}

    client = TestClient(app)
    resp = client.get("/needs-int?limit=abc")

    assert resp.status_code == 400
    body = resp.json()
    assert body["errors"][0]["code"] == ErrorCode.VALIDATION_FAILED
    assert body["errors"][0]["description"] == "invalid fields: limit"
    assert isinstance(body.get("request_id"), str) and body["request_id"]
    assert resp.headers.get(REQUEST_ID_HEADER) == body["request_id"]


def test_request_validation_error_lists_missing_fields():
    app = FastAPI()
    install_error_handling(app)

    @app.post("/needs-object")
    def needs_object(payload: _TitledPayload) -> dict[str, str]:
        return {"title": payload.title}

    client = TestClient(app)
    resp = client.post("/needs-object", json={})

    assert resp.status_code == 400
    description = resp.json()["errors"][0]["description"]
    assert description == "missing fields: title, due_date"


def test_request_validation_error_handles_bytes_input_without_500():
    app = FastAPI()
    install_error_handling(app)

    @app.put("/needs-object")
    def needs_object(payload: _ContentPayload) -> dict[str, str]:
        return {"content": payload.content}

    client = TestClient(app, raise_server_exceptions=False)
    resp = client.put(
        "/needs-object",
        content=b"plain-text-body",
        headers={"content-type": "text/plain"},
    )

    assert resp.status_code == 400
    body = resp.json()
    assert body["errors"][0]["code"] == ErrorCode.VALIDATION_FAILED
    assert isinstance(body.get("request_id"), str) and body["request_id"]
    assert resp.headers.get(REQUEST_ID_HEADER) == body["request_id"]


def test_http_exception_includes_request_id():
    app = FastAPI()
    install_error_handling(app)

    @app.get("/nope")
    def nope() -> None:
        raise HTTPException(status_code=404, detail="nope")

    client = TestClient(app)
    resp = client.get("/nope")

    assert resp.status_code == 404
    body = resp.json()
    assert body["message"] == "nope"
    assert body["errors"] == []
    assert isinstance(body.get("request_id"), str) and body["request_id"]
    assert resp.headers.get(REQUEST_ID_HEADER) == body["request_id"]


def test_app_error_maps_to_status_and_envelope():
    app = FastAPI()
    install_error_handling(app)

    @app.get("/missing")
    def missing() -> None:
        raise TaskNotFoundError("task 7 does not exist")

    client = TestClient(app)
    resp = client.get("/missing")

    assert resp.status_code == 404
    body = resp.json()
    assert body["message"] == "task not found"
    assert body["errors"] == [
        {
            "code": ErrorCode.TASK_NOT_FOUND,
            "message": "task not found",
            "description": "task 7 does not exist",
        },
    ]


def test_api_error_uses_operation_message():
    app = FastAPI()
    install_error_handling(app)

    @app.get("/denied")
    def denied() -> None:
        raise ApiError("failed to fetch task", PermissionDeniedError("permission denied"))

    client = TestClient(app)
    resp = client.get("/denied")

    assert resp.status_code == 403
    body = resp.json()
    assert body["message"] == "failed to fetch task"
    assert body["errors"][0]["code"] == ErrorCode.PERMISSION_DENIED


def test_unhandled_exception_returns_500_with_request_id():
    app = FastAPI()
    install_error_handling(app)

    @app.get("/boom")
    def boom() -> None:
        raise RuntimeError("boom")

    client = TestClient(app, raise_server_exceptions=False)
    resp = client.get("/boom")

    assert resp.status_code == 500
    body = resp.json()
    assert body["errors"][0]["code"] == ErrorCode.UNEXPECTED
    assert isinstance(body.get("request_id"), str) and body["request_id"]
    assert resp.headers.get(REQUEST_ID_HEADER) == body["request_id"]


def test_response_validation_error_returns_500_with_request_id():
    class Out(BaseModel):
        name: str = Field(min_length=1)

    app = FastAPI()
    install_error_handling(app)

    @app.get("/bad", response_model=Out)
    def bad() -> dict[str, str]:
        return {"name": ""}

    client = TestClient(app, raise_server_exceptions=False)
    resp = client.get("/bad")

    assert resp.status_code == 500
    body = resp.json()
    assert body["errors"][0]["code"] == ErrorCode.UNEXPECTED
    assert isinstance(body.get("request_id"), str) and body["request_id"]
    assert resp.headers.get(REQUEST_ID_HEADER) == body["request_id"]


def test_client_provided_request_id_is_preserved():
    app = FastAPI()
    install_error_handling(app)

    @app.get("/needs-int")
    def needs_int(limit: int) -> dict[str, int]:
        return {"limit": limit}

    client = TestClient(app)
    resp = client.get("/needs-int?limit=abc", headers={REQUEST_ID_HEADER: "  req-123  "})

    assert resp.status_code == 400
    body = resp.json()
    assert body["request_id"] == "req-123"
    assert resp.headers.get(REQUEST_ID_HEADER) == "req-123"


def test_slow_request_emits_slow_log(monkeypatch: pytest.MonkeyPatch) -> None:
    warnings: list[tuple[str, dict[str, object]]] = []

    def _fake_warning(message: str, *args: object, **kwargs: object) -> None:
        _ = args
        extra = kwargs.get("extra")
        warnings.append((message, extra if isinstance(extra, dict) else {}))

    perf_ticks = iter((100.0, 100.2))

    def _fake_perf_counter() -> float:
        return next(perf_ticks)

    monkeypatch.setattr(error_handling.settings, "request_log_slow_ms", 1)
    monkeypatch.setattr(error_handling, "perf_counter", _fake_perf_counter)
    monkeypatch.setattr(error_handling.logger, "warning", _fake_warning)

    app = FastAPI()
    install_error_handling(app)

    @app.get("/slow")
    def slow() -> dict[str, str]:
        return {"ok": "1"}

    client = TestClient(app)
    resp = client.get("/slow")

    assert resp.status_code == 200
    assert any(
        message == "http.request.slow" and extra.get("slow_threshold_ms") == 1
        for message, extra in warnings
    )


def test_health_route_skips_request_logs_when_disabled(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    infos: list[str] = []

    def _fake_info(message: str, *args: object, **kwargs: object) -> None:
        _ = (args, kwargs)
        infos.append(message)

    monkeypatch.setattr(error_handling.settings, "request_log_include_health", False)
    monkeypatch.setattr(error_handling.logger, "info", _fake_info)

    app = FastAPI()
    install_error_handling(app)

    @app.get("/healthz")
    def healthz() -> dict[str, str]:
        return {"status": "ok"}

    client = TestClient(app)
    resp = client.get("/healthz")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert isinstance(resp.headers.get(REQUEST_ID_HEADER), str)
    assert "http.request.complete" not in infos


def test_get_request_id_returns_none_for_missing_or_invalid_state() -> None:
    # Empty state
    req = Request({"type": "http", "headers": [], "state": {}})
    assert _get_request_id(req) is None

    # Non-string request_id
    req = Request({"type": "http", "headers": [], "state": {"request_id": 123}})
    assert _get_request_id(req) is None

    # Empty string request_id
    req = Request({"type": "http", "headers": [], "state": {"request_id": ""}})
    assert _get_request_id(req) is None


def test_error_payload_omits_request_id_when_none() -> None:
    assert _error_payload(message="x", request_id=None) == {"message": "x", "errors": []}


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (NoLoginError(), 401),
        (UserAlreadyExistsError(), 409),
        (TaskNotFoundError(), 404),
        (PermissionNotFoundError(), 403),
        (PermissionDeniedError(), 403),
        (QueryFailedError(), 500),
        (GrantPermissionFailedError(), 500),
        (TransactionNotFoundError(), 500),
    ],
)
def test_status_for_maps_error_kinds(error, expected: int) -> None:
    assert status_for(error) == expected


@pytest.mark.asyncio
async def test_app_error_wrapper_rejects_wrong_exception() -> None:
    req = Request({"type": "http", "headers": [], "state": {}})
    with pytest.raises(TypeError, match="Expected AppError"):
        await _app_error_handler(req, Exception("x"))


@pytest.mark.asyncio
async def test_request_validation_exception_wrapper_rejects_wrong_exception() -> None:
    req = Request({"type": "http", "headers": [], "state": {}})
    with pytest.raises(TypeError, match="Expected RequestValidationError"):
        await _request_validation_exception_handler(req, Exception("x"))


@pytest.mark.asyncio
async def test_response_validation_exception_wrapper_rejects_wrong_exception() -> None:
    req = Request({"type": "http", "headers": [], "state": {}})
    with pytest.raises(TypeError, match="Expected ResponseValidationError"):
        await _response_validation_exception_handler(req, Exception("x"))


@pytest.mark.asyncio
async def test_http_exception_wrapper_rejects_wrong_exception() -> None:
    req = Request({"type": "http", "headers": [], "state": {}})
    with pytest.raises(TypeError, match="Expected StarletteHTTPException"):
        await _http_exception_exception_handler(req, Exception("x"))
