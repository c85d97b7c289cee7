"""Body capture middleware: non-interference with real traffic, bounds, redaction, failure paths."""

import json
import logging

import pytest
from fastapi import FastAPI, Request
from fastapi.responses import Response, StreamingResponse
from httpx import ASGITransport, AsyncClient

from baseline_api.api import body_capture
from baseline_api.api.body_capture import BodyCaptureMiddleware
from baseline_api.observability.redaction import NO_BODY, TRUNCATION_MARKER


def _build_app() -> FastAPI:
    app = FastAPI()

    @app.post("/echo")
    async def echo(request: Request):
        body = await request.body()
        return Response(content=body, media_type=request.headers.get("content-type"))

    @app.post("/length")
    async def length(request: Request):
        body = await request.body()
        return {"received": len(body)}

    @app.get("/stream")
    async def stream():
        async def chunks():
            for i in range(5):
                yield f"chunk-{i};".encode()

        return StreamingResponse(chunks(), media_type="text/plain")

    @app.get("/image")
    async def image():
        return Response(content=b"\x89PNG\r\n", media_type="image/png")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("handler exploded")

    return app


@pytest.fixture
def capture_app():
    return BodyCaptureMiddleware(_build_app(), max_bytes=8192)


@pytest.fixture
async def client(capture_app):
    transport = ASGITransport(app=capture_app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def request_logs(caplog):
    caplog.set_level(logging.DEBUG, logger="baseline_api.request")

    def _fields():
        return [r.request_log for r in caplog.records if hasattr(r, "request_log")]

    return _fields


@pytest.mark.asyncio
async def test_client_receives_unredacted_bytes_while_log_is_redacted(client, request_logs):
    payload = b'{"username":"a","password":"p"}'
    r = await client.post("/echo", content=payload, headers={"Content-Type": "application/json"})

    assert r.status_code == 200
    assert r.content == payload

    [fields] = request_logs()
    assert fields["RequestBody"] == '{"username":"a","password":"***"}'
    assert fields["ResponseBody"] == '{"username":"a","password":"***"}'
    assert fields["StatusCode"] == 200
    assert fields["Method"] == "POST"
    assert fields["ActorName"] == "anonymous"


@pytest.mark.asyncio
async def test_large_request_is_fully_readable_downstream_and_bounded_in_log(client, request_logs):
    payload = b"x" * 10_000
    r = await client.post("/length", content=payload, headers={"Content-Type": "text/plain"})

    assert r.json() == {"received": 10_000}
    [fields] = request_logs()
    assert fields["RequestBody"] == "x" * 8192 + TRUNCATION_MARKER


@pytest.mark.asyncio
async def test_small_request_is_logged_verbatim(client, request_logs):
    payload = b"y" * 100
    await client.post("/echo", content=payload, headers={"Content-Type": "text/plain"})
    [fields] = request_logs()
    assert fields["RequestBody"] == "y" * 100
    assert fields["ResponseBody"] == "y" * 100


@pytest.mark.asyncio
async def test_malformed_json_is_logged_unredacted(client, request_logs):
    await client.post("/echo", content=b"{not valid json", headers={"Content-Type": "application/json"})
    [fields] = request_logs()
    assert fields["RequestBody"] == "{not valid json"


@pytest.mark.asyncio
async def test_streamed_response_is_delivered_whole(client, request_logs):
    r = await client.get("/stream")
    expected = "".join(f"chunk-{i};" for i in range(5))
    assert r.text == expected
    [fields] = request_logs()
    assert fields["RequestBody"] == NO_BODY
    assert fields["ResponseBody"] == expected


@pytest.mark.asyncio
async def test_disallowed_content_type_is_not_captured(client, request_logs):
    r = await client.get("/image")
    assert r.content == b"\x89PNG\r\n"
    [fields] = request_logs()
    assert fields["ResponseBody"] == NO_BODY


@pytest.mark.asyncio
async def test_logging_failure_does_not_affect_response(client, monkeypatch, caplog):
    def broken(record):
        raise RuntimeError("log sink down")

    monkeypatch.setattr(body_capture, "emit_request_log", broken)
    payload = b'{"a":1}'
    with caplog.at_level(logging.ERROR, logger="baseline_api.api.body_capture"):
        r = await client.post("/echo", content=payload, headers={"Content-Type": "application/json"})

    assert r.status_code == 200
    assert r.content == payload
    assert any("Request log emission failed" in rec.getMessage() for rec in caplog.records)


@pytest.mark.asyncio
async def test_render_failure_does_not_affect_response(client, monkeypatch):
    def broken(text, content_type=None):
        raise ValueError("redactor bug")

    monkeypatch.setattr("baseline_api.observability.redaction.redact", broken)
    payload = b'{"a":1}'
    r = await client.post("/echo", content=payload, headers={"Content-Type": "application/json"})

    assert r.status_code == 200
    assert r.content == payload


@pytest.mark.asyncio
async def test_handler_exception_still_produces_response_and_log(client, request_logs):
    r = await client.get("/boom")

    assert r.status_code == 500
    [fields] = request_logs()
    assert fields["StatusCode"] == 500
    assert fields["Path"] == "/boom"


@pytest.mark.asyncio
async def test_forwarded_for_is_used_only_when_trusted(request_logs):
    trusted = BodyCaptureMiddleware(_build_app(), trust_forwarded_for=True)
    async with AsyncClient(transport=ASGITransport(app=trusted), base_url="http://test") as ac:
        await ac.get("/image", headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})
    async with AsyncClient(transport=ASGITransport(app=BodyCaptureMiddleware(_build_app())), base_url="http://test") as ac:
        await ac.get("/image", headers={"X-Forwarded-For": "203.0.113.9"})

    first, second = request_logs()
    assert first["ClientIP"] == "203.0.113.9"
    assert second["ClientIP"] == "127.0.0.1"


@pytest.mark.asyncio
async def test_log_record_is_json_serializable(client, request_logs):
    await client.post("/echo", content=b'{"token":"t"}', headers={"Content-Type": "application/json"})
    [fields] = request_logs()
    assert json.loads(json.dumps(fields))["RequestBody"] == '{"token":"***"}'


@pytest.mark.asyncio
async def test_request_is_logged_when_client_send_fails(capture_app, request_logs):
    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "path": "/image",
        "raw_path": b"/image",
        "root_path": "",
        "query_string": b"",
        "headers": [],
        "client": ("198.51.100.4", 5000),
        "server": ("test", 80),
    }
    messages = [{"type": "http.request", "body": b"", "more_body": False}]

    async def receive():
        return messages.pop(0) if messages else {"type": "http.disconnect"}

    async def send(message):
        if message["type"] == "http.response.body":
            raise OSError("client went away")

    with pytest.raises(OSError):
        await capture_app(scope, receive, send)

    [fields] = request_logs()
    assert fields["Path"] == "/image"
    assert fields["StatusCode"] == 200
    assert fields["ClientIP"] == "198.51.100.4"
