"""
accesslog: Access Log Middleware Tests
========================================

What:  End-to-end tests through real ASGI apps (FastAPI and Starlette) using
       httpx's ASGITransport. No server process needed.

What we test:
    ✅ One access record per request with status, size and request line
    ✅ Redaction and identity resolution on live requests
    ✅ Streaming bodies are counted chunk by chunk
    ✅ Unhandled exceptions produce one error record (and a 500 if nothing was sent)
    ✅ Non-HTTP scopes and excluded paths pass through untouched
    ✅ Default LoggingSink writes a common-log line
"""

import logging

import pytest
from httpx import ASGITransport, AsyncClient
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.responses import PlainTextResponse, StreamingResponse
from starlette.routing import Route

from accesslog.config import AccessLogSettings
from accesslog.main import create_app
from accesslog.middleware import AccessLogMiddleware
from accesslog.sinks import format_common


async def stream(request):
    async def chunks():
        for chunk in (b"abc", b"defgh", b""):
            yield chunk
    return StreamingResponse(chunks(), media_type="text/plain")


async def boom(request):
    raise RuntimeError("boom")


async def created(request):
    return PlainTextResponse("made", status_code=201)


def starlette_app(sink, settings):
    return Starlette(
        routes=[
            Route("/stream", stream),
            Route("/boom", boom),
            Route("/created", created, methods=["POST"]),
        ],
        middleware=[Middleware(AccessLogMiddleware, sink=sink, settings=settings)],
    )


def client_for(app, raise_app_exceptions=True):
    transport = ASGITransport(app=app, raise_app_exceptions=raise_app_exceptions)
    return AsyncClient(transport=transport, base_url="http://test")


class TestAccessRecords:

    @pytest.mark.asyncio
    async def test_health_request_logged_once(self, test_client, memory_sink):
        response = await test_client.get("/health")

        assert response.status_code == 200
        assert len(memory_sink.access) == 1
        assert memory_sink.errors == []
        record = memory_sink.access[0]
        assert record.method == "GET"
        assert record.uri == "/health"
        assert record.proto == "HTTP/1.1"
        assert record.status == 200
        assert record.size == len(response.content)
        assert record.host == "127.0.0.1"

    @pytest.mark.asyncio
    async def test_not_found_status(self, test_client, memory_sink):
        response = await test_client.get("/missing")
        assert response.status_code == 404
        assert memory_sink.access[0].status == 404
        assert memory_sink.access[0].size == len(response.content)

    @pytest.mark.asyncio
    async def test_password_redacted_and_user_resolved(self, test_client, memory_sink):
        await test_client.get("/health", params={"p": "secret123", "u": "alice"})
        record = memory_sink.access[0]
        assert record.uri == "/health?p=%5BREDACTED%5D&u=alice"
        assert "secret123" not in record.model_dump_json()
        assert record.user == "alice"

    @pytest.mark.asyncio
    async def test_basic_auth_user_and_request_id(self, test_client, memory_sink):
        await test_client.get(
            "/health",
            auth=("dave", "pw"),
            headers={"Request-Id": "req-42", "Referer": "http://test/home"},
        )
        record = memory_sink.access[0]
        assert record.user == "dave"
        assert record.request_id == "req-42"
        assert record.referrer == "http://test/home"
        assert record.user_agent.startswith("python-httpx/")

    @pytest.mark.asyncio
    async def test_missing_request_id_is_empty(self, test_client, memory_sink):
        await test_client.get("/health")
        assert memory_sink.access[0].request_id == ""
        assert memory_sink.access[0].referrer == "-"
        assert memory_sink.access[0].user == "-"

    @pytest.mark.asyncio
    async def test_one_record_per_request(self, test_client, memory_sink):
        for _ in range(3):
            await test_client.get("/health")
        assert len(memory_sink.access) == 3
        assert memory_sink.errors == []

    @pytest.mark.asyncio
    async def test_response_headers_pass_through(self, memory_sink, settings):
        async with client_for(starlette_app(memory_sink, settings)) as client:
            response = await client.post("/created")
        assert response.status_code == 201
        assert response.text == "made"
        assert response.headers["content-type"].startswith("text/plain")
        assert memory_sink.access[0].status == 201
        assert memory_sink.access[0].method == "POST"


class TestRequestLine:

    @pytest.mark.asyncio
    async def test_escaped_path_is_logged_escaped(self, test_client, memory_sink):
        await test_client.get("/a%20b/c%2Fd?x=1")
        assert memory_sink.access[0].uri == "/a%20b/c%2Fd?x=1"

    @pytest.mark.asyncio
    async def test_escaped_quote_cannot_break_the_line(self, test_client, memory_sink):
        await test_client.get("/x%22%2010.6.6.6%20-%20admin")

        record = memory_sink.access[0]
        assert record.uri == "/x%22%2010.6.6.6%20-%20admin"
        line = format_common(record)
        assert '"GET /x%22%2010.6.6.6%20-%20admin HTTP/1.1" 404 ' in line
        assert line.count('"') == 6


class TestStreaming:

    @pytest.mark.asyncio
    async def test_streamed_chunks_are_counted(self, memory_sink, settings):
        async with client_for(starlette_app(memory_sink, settings)) as client:
            response = await client.get("/stream")
        assert response.content == b"abcdefgh"
        assert memory_sink.access[0].status == 200
        assert memory_sink.access[0].size == 8


class TestErrors:

    @pytest.mark.asyncio
    async def test_exception_before_response_sends_500(self, memory_sink, settings):
        app = starlette_app(memory_sink, settings)
        async with client_for(app, raise_app_exceptions=False) as client:
            response = await client.get("/boom?p=hunter2")

        assert response.status_code == 500
        assert response.text == "Internal Server Error"
        assert memory_sink.access == []
        assert len(memory_sink.errors) == 1
        record = memory_sink.errors[0]
        assert record.tag == "encountered error"
        assert record.detail == "RuntimeError: boom"
        assert record.status == 500
        assert record.size == len(b"Internal Server Error")
        assert record.uri == "/boom?p=%5BREDACTED%5D"

    @pytest.mark.asyncio
    async def test_exception_is_reraised(self, memory_sink, settings):
        app = starlette_app(memory_sink, settings)
        async with client_for(app) as client:
            with pytest.raises(RuntimeError, match="boom"):
                await client.get("/boom")
        assert len(memory_sink.errors) == 1

    @pytest.mark.asyncio
    async def test_exception_after_start_keeps_status(self, memory_sink, settings):
        async def app(scope, receive, send):
            await send({"type": "http.response.start", "status": 202, "headers": []})
            raise ValueError("half way")

        wrapped = AccessLogMiddleware(app, sink=memory_sink, settings=settings)
        async with client_for(wrapped, raise_app_exceptions=False) as client:
            await client.get("/")

        record = memory_sink.errors[0]
        assert record.status == 202
        assert record.size == 0
        assert record.detail == "ValueError: half way"
        assert memory_sink.access == []


class TestPassThrough:

    @pytest.mark.asyncio
    async def test_non_http_scope_untouched(self, memory_sink, settings):
        calls = []

        async def app(scope, receive, send):
            calls.append(scope["type"])

        middleware = AccessLogMiddleware(app, sink=memory_sink, settings=settings)
        await middleware({"type": "lifespan"}, None, None)
        assert calls == ["lifespan"]
        assert memory_sink.records == []

    @pytest.mark.asyncio
    async def test_start_message_keys_are_forwarded(self, memory_sink, settings):
        async def app(scope, receive, send):
            await send(
                {
                    "type": "http.response.start",
                    "status": 200,
                    "headers": [(b"content-type", b"text/plain")],
                    "trailers": True,
                }
            )
            await send({"type": "http.response.body", "body": b"ok"})
            await send({"type": "http.response.trailers", "headers": [(b"x-checksum", b"1")]})

        sent = []

        async def send(message):
            sent.append(message)

        scope = {
            "type": "http",
            "http_version": "1.1",
            "method": "GET",
            "scheme": "http",
            "server": ("test", 80),
            "path": "/",
            "raw_path": b"/",
            "query_string": b"",
            "headers": [],
            "client": ("127.0.0.1", 5000),
        }
        middleware = AccessLogMiddleware(app, sink=memory_sink, settings=settings)
        await middleware(scope, None, send)

        assert sent[0] == {
            "type": "http.response.start",
            "status": 200,
            "headers": [(b"content-type", b"text/plain")],
            "trailers": True,
        }
        assert [m["type"] for m in sent] == [
            "http.response.start",
            "http.response.body",
            "http.response.trailers",
        ]
        assert memory_sink.access[0].size == 2

    @pytest.mark.asyncio
    async def test_excluded_paths_not_logged(self, memory_sink):
        settings = AccessLogSettings(_env_file=None, excluded_paths=["/health"])
        app = create_app(sink=memory_sink, settings=settings)
        async with client_for(app) as client:
            response = await client.get("/health")
            await client.get("/missing")
        assert response.status_code == 200
        assert [r.uri for r in memory_sink.access] == ["/missing"]


class TestDefaultSink:

    @pytest.mark.asyncio
    async def test_logging_sink_writes_common_line(self, caplog, settings):
        caplog.set_level(logging.INFO, logger="accesslog.access")
        async with client_for(create_app(settings=settings)) as client:
            await client.get("/health", headers={"Request-Id": "abc"})

        lines = [r.getMessage() for r in caplog.records if r.name == "accesslog.access"]
        assert len(lines) == 1
        assert lines[0].startswith("127.0.0.1 - - [")
        assert '"GET /health HTTP/1.1" 200 ' in lines[0]
        assert " abc " in lines[0]
