"""
accesslog: Test Configuration (conftest.py)
=============================================

What:  Shared pytest fixtures for the test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixtures:
    settings          AccessLogSettings that ignore the environment and .env
    memory_sink       MemorySink collecting emitted records
    builder           LogRecordBuilder bound to `settings`
    writer            In-memory ResponseWriter without flush support
    flushable_writer  Same, with flush()
    test_client       httpx AsyncClient talking to create_app() over ASGITransport
"""

import os
from typing import Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Keep test runs quiet and independent of the developer's shell
os.environ["ACCESSLOG_LOG_LEVEL"] = "WARNING"

from accesslog.builder import LogRecordBuilder  # noqa: E402
from accesslog.config import AccessLogSettings  # noqa: E402
from accesslog.sinks import MemorySink  # noqa: E402


class RecordingWriter:
    """ResponseWriter that stores everything it is asked to send."""

    def __init__(self, fail_with: Optional[BaseException] = None):
        self.headers: Dict[str, str] = {}
        self.status_calls: List[int] = []
        self.chunks: List[bytes] = []
        self.fail_with = fail_with

    def header(self) -> Dict[str, str]:
        return self.headers

    async def write_header(self, status_code: int) -> None:
        self.status_calls.append(status_code)

    async def write(self, data: bytes, more_body: bool = True) -> int:
        if self.fail_with is not None:
            raise self.fail_with
        self.chunks.append(data)
        return len(data)


class FlushableWriter(RecordingWriter):
    def __init__(self):
        super().__init__()
        self.flushes = 0

    async def flush(self) -> None:
        self.flushes += 1


@pytest.fixture
def settings():
    return AccessLogSettings(_env_file=None)


@pytest.fixture
def memory_sink():
    return MemorySink()


@pytest.fixture
def builder(settings):
    return LogRecordBuilder(settings)


@pytest.fixture
def writer():
    return RecordingWriter()


@pytest.fixture
def flushable_writer():
    return FlushableWriter()


@pytest.fixture
def failing_writer():
    """Factory for writers whose write() raises the given exception."""
    def make(exc: BaseException) -> RecordingWriter:
        return RecordingWriter(fail_with=exc)
    return make


@pytest_asyncio.fixture
async def test_client(memory_sink, settings):
    """
    Async HTTP client for the FastAPI app, with records going to memory_sink.

    Usage:
        async def test_health(test_client, memory_sink):
            response = await test_client.get("/health")
            assert memory_sink.access[0].status == 200
    """
    from accesslog.main import create_app
    app = create_app(sink=memory_sink, settings=settings)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
