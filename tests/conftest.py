"""Shared test fixtures for fetchlock tests."""

import threading
from collections.abc import Callable, Generator
from pathlib import Path

import httpx
import pytest
from typer.testing import CliRunner

from fetchlock.core import DownloadOptions

Handler = Callable[[httpx.Request], httpx.Response]


class CountingTransport(httpx.MockTransport):
    """MockTransport that records how many requests it served."""

    def __init__(self, handler: Handler) -> None:
        self.requests: list[httpx.Request] = []
        self._lock = threading.Lock()

        def _record(request: httpx.Request) -> httpx.Response:
            with self._lock:
                self.requests.append(request)
            return handler(request)

        super().__init__(_record)

    @property
    def count(self) -> int:
        """Number of requests served so far."""
        return len(self.requests)


@pytest.fixture
def runner() -> CliRunner:
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture
def locks_dir(tmp_path: Path) -> Path:
    """Locks directory inside the test's temp dir (not created)."""
    return tmp_path / "locks"


@pytest.fixture
def fast_options(locks_dir: Path) -> DownloadOptions:
    """Download options with short timings suitable for tests."""
    return DownloadOptions(
        locks_dir=locks_dir,
        lock_timeout=2.0,
        poll_interval=0.02,
        stale_timeout=60.0,
    )


@pytest.fixture
def serve() -> Generator[Callable[..., tuple[httpx.Client, CountingTransport]], None, None]:
    """Factory building an httpx.Client backed by a counting mock transport.

    Usage: ``client, transport = serve(content=b"hello")`` or
    ``serve(handler=fn)``.
    """
    clients: list[httpx.Client] = []

    def _serve(
        content: bytes = b"",
        status_code: int = 200,
        handler: Handler | None = None,
    ) -> tuple[httpx.Client, CountingTransport]:
        def respond(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code, content=content)

        transport = CountingTransport(handler or respond)
        client = httpx.Client(transport=transport)
        clients.append(client)
        return client, transport

    yield _serve

    for client in clients:
        client.close()
