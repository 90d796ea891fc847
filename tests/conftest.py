"""
Pytest Configuration
Provides a manual clock, fake push transports and mock HTTP backends.
"""

import asyncio
import json
import os
import random
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from lockwatch.services.api_client import DashboardAPIClient
from lockwatch.util.async_tools import ManualClock

# Set deterministic seed for all tests
RNG_SEED = int(os.getenv("RNG_SEED", "1337"))
random.seed(RNG_SEED)

API_BASE = "http://lockwatch.test"

_CLOSE = object()


class FakeTransport:
    """In-memory push transport. Frames are queued with feed() and read in order."""

    def __init__(self):
        self.sent: List[str] = []
        self.closed = False
        self.close_calls = 0
        self._queue: asyncio.Queue = asyncio.Queue()

    async def send(self, message: str) -> None:
        self.sent.append(message)

    async def close(self) -> None:
        self.close_calls += 1
        self.closed = True
        self._queue.put_nowait(_CLOSE)

    def feed(self, frame) -> None:
        if not isinstance(frame, (str, bytes)):
            frame = json.dumps(frame)
        self._queue.put_nowait(frame)

    def server_close(self) -> None:
        """Peer closes the connection cleanly."""
        self._queue.put_nowait(_CLOSE)

    def fail(self, error: BaseException) -> None:
        """Next read raises ``error``."""
        self._queue.put_nowait(error)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._queue.get()
        if item is _CLOSE:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item


class FakeConnector:
    """Connector handing out FakeTransports; can fail or hold attempts."""

    def __init__(self):
        self.urls: List[str] = []
        self.transports: List[FakeTransport] = []
        self._failures: List[BaseException] = []
        self._gate: Optional[asyncio.Event] = None
        self.fail_always: Optional[BaseException] = None

    def fail_next(self, error: BaseException) -> None:
        self._failures.append(error)

    def hold(self) -> None:
        """Park subsequent attempts until release()."""
        self._gate = asyncio.Event()

    def release(self) -> None:
        gate, self._gate = self._gate, None
        if gate is not None:
            gate.set()

    @property
    def latest(self) -> FakeTransport:
        return self.transports[-1]

    async def __call__(self, url: str) -> FakeTransport:
        self.urls.append(url)
        if self._gate is not None:
            await self._gate.wait()
        if self.fail_always is not None:
            raise self.fail_always
        if self._failures:
            raise self._failures.pop(0)
        transport = FakeTransport()
        self.transports.append(transport)
        return transport


class MockAPI:
    """Routes for httpx.MockTransport; tests swap responses between polls."""

    def __init__(self):
        self.hot_accounts: Any = []
        self.stats: Any = {
            "unique_accounts": 3,
            "total_events": 120,
            "high_contention_accounts": 1,
            "avg_success_rate": 87.5,
        }
        self.status: Dict[str, int] = {}
        self.raw_bodies: Dict[str, str] = {}
        self.raise_error: Optional[Exception] = None
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_error is not None:
            raise self.raise_error
        path = request.url.path
        status = self.status.get(path, 200)
        if path in self.raw_bodies:
            return httpx.Response(status, text=self.raw_bodies[path])
        if path == "/api/hot-accounts":
            return httpx.Response(status, json=self.hot_accounts)
        if path == "/api/stats":
            return httpx.Response(status, json=self.stats)
        return httpx.Response(404, json={"error": "not found"})

    def client(self) -> DashboardAPIClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(self.handler), base_url=API_BASE)
        return DashboardAPIClient(API_BASE, client=http)

    def count(self, path: str) -> int:
        return sum(1 for request in self.requests if request.url.path == path)


def poll_record(pubkey: str, avg_contention: float, **overrides) -> Dict[str, Any]:
    """A /api/hot-accounts row."""
    row = {
        "account_pubkey": pubkey,
        "lock_attempts": 100,
        "successful_locks": 90,
        "success_rate": 90.0,
        "avg_contention": avg_contention,
        "max_contention": avg_contention * 2,
        "avg_priority_fee": 2500,
        "max_priority_fee": 10000,
    }
    row.update(overrides)
    return row


def push_update(*records: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": "hot-accounts-update", "data": list(records)}


@pytest.fixture
def manual_clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def mock_api() -> MockAPI:
    return MockAPI()


@pytest.fixture
def make_poll_record() -> Callable[..., Dict[str, Any]]:
    return poll_record


@pytest.fixture
def make_push_update() -> Callable[..., Dict[str, Any]]:
    return push_update


@pytest.fixture
def seeded_random():
    """Provide seeded random number generator."""
    random.seed(RNG_SEED)
    yield random


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch):
    """Keep a developer's .env or shell from leaking into tests."""
    for key in list(os.environ):
        if key.startswith("LOCKWATCH_") or key in ("NEXT_PUBLIC_API_URL", "NEXT_PUBLIC_WS_URL"):
            monkeypatch.delenv(key, raising=False)
    yield


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "deterministic: marks tests as deterministic")
