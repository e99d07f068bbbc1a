"""
Pytest configuration and shared fixtures for the test suite.
"""

import asyncio
from typing import Any, Dict, List, Optional, Set, Tuple

import pytest

from request_manager.config import ManagerConfig, RequestOptions
from request_manager.core.events import EventType
from request_manager.core.manager import RequestManager
from request_manager.core.request import ItemResult
from request_manager.exceptions import TransportError
from request_manager.transport.interface import TransportAdapter, TransportResponse


# ============================================================================
# Test Data Generators
# ============================================================================

def generate_links(count: int) -> List[str]:
    """Generate a deterministic work list."""
    return [f"https://example.test/item/{i}" for i in range(count)]


def make_config(count: int = 5, **overrides) -> ManagerConfig:
    """Create a manager configuration with a generated work list."""
    values = {
        "link_array": generate_links(count),
        "number_concurrent": 3,
        "wait_time": 0,
    }
    values.update(overrides)
    return ManagerConfig(**values)


@pytest.fixture
def test_config() -> ManagerConfig:
    """Create a test configuration."""
    return make_config(
        7,
        number_concurrent=3,
        request_options=RequestOptions(method="GET", headers={"X-Test": "1"}),
    )


# ============================================================================
# Mock Transport
# ============================================================================

class MockTransport(TransportAdapter):
    """
    Scripted transport for testing.

    Records every call together with the number of requests that had
    completed when it was issued, which exposes the window boundaries.
    """

    def __init__(
        self,
        delays: Optional[Dict[str, float]] = None,
        failures: Optional[Set[str]] = None,
        gate: Optional[asyncio.Event] = None,
    ):
        self.delays = delays or {}
        self.failures = failures or set()
        self.gate = gate

        self.calls: List[str] = []
        self.sent_options: List[Dict[str, Any]] = []
        self.completed_before_call: List[int] = []
        self.call_times: List[float] = []
        self.completed = 0
        self.active = 0
        self.max_active = 0
        self._connected = False

    async def connect(self) -> None:
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False

    async def send(self, options: Dict[str, Any]) -> TransportResponse:
        url = options["url"]
        self.calls.append(url)
        self.sent_options.append(options)
        self.completed_before_call.append(self.completed)
        self.call_times.append(asyncio.get_running_loop().time())

        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            await asyncio.sleep(self.delays.get(url, 0))

            if url in self.failures:
                raise TransportError(f"Request to {url} failed: refused", url=url)

            return TransportResponse(
                status_code=200,
                url=url,
                headers={"content-type": "text/plain"},
                body=f"body of {url}",
                elapsed_ms=1.0,
            )
        finally:
            self.active -= 1
            self.completed += 1


@pytest.fixture
def mock_transport() -> MockTransport:
    """Create a mock transport."""
    return MockTransport()


# ============================================================================
# Event Recorder
# ============================================================================

class EventRecorder:
    """Collects every event a manager emits, in order."""

    def __init__(self):
        self.results: List[Tuple[Optional[Exception], ItemResult]] = []
        self.errors: List[Exception] = []
        self.ends = 0
        self.log: List[Tuple[str, Any]] = []

    def attach(self, manager: RequestManager) -> "EventRecorder":
        manager.on(EventType.RESULT, self._on_result)
        manager.on(EventType.END, self._on_end)
        manager.on(EventType.ERROR, self._on_error)
        return self

    def _on_result(self, error: Optional[Exception], result: ItemResult) -> None:
        self.results.append((error, result))
        self.log.append(("result", result.index))

    def _on_end(self) -> None:
        self.ends += 1
        self.log.append(("end", None))

    def _on_error(self, error: Exception) -> None:
        self.errors.append(error)
        self.log.append(("error", str(error)))

    @property
    def indices(self) -> List[int]:
        return [result.index for _, result in self.results]


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Poll predicate on the event loop until it holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.001)
