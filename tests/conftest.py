"""Pytest configuration and fixtures for webguard tests."""

from collections.abc import Callable

import httpcore
import pytest

from webguard.config import Settings

OK_RESPONSE = [
    b"HTTP/1.1 200 OK\r\n",
    b"Content-Type: text/plain\r\n",
    b"Content-Length: 5\r\n",
    b"\r\n",
    b"hello",
]


class FakeLookup:
    """DNS stand-in that answers from a table and records every query."""

    def __init__(self, answers: dict[str, list[str] | Callable[[int], list[str]]]):
        self.answers = answers
        self.calls: list[str] = []

    async def __call__(self, hostname: str) -> list[str]:
        self.calls.append(hostname)
        answer = self.answers.get(hostname)
        if answer is None:
            raise OSError(f"Name or service not known: {hostname}")
        if callable(answer):
            return answer(self.calls.count(hostname))
        return list(answer)


class RecordingBackend(httpcore.AsyncMockBackend):
    """Mock socket backend that records dialed hosts and can refuse some."""

    def __init__(self, buffer: list[bytes] | None = None, unreachable: set[str] | None = None):
        super().__init__(buffer if buffer is not None else list(OK_RESPONSE))
        self.dialed: list[str] = []
        self.unreachable = unreachable or set()

    async def connect_tcp(self, host, port, timeout=None, local_address=None, socket_options=None):
        self.dialed.append(host)
        if host in self.unreachable:
            raise httpcore.ConnectError(f"connection refused: {host}")
        return await super().connect_tcp(host, port, timeout, local_address, socket_options)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def test_settings():
    """Create test settings with no search providers and no .env file."""
    return Settings(
        _env_file=None,
        tavily_api_key=None,
        bing_search_key=None,
        web_search_key=None,
        serp_api_key=None,
        search_duckduckgo_enabled=False,
        webguard_log_level="DEBUG",
    )


@pytest.fixture
def fake_lookup():
    """Factory for FakeLookup instances."""
    return FakeLookup


@pytest.fixture
def recording_backend():
    """Factory for RecordingBackend instances."""
    return RecordingBackend


@pytest.fixture
def clock():
    """Manually advanced clock for TTL and window tests."""
    return FakeClock()
