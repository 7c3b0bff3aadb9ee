from __future__ import annotations

import asyncio
from typing import Any

import aiohttp
import pytest

from platenotify.connectivity import ConnectivityMonitor, ConnectivityState


class _Response:
    def __init__(self, status: int) -> None:
        self.status = status

    async def __aenter__(self) -> _Response:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        return None


class _FakeSession:
    """Returns queued outcomes: an HTTP status or an exception to raise."""

    def __init__(self, outcomes: list[int | Exception]) -> None:
        self._outcomes = outcomes
        self.calls = 0

    def get(self, url: str, **_kwargs: Any) -> _Response:
        self.calls += 1
        outcome = self._outcomes.pop(0) if self._outcomes else 200
        if isinstance(outcome, Exception):
            raise outcome
        return _Response(outcome)


@pytest.mark.asyncio
async def test_probe_transitions_notify_listeners() -> None:
    session = _FakeSession([200, 200, 503, aiohttp.ClientConnectionError("refused"), 204])
    monitor = ConnectivityMonitor("http://upstream.test/health", http_session=session)  # type: ignore[arg-type]
    changes: list[ConnectivityState] = []
    monitor.add_listener(changes.append)

    assert monitor.state is ConnectivityState.UNKNOWN
    for _ in range(5):
        await monitor.probe_once()

    assert changes == [ConnectivityState.ONLINE, ConnectivityState.OFFLINE, ConnectivityState.ONLINE]
    assert monitor.last_checked is not None


@pytest.mark.asyncio
async def test_timeout_counts_as_offline() -> None:
    session = _FakeSession([TimeoutError()])
    monitor = ConnectivityMonitor("http://upstream.test/health", http_session=session)  # type: ignore[arg-type]
    assert await monitor.probe_once() is ConnectivityState.OFFLINE


@pytest.mark.asyncio
async def test_removed_listener_and_failing_listener() -> None:
    session = _FakeSession([200, 500])
    monitor = ConnectivityMonitor("http://upstream.test/health", http_session=session)  # type: ignore[arg-type]
    seen: list[ConnectivityState] = []

    def _boom(_state: ConnectivityState) -> None:
        raise RuntimeError("listener crashed")

    monitor.add_listener(_boom)
    remove = monitor.add_listener(seen.append)
    await monitor.probe_once()
    remove()
    await monitor.probe_once()

    assert seen == [ConnectivityState.ONLINE]


@pytest.mark.asyncio
async def test_periodic_task_runs_until_stopped() -> None:
    session = _FakeSession([])
    monitor = ConnectivityMonitor("http://upstream.test/health", http_session=session, interval=0.01)  # type: ignore[arg-type]

    async with monitor:
        await asyncio.sleep(0.05)

    calls = session.calls
    assert calls >= 2
    await asyncio.sleep(0.03)
    assert session.calls == calls
    assert monitor.state is ConnectivityState.ONLINE
