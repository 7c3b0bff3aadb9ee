"""Periodic connectivity probe against an optional upstream service."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

import aiohttp

_logger = logging.getLogger(__name__)


class ConnectivityState(StrEnum):
    UNKNOWN = "unknown"
    ONLINE = "online"
    OFFLINE = "offline"


ConnectivityListener = Callable[[ConnectivityState], None]


class ConnectivityMonitor:
    """Probe *url* every *interval* seconds and report state changes.

    Any HTTP response below 500 counts as online; server errors, timeouts
    and connection failures count as offline. Probing runs in its own task
    and never touches the ingestion path.
    """

    def __init__(
        self,
        url: str,
        *,
        http_session: aiohttp.ClientSession | None = None,
        interval: float = 30.0,
        timeout: float = 5.0,
    ) -> None:
        self._url = url
        self._external_session = http_session is not None
        self._http = http_session
        self._interval = interval
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._state = ConnectivityState.UNKNOWN
        self._last_checked: datetime | None = None
        self._listeners: list[ConnectivityListener] = []
        self._task: asyncio.Task[None] | None = None

    @property
    def state(self) -> ConnectivityState:
        return self._state

    @property
    def last_checked(self) -> datetime | None:
        return self._last_checked

    def add_listener(self, listener: ConnectivityListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that removes it."""
        self._listeners.append(listener)

        def _remove() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return _remove

    async def probe_once(self) -> ConnectivityState:
        """Run a single probe and update the state."""
        if self._http is None:
            self._http = aiohttp.ClientSession()
        try:
            async with self._http.get(self._url, timeout=self._timeout) as resp:
                state = ConnectivityState.ONLINE if resp.status < 500 else ConnectivityState.OFFLINE
        except (aiohttp.ClientError, TimeoutError) as exc:
            _logger.debug("Connectivity probe to %s failed: %s", self._url, exc)
            state = ConnectivityState.OFFLINE
        self._last_checked = datetime.now(UTC)
        self._set_state(state)
        return state

    def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if not self._external_session and self._http is not None:
            await self._http.close()
            self._http = None

    async def _run(self) -> None:
        while True:
            await self.probe_once()
            await asyncio.sleep(self._interval)

    def _set_state(self, state: ConnectivityState) -> None:
        if state is self._state:
            return
        previous, self._state = self._state, state
        _logger.info("Upstream %s is %s (was %s)", self._url, state.value, previous.value)
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                _logger.debug("Connectivity listener failed", exc_info=True)

    async def __aenter__(self) -> ConnectivityMonitor:
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()
