"""Composition root wiring registry, processor, bus and transports."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import aiohttp

from platenotify._constants import DEMO_PLATES
from platenotify.bus import EventBus
from platenotify.config import PlateNotifyConfig
from platenotify.connectivity import ConnectivityMonitor
from platenotify.exceptions import PlateNotifyError
from platenotify.ingress.adapter import IngressAdapter
from platenotify.ingress.admin import AdminAdapter
from platenotify.ingress.channel import MessageChannel
from platenotify.ingress.http import HttpIngress
from platenotify.ingress.mqtt import MqttIngress
from platenotify.persistence.base import PersistenceAdapter
from platenotify.persistence.json_file import JsonFilePersistence
from platenotify.persistence.memory import MemoryPersistence
from platenotify.processor import ArrivalProcessor
from platenotify.registry.store import PlateRegistry

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def build_persistence(config: PlateNotifyConfig) -> PersistenceAdapter:
    if config.storage_path:
        return JsonFilePersistence(config.storage_path)
    return MemoryPersistence()


class PlateNotifyApp:
    """Arrival notification service.

    Usage::

        async with PlateNotifyApp(PlateNotifyConfig.from_env()) as app:
            app.bus.subscribe(print)
            await app.wait_closed()

    Components are created on enter and torn down in reverse order on
    exit; transports are registered once and deregistered on exit.
    """

    def __init__(
        self,
        config: PlateNotifyConfig,
        *,
        persistence: PersistenceAdapter | None = None,
        http_session: aiohttp.ClientSession | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._persistence = persistence or build_persistence(config)
        self._http_session = http_session
        self._clock = clock
        self.bus = EventBus()
        self._registry: PlateRegistry | None = None
        self._processor: ArrivalProcessor | None = None
        self._adapter: IngressAdapter | None = None
        self._admin: AdminAdapter | None = None
        self._channel: MessageChannel | None = None
        self._http: HttpIngress | None = None
        self._mqtt: MqttIngress | None = None
        self._monitor: ConnectivityMonitor | None = None
        self._closed = asyncio.Event()

    # ------------------------------------------------------------------
    # Component accessors
    # ------------------------------------------------------------------

    @property
    def registry(self) -> PlateRegistry:
        if self._registry is None:
            raise PlateNotifyError("App not started. Use 'async with PlateNotifyApp(...) as app:'")
        return self._registry

    @property
    def adapter(self) -> IngressAdapter:
        if self._adapter is None:
            raise PlateNotifyError("App not started. Use 'async with PlateNotifyApp(...) as app:'")
        return self._adapter

    @property
    def admin(self) -> AdminAdapter:
        if self._admin is None:
            raise PlateNotifyError("App not started. Use 'async with PlateNotifyApp(...) as app:'")
        return self._admin

    @property
    def channel(self) -> MessageChannel:
        if self._channel is None:
            raise PlateNotifyError("App not started. Use 'async with PlateNotifyApp(...) as app:'")
        return self._channel

    @property
    def connectivity(self) -> ConnectivityMonitor | None:
        return self._monitor

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        config = self._config
        seed = DEMO_PLATES if config.seed_demo_plates else None
        self._registry = await PlateRegistry.open(self._persistence, seed=seed)
        self._processor = ArrivalProcessor(self._registry, self.bus, clock=self._clock)
        self._adapter = IngressAdapter(self._processor)
        self._admin = AdminAdapter(self._registry)

        self._channel = MessageChannel(self._adapter)
        self._channel.start()

        if config.http_enabled:
            self._http = HttpIngress(config, self._adapter, self._admin)
            await self._http.start()

        if config.mqtt_enabled:
            loop = asyncio.get_running_loop()
            mqtt_ingress = MqttIngress(config, self._adapter, loop=loop, bus=self.bus)
            await loop.run_in_executor(None, mqtt_ingress.start)
            mqtt_ingress.attach_notifier()
            self._mqtt = mqtt_ingress

        if config.upstream_url:
            self._monitor = ConnectivityMonitor(
                config.upstream_url,
                http_session=self._http_session,
                interval=config.connectivity_interval,
                timeout=config.connectivity_timeout,
            )
            self._monitor.start()

        _logger.info("PlateNotify started with %d registered plate(s)", len(self._registry))

    async def stop(self) -> None:
        if self._monitor is not None:
            await self._monitor.stop()
            self._monitor = None
        if self._mqtt is not None:
            mqtt_ingress, self._mqtt = self._mqtt, None
            mqtt_ingress.detach_notifier()
            await asyncio.get_running_loop().run_in_executor(None, mqtt_ingress.stop)
        if self._http is not None:
            await self._http.stop()
            self._http = None
        if self._channel is not None:
            await self._channel.stop()
            self._channel = None
        self._closed.set()
        _logger.info("PlateNotify stopped")

    def close(self) -> None:
        """Ask :meth:`wait_closed` to return."""
        self._closed.set()

    async def wait_closed(self) -> None:
        await self._closed.wait()

    async def __aenter__(self) -> PlateNotifyApp:
        try:
            await self.start()
        except BaseException:
            await self.stop()
            raise
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()
